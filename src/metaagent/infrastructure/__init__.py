"""Infrastructure layer — database, transactions, repositories, the agent.

This layer depends on the domain layer, config models, and SQLAlchemy.
It must never import from services, commands, or output.
"""
