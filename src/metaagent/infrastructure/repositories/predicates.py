"""Caller-supplied predicates and their translation to SQL clauses.

Two shapes are accepted wherever a store operation filters rows:

- **String predicates** — a :class:`Predicate` (template with ``?``
  placeholders plus positional arguments) or a bare string with no
  arguments. A list/tuple/set argument expands into an ``IN`` list.
- **Struct predicates** — a mapping of column -> value, AND-ed together.

Column names inside templates are not validated; the statement layer's
bound parameters are the only injection boundary for values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeAlias

from sqlalchemy import Table, and_, bindparam, text
from sqlalchemy.sql.elements import ColumnElement, TextClause

from metaagent.errors import UnknownColumnError

_EXPANDING_TYPES = (list, tuple, set, frozenset)


class Predicate:
    """A ``?``-placeholder SQL template with positional arguments.

    Examples:
        >>> Predicate("id IN ? AND status = ?", [1, 2], "open").template
        'id IN ? AND status = ?'
    """

    __slots__ = ("args", "template")

    def __init__(self, template: str, *args: Any) -> None:
        self.template = template
        self.args: tuple[Any, ...] = args

    def __and__(self, other: Predicate) -> Predicate:
        if not isinstance(other, Predicate):
            return NotImplemented
        return Predicate(f"({self.template}) AND ({other.template})", *self.args, *other.args)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Predicate):
            return NotImplemented
        return (self.template, self.args) == (other.template, other.args)

    def __hash__(self) -> int:
        return hash((self.template, tuple(repr(a) for a in self.args)))

    def __repr__(self) -> str:
        return f"Predicate({self.template!r}, *{self.args!r})"

    def to_clause(self) -> TextClause:
        """Compile to a parenthesized ``text()`` clause with bound parameters.

        Raises:
            ValueError: If placeholder and argument counts differ.
        """
        pieces = self.template.split("?")
        if len(pieces) - 1 != len(self.args):
            msg = (
                f"Predicate {self.template!r} has {len(pieces) - 1} placeholders "
                f"but {len(self.args)} arguments"
            )
            raise ValueError(msg)

        # Literal colons would otherwise be parsed as named binds by text().
        sql = [pieces[0].replace(":", r"\:")]
        binds = []
        for index, (arg, tail) in enumerate(zip(self.args, pieces[1:], strict=True)):
            name = f"p_{index}"
            expanding = isinstance(arg, _EXPANDING_TYPES)
            value = list(arg) if expanding else arg
            binds.append(bindparam(name, value=value, expanding=expanding))
            sql.append(f":{name}")
            sql.append(tail.replace(":", r"\:"))
        return text(f"({''.join(sql)})").bindparams(*binds)


PredicateLike: TypeAlias = Predicate | str | Mapping[str, Any] | None


def mapping_clause(table: Table, filters: Mapping[str, Any]) -> ColumnElement[bool] | None:
    """AND together ``column == value`` for each item of *filters*.

    ``None`` matches NULL; list-like values match with ``IN``.
    """
    clauses: list[ColumnElement[bool]] = []
    for column_name, value in filters.items():
        if column_name not in table.c:
            msg = f"Schema {table.name!r} has no column {column_name!r}"
            raise UnknownColumnError(msg, schema=table.name, column=column_name)
        column = table.c[column_name]
        if value is None:
            clauses.append(column.is_(None))
        elif isinstance(value, _EXPANDING_TYPES):
            clauses.append(column.in_(list(value)))
        else:
            clauses.append(column == value)
    if not clauses:
        return None
    return and_(*clauses)


def where_clause(table: Table, predicate: PredicateLike) -> ColumnElement[bool] | TextClause | None:
    """Translate any accepted predicate shape into a WHERE clause (or None)."""
    if predicate is None:
        return None
    if isinstance(predicate, Predicate):
        return predicate.to_clause()
    if isinstance(predicate, str):
        return Predicate(predicate).to_clause() if predicate.strip() else None
    if isinstance(predicate, Mapping):
        return mapping_clause(table, predicate)
    msg = f"Unsupported predicate type: {type(predicate).__name__}"
    raise TypeError(msg)
