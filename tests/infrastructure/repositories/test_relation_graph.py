"""Tests for RelationGraph — relation CRUD and the fan-out query."""

from typing import ClassVar

import pytest
from sample_schemas import Author, Book, Note, Publisher
from sqlalchemy.exc import IntegrityError

from metaagent.config.settings import MetaAgentSettings
from metaagent.domain.relation import EntityRelation
from metaagent.errors import (
    AmbiguousRelationError,
    NotFoundError,
    RelationEndpointMissingError,
    RelationQueryError,
    SchemaNotRegisteredError,
    ValidationError,
)
from metaagent.infrastructure.agent import MetaAgent
from metaagent.infrastructure.repositories.records import RecordStore
from metaagent.infrastructure.repositories.relations import RelationGraph


def _link(
    graph: RelationGraph,
    source: Book | Author | Note,
    target: Author | Publisher | Book | Note,
    content: str = "",
) -> EntityRelation:
    return graph.create_relation(
        EntityRelation(
            source_schema_name=source.schema_name,
            source_entity_id=source.id,
            target_schema_name=target.schema_name,
            target_entity_id=target.id,
            content=content,
        )
    )


@pytest.fixture
def graph(agent: MetaAgent) -> RelationGraph:
    return agent.relations


@pytest.fixture
def library(store: RecordStore, graph: RelationGraph) -> dict[str, object]:
    """Book S related to authors A1, A2 and publisher P1."""
    book = store.create(Book(title="S"))
    a1 = store.create(Author(name="A1"))
    a2 = store.create(Author(name="A2"))
    p1 = store.create(Publisher(name="P1"))
    _link(graph, book, a1, "primary")
    _link(graph, book, a2, "secondary")
    _link(graph, book, p1, "house")
    return {"book": book, "a1": a1, "a2": a2, "p1": p1}


class TestCreateRelation:
    def test_assigns_identity(self, store: RecordStore, graph: RelationGraph) -> None:
        book = store.create(Book(title="S"))
        author = store.create(Author(name="A"))
        relation = _link(graph, book, author, "wrote")
        assert relation.id > 0

        found = graph.resolve_by_tuple("book", book.id, "author", author.id)
        assert found.id == relation.id
        assert found.content == "wrote"

    def test_missing_target(self, store: RecordStore, graph: RelationGraph) -> None:
        book = store.create(Book(title="S"))
        with pytest.raises(RelationEndpointMissingError) as excinfo:
            _link(graph, book, Author(id=999))
        assert excinfo.value.detail["role"] == "target"

    def test_missing_source(self, store: RecordStore, graph: RelationGraph) -> None:
        author = store.create(Author(name="A"))
        with pytest.raises(RelationEndpointMissingError) as excinfo:
            _link(graph, Book(id=999), author)
        assert excinfo.value.detail["role"] == "source"

    def test_unregistered_endpoint_schema(self, store: RecordStore, graph: RelationGraph) -> None:
        book = store.create(Book(title="S"))
        relation = EntityRelation(
            source_schema_name="book",
            source_entity_id=book.id,
            target_schema_name="planet",
            target_entity_id=1,
        )
        with pytest.raises(SchemaNotRegisteredError):
            graph.create_relation(relation)

    def test_duplicate_tuple_rejected_by_storage(
        self, store: RecordStore, graph: RelationGraph
    ) -> None:
        book = store.create(Book(title="S"))
        author = store.create(Author(name="A"))
        _link(graph, book, author, "first")
        with pytest.raises(IntegrityError):
            _link(graph, book, author, "second")

    def test_unset_endpoint_ids_fail_validation(self, store: RecordStore) -> None:
        with pytest.raises(ValidationError):
            store.create(EntityRelation(source_schema_name="book", target_schema_name="author"))

    def test_soft_deleted_endpoint_still_exists(
        self, store: RecordStore, graph: RelationGraph
    ) -> None:
        note = store.create(Note(body="n"))
        author = store.create(Author(name="A"))
        store.delete_by_identity(note)
        assert _link(graph, note, author).id > 0


class TestFanout:
    def test_groups_by_target_schema(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        assert isinstance(book, Book)
        fanout = graph.list_from_source("book", book.id)

        assert set(fanout.relations) == {"author", "publisher"}
        assert [a.name for a in fanout.relations["author"]] == ["A1", "A2"]
        assert [p.name for p in fanout.relations["publisher"]] == ["P1"]
        a1 = library["a1"]
        assert isinstance(a1, Author)
        assert fanout.contents["author"][a1.id] == "primary"

    def test_include_limits_expansion_not_contents(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        p1 = library["p1"]
        assert isinstance(book, Book)
        assert isinstance(p1, Publisher)
        fanout = graph.list_from_source("book", book.id, include=["author"])

        assert list(fanout.relations) == ["author"]
        assert fanout.contents["publisher"] == {p1.id: "house"}

    def test_empty_include_expands_everything(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        assert isinstance(book, Book)
        fanout = graph.list_from_source("book", book.id, include=[])
        assert set(fanout.relations) == {"author", "publisher"}
        assert [a.name for a in fanout.relations["author"]] == ["A1", "A2"]

    def test_unregistered_target_schema_is_skipped(
        self, store: RecordStore, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        assert isinstance(book, Book)
        store.create(
            EntityRelation(
                source_schema_name="book",
                source_entity_id=book.id,
                target_schema_name="planet",
                target_entity_id=7,
                content="orbit",
            )
        )
        fanout = graph.list_from_source("book", book.id, include=["planet", "author"])
        assert list(fanout.relations) == ["author"]
        assert fanout.contents["planet"] == {7: "orbit"}

    def test_include_unobserved_schema_is_skipped(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        assert isinstance(book, Book)
        fanout = graph.list_from_source("book", book.id, include=["note"])
        assert fanout.relations == {}
        assert set(fanout.contents) == {"author", "publisher"}

    def test_filters_apply_per_schema(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        assert isinstance(book, Book)
        fanout = graph.list_from_source("book", book.id, filters={"author": {"name": "A2"}})
        assert [a.name for a in fanout.relations["author"]] == ["A2"]
        assert [p.name for p in fanout.relations["publisher"]] == ["P1"]

    def test_paging_applies_per_target_schema(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        assert isinstance(book, Book)
        first = graph.list_from_source("book", book.id, page_size=1, page=1)
        second = graph.list_from_source("book", book.id, page_size=1, page=2)

        assert [a.name for a in first.relations["author"]] == ["A1"]
        assert [a.name for a in second.relations["author"]] == ["A2"]
        assert [p.name for p in first.relations["publisher"]] == ["P1"]
        assert second.relations["publisher"] == []

    def test_target_schema_restricts_edges(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        assert isinstance(book, Book)
        fanout = graph.list_from_source("book", book.id, target_schema="publisher")
        assert list(fanout.contents) == ["publisher"]
        assert list(fanout.relations) == ["publisher"]

    def test_no_relations_gives_empty_maps(self, store: RecordStore, graph: RelationGraph) -> None:
        lonely = store.create(Book(title="alone"))
        fanout = graph.list_from_source("book", lonely.id)
        assert fanout.relations == {}
        assert fanout.contents == {}
        assert not fanout

    def test_unset_source_id(self, graph: RelationGraph) -> None:
        with pytest.raises(RelationQueryError):
            graph.list_from_source("book", 0)

    def test_unknown_source_schema(self, graph: RelationGraph) -> None:
        with pytest.raises(SchemaNotRegisteredError):
            graph.list_from_source("planet", 1)

    def test_missing_source_record(self, graph: RelationGraph) -> None:
        with pytest.raises(NotFoundError):
            graph.list_from_source("book", 404)


class TestRelationByTuple:
    def test_update_content_resolves_identity(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        a1 = library["a1"]
        assert isinstance(book, Book)
        assert isinstance(a1, Author)
        key = EntityRelation(
            source_schema_name="book",
            source_entity_id=book.id,
            target_schema_name="author",
            target_entity_id=a1.id,
            content="editor",
        )
        updated = graph.update_content(key)
        assert updated.id > 0
        assert updated.content == "editor"
        assert graph.resolve_by_tuple("book", book.id, "author", a1.id).content == "editor"

    def test_delete_resolves_identity(
        self, graph: RelationGraph, library: dict[str, object]
    ) -> None:
        book = library["book"]
        a2 = library["a2"]
        assert isinstance(book, Book)
        assert isinstance(a2, Author)
        key = EntityRelation(
            source_schema_name="book",
            source_entity_id=book.id,
            target_schema_name="author",
            target_entity_id=a2.id,
        )
        assert graph.delete_relation(key) == 1
        with pytest.raises(NotFoundError):
            graph.resolve_by_tuple("book", book.id, "author", a2.id)

        fanout = graph.list_from_source("book", book.id)
        assert [a.name for a in fanout.relations["author"]] == ["A1"]

    def test_resolve_missing(self, graph: RelationGraph) -> None:
        with pytest.raises(NotFoundError):
            graph.resolve_by_tuple("book", 1, "author", 1)


class LooseRelation(EntityRelation):
    unique_together: ClassVar[tuple[tuple[str, ...], ...]] = ()


class TestAmbiguousTuple:
    def test_duplicate_tuples_are_ambiguous(self, settings: MetaAgentSettings) -> None:
        agent = MetaAgent(settings)
        agent.register(Book, Author, LooseRelation)
        with agent:
            book = agent.store.create(Book(title="S"))
            author = agent.store.create(Author(name="A"))
            for content in ("first", "second"):
                agent.relations.create_relation(
                    LooseRelation(
                        source_schema_name="book",
                        source_entity_id=book.id,
                        target_schema_name="author",
                        target_entity_id=author.id,
                        content=content,
                    )
                )
            with pytest.raises(AmbiguousRelationError) as excinfo:
                agent.relations.resolve_by_tuple("book", book.id, "author", author.id)
            assert excinfo.value.detail["count"] == 2
