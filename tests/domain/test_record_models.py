"""Tests for Record, SoftDeleteRecord, RecordList and the capability protocols."""

from sample_schemas import Author, Book, Note

from metaagent.domain.records import (
    Record,
    RecordList,
    SoftDeletable,
    Validatable,
    ValidationResult,
)


class TestRecord:
    def test_zero_value(self) -> None:
        author = Author()
        assert author.id == 0
        assert author.created_at is None
        assert author.updated_at is None
        assert author.name == ""

    def test_identity_accessors(self) -> None:
        author = Author()
        author.set_id(42)
        assert author.get_id() == 42
        assert author.id == 42

    def test_from_row_ignores_unknown_columns(self) -> None:
        author = Author.from_row({"id": 3, "name": "Le Guin", "legacy": "x"})
        assert author.id == 3
        assert author.name == "Le Guin"

    def test_apply_row_overwrites_in_place(self) -> None:
        book = Book(title="Draft", year=1)
        same = book
        book.apply_row({"id": 9, "title": "Final", "year": 1970, "isbn": "", "tags": ["sf"]})
        assert same is book
        assert book.id == 9
        assert book.title == "Final"
        assert book.tags == ["sf"]


class TestCapabilities:
    def test_validatable_detected(self) -> None:
        assert isinstance(Book(), Validatable)
        assert not isinstance(Author(), Validatable)

    def test_soft_deletable_detected(self) -> None:
        assert isinstance(Note(), SoftDeletable)
        assert not isinstance(Book(), SoftDeletable)

    def test_validate_record(self) -> None:
        assert Book(title="Dune").validate_record().valid
        result = Book(title="  ").validate_record()
        assert result == ValidationResult(valid=False, errors=["title is required"])

    def test_soft_delete_stamps_deleted_at(self) -> None:
        note = Note(body="x")
        assert not note.is_deleted
        note.soft_delete()
        assert note.is_deleted
        assert note.deleted_at is not None
        assert note.deleted_at.tzinfo is not None


class TestRecordList:
    def test_bound_to_schema(self) -> None:
        books = RecordList(Book)
        assert books.record_cls is Book
        assert books.schema_name == "book"
        assert books == []

    def test_behaves_like_list(self) -> None:
        books = RecordList(Book, [Book(title="a")])
        books.append(Book(title="b"))
        assert [b.title for b in books] == ["a", "b"]
        assert isinstance(books, list)

    def test_repr_names_schema(self) -> None:
        assert repr(RecordList(Author)).startswith("RecordList('author'")

    def test_base_record_has_no_schema_name(self) -> None:
        assert Record.schema_name == ""
