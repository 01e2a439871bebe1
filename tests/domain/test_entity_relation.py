"""Tests for the EntityRelation record."""

from metaagent.domain.relation import RELATION_KEY_FIELDS, RELATION_SCHEMA, EntityRelation


def _edge(**overrides: object) -> EntityRelation:
    fields: dict[str, object] = {
        "source_schema_name": "book",
        "source_entity_id": 1,
        "target_schema_name": "author",
        "target_entity_id": 2,
        "content": "wrote",
    }
    fields.update(overrides)
    return EntityRelation.model_validate(fields)


class TestEntityRelation:
    def test_registered_name(self) -> None:
        assert EntityRelation.schema_name == RELATION_SCHEMA == "entity_relation"

    def test_unique_over_key_fields(self) -> None:
        assert EntityRelation.unique_together == (RELATION_KEY_FIELDS,)

    def test_key_and_filter(self) -> None:
        edge = _edge()
        assert edge.key() == ("book", 1, "author", 2)
        assert edge.key_filter() == {
            "source_schema_name": "book",
            "source_entity_id": 1,
            "target_schema_name": "author",
            "target_entity_id": 2,
        }

    def test_valid_edge(self) -> None:
        assert _edge().validate_record().valid

    def test_missing_names_and_ids_rejected(self) -> None:
        result = EntityRelation().validate_record()
        assert not result.valid
        assert len(result.errors) == 4

    def test_negative_target_rejected(self) -> None:
        result = _edge(target_entity_id=-1).validate_record()
        assert result.errors == ["target_entity_id must be a positive identity"]
