"""
Unit tests for schema snapshots.

Tests cover:
- Table registration
- Schema freezing
- Fingerprint generation
- Duplicate detection
- Loading from JSON, YAML and files
- Internal tables and consistency checks
"""

import json

import pytest

from bubbly.store.schema.errors import (
    DuplicateTableError,
    SchemaFrozenError,
    UnsupportedSchemaFormatError,
)
from bubbly.store.schema.registry import INTERNAL_TABLES, Schema, generate_fingerprint
from bubbly.store.schema.types import Field, Join, Table

RELEASE_YAML = """
tables:
  - name: release
    unique: true
    fields:
      - name: name
        type: string
        unique: true
      - name: version
        type: string
    joins:
      - table: project
    tables:
      - name: entry
        fields:
          - name: value
            type: number
  - name: project
    fields:
      - name: name
        type: string
"""


class TestSchema:
    """Tests for Schema."""

    def test_register_table(self):
        """Can register a table under its name."""
        schema = Schema()
        release = Table(name="release")

        schema.register_table(release)

        assert schema.get_table("release") == release
        assert "release" in schema
        assert len(schema) == 1

    def test_duplicate_name_raises(self):
        """Registering a duplicate name raises error."""
        schema = Schema()
        schema.register_table(Table(name="release"))

        with pytest.raises(DuplicateTableError, match="'release' already registered"):
            schema.register_table(Table(name="release", unique=True))

    def test_freeze_schema(self):
        """Can freeze a schema."""
        schema = Schema.from_tables([Table(name="release")])

        fingerprint = schema.freeze()

        assert schema.frozen is True
        assert fingerprint.startswith("sha256:")
        assert schema.fingerprint == fingerprint

    def test_cannot_register_after_freeze(self):
        """Cannot register tables after freeze."""
        schema = Schema()
        schema.freeze()

        with pytest.raises(SchemaFrozenError, match="frozen"):
            schema.register_table(Table(name="release"))

    def test_cannot_freeze_twice(self):
        """Cannot freeze twice."""
        schema = Schema()
        schema.freeze()

        with pytest.raises(SchemaFrozenError, match="already frozen"):
            schema.freeze()

    def test_fingerprint_is_deterministic(self):
        """Registration order does not change the fingerprint."""
        a, b = Table(name="a"), Table(name="b", fields=(Field("x", "string"),))

        assert generate_fingerprint(Schema.from_tables([a, b])) == generate_fingerprint(
            Schema.from_tables([b, a])
        )

    def test_fingerprint_changes_with_schema(self):
        """Any structural change changes the fingerprint."""
        v1 = Schema.from_tables([Table(name="a", fields=(Field("x", "string"),))])
        v2 = Schema.from_tables([Table(name="a", fields=(Field("x", "number"),))])

        assert generate_fingerprint(v1) != generate_fingerprint(v2)

    def test_tables_view_is_a_copy(self):
        """Mutating the tables view does not change the schema."""
        schema = Schema.from_tables([Table(name="a")])
        view = schema.tables
        view["b"] = Table(name="b")

        assert "b" not in schema

    def test_items_in_registration_order(self):
        """items() yields (key, table) pairs as registered."""
        a, b = Table(name="b"), Table(name="a")
        schema = Schema.from_tables([a, b])

        assert list(schema.items()) == [("b", a), ("a", b)]

    def test_raw_mapping_keeps_keys(self):
        """A raw mapping is stored as given, mismatches included."""
        schema = Schema({"foo": Table(name="bar")})

        assert list(schema) == ["foo"]
        assert schema.to_dict() == {"tables": [{"name": "bar", "key": "foo"}]}


class TestSerialization:
    """Tests for schema loading and dumping."""

    def test_from_yaml(self):
        """Schema can be read from YAML."""
        schema = Schema.from_yaml(RELEASE_YAML)

        release = schema.get_table("release")
        assert release.unique is True
        assert release.get_field("name") == Field("name", "string", unique=True)
        assert release.joins == (Join("project"),)
        assert release.get_table("entry").fields == (Field("value", "number"),)
        assert schema.get_table("project") is not None

    def test_empty_yaml_is_empty_schema(self):
        """An empty document is an empty schema."""
        assert len(Schema.from_yaml("")) == 0

    def test_json_round_trip(self):
        """to_json/from_json preserve the schema."""
        schema = Schema.from_yaml(RELEASE_YAML)

        loaded = Schema.from_json(schema.to_json())

        assert loaded.to_dict() == schema.to_dict()

    def test_from_dict_accepts_snapshot_format(self):
        """The wrapped lock-file format is accepted."""
        schema = Schema.from_yaml(RELEASE_YAML)
        wrapped = {"version": 1, "fingerprint": "sha256:x", "schema": schema.to_dict()}

        assert Schema.from_dict(wrapped).to_dict() == schema.to_dict()

    def test_from_dict_preserves_mismatched_key(self):
        """An explicit key survives loading."""
        schema = Schema.from_dict({"tables": [{"name": "bar", "key": "foo"}]})

        assert schema.tables == {"foo": Table(name="bar")}

    def test_duplicate_table_in_document_raises(self):
        """A document defining a table twice is rejected."""
        with pytest.raises(DuplicateTableError):
            Schema.from_dict({"tables": [{"name": "a"}, {"name": "a"}]})

    def test_top_level_list_rejected(self):
        """A document must be a mapping with a tables list."""
        with pytest.raises(ValueError, match="Schema document must be a mapping"):
            Schema.from_yaml("- name: release\n")

    def test_tables_must_be_a_list(self):
        """A scalar tables entry is rejected."""
        with pytest.raises(ValueError, match="Schema tables must be a list"):
            Schema.from_dict({"tables": "release"})

    def test_from_file_yaml_and_json(self, tmp_path):
        """Files are read by extension."""
        yaml_path = tmp_path / "schema.yml"
        yaml_path.write_text(RELEASE_YAML)
        json_path = tmp_path / "schema.json"
        json_path.write_text(json.dumps(Schema.from_yaml(RELEASE_YAML).to_dict()))

        assert Schema.from_file(yaml_path).to_dict() == Schema.from_file(json_path).to_dict()

    def test_from_file_unsupported_extension(self, tmp_path):
        """Unknown extensions are rejected."""
        path = tmp_path / "schema.hcl"
        path.write_text("table {}")

        with pytest.raises(UnsupportedSchemaFormatError, match=".hcl"):
            Schema.from_file(path)


class TestInternalTables:
    """Tests for the store's internal tables."""

    def test_with_internal_tables(self):
        """Internal tables are added next to user tables."""
        schema = Schema.from_tables([Table(name="release")]).with_internal_tables()

        assert set(schema) == {"release", "_resource", "_event", "_schema"}

    def test_source_schema_is_unchanged(self):
        """with_internal_tables returns a new schema."""
        schema = Schema.from_tables([Table(name="release")])
        schema.with_internal_tables()

        assert list(schema) == ["release"]

    def test_clash_with_internal_name_raises(self):
        """User tables cannot shadow internal tables."""
        schema = Schema.from_tables([Table(name="_event")])

        with pytest.raises(DuplicateTableError):
            schema.with_internal_tables()

    def test_adding_internal_tables_twice_is_a_no_op(self):
        """A schema that already carries the internal tables is unchanged."""
        schema = Schema.from_tables([Table(name="release")]).with_internal_tables()

        again = schema.with_internal_tables()

        assert again.to_dict() == schema.to_dict()

    def test_modified_internal_table_raises(self):
        """An internal name with a different definition is still a clash."""
        schema = Schema.from_tables([Table(name="_schema", fields=(Field("tables", "number"),))])

        with pytest.raises(DuplicateTableError):
            schema.with_internal_tables()

    def test_event_joins_resource(self):
        """Events are joined to the resource that produced them."""
        event = next(t for t in INTERNAL_TABLES if t.name == "_event")
        assert event.get_join("_resource") is not None


class TestValidateAll:
    """Tests for schema consistency checks."""

    def test_valid_schema(self):
        """A consistent schema has no errors."""
        assert Schema.from_yaml(RELEASE_YAML).validate_all() == []

    def test_mismatched_key_reported(self):
        """Key/name mismatches are reported."""
        errors = Schema({"foo": Table(name="bar")}).validate_all()

        assert len(errors) == 1
        assert "mismatched key 'foo'" in errors[0]

    def test_unknown_join_target_reported(self):
        """Joins to unknown tables are reported."""
        schema = Schema.from_tables([Table(name="release", joins=(Join("ghost"),))])

        errors = schema.validate_all()

        assert errors == ["Join in table 'release' references unknown table 'ghost'"]

    def test_join_to_nested_table_is_valid(self):
        """Joins may target nested tables."""
        schema = Schema.from_tables([
            Table(name="project", tables=(Table(name="repo"),)),
            Table(name="release", joins=(Join("repo"),)),
        ])

        assert schema.validate_all() == []
