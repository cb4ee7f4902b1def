"""
Unit tests for schema types.

Tests cover:
- Field, Join and Table creation and validation
- Lookups and subtree walking
- Type serialization/deserialization
"""

import pytest

from bubbly.store.schema.types import Field, Join, Table


class TestField:
    """Tests for Field."""

    def test_create_field(self):
        """Field can be created with defaults."""
        f = Field("name", "string")
        assert f.name == "name"
        assert f.type == "string"
        assert f.unique is False

    def test_empty_name_raises(self):
        """Field name cannot be empty."""
        with pytest.raises(ValueError, match="name cannot be empty"):
            Field("", "string")

    def test_missing_type_raises(self):
        """Field must declare a type."""
        with pytest.raises(ValueError, match="must declare a type"):
            Field("name", "")

    def test_to_dict_omits_defaults(self):
        """Non-unique fields serialize without the unique key."""
        assert Field("a", "bool").to_dict() == {"name": "a", "type": "bool"}
        assert Field("a", "bool", unique=True).to_dict() == {
            "name": "a",
            "type": "bool",
            "unique": True,
        }


class TestJoin:
    """Tests for Join."""

    def test_join_requires_target(self):
        """Join must name the referenced table."""
        with pytest.raises(ValueError, match="must reference a table"):
            Join("")

    def test_from_dict(self):
        """Join can be read from a dictionary."""
        assert Join.from_dict({"table": "project", "unique": True}) == Join("project", True)


class TestTable:
    """Tests for Table."""

    def test_duplicate_field_name_raises(self):
        """Field names are unique within a table."""
        with pytest.raises(ValueError, match="Duplicate field name"):
            Table(name="t", fields=(Field("a", "string"), Field("a", "number")))

    def test_duplicate_join_target_raises(self):
        """Only one join per target table."""
        with pytest.raises(ValueError, match="Duplicate join target"):
            Table(name="t", joins=(Join("p"), Join("p", unique=True)))

    def test_duplicate_sub_table_raises(self):
        """Sub-table names are unique within a table."""
        with pytest.raises(ValueError, match="Duplicate sub-table name"):
            Table(name="t", tables=(Table(name="c"), Table(name="c")))

    def test_empty_name_raises(self):
        """Table name cannot be empty."""
        with pytest.raises(ValueError, match="Table name cannot be empty"):
            Table(name="")

    def test_lookups(self):
        """Fields, joins and sub-tables can be looked up by name."""
        child = Table(name="child")
        t = Table(
            name="t",
            fields=(Field("a", "string"),),
            joins=(Join("p"),),
            tables=(child,),
        )
        assert t.get_field("a") == Field("a", "string")
        assert t.get_field("missing") is None
        assert t.get_join("p") == Join("p")
        assert t.get_join("q") is None
        assert t.get_table("child") is child
        assert t.get_table("other") is None

    def test_walk_is_depth_first(self):
        """walk() yields the table and all descendants."""
        t = Table(
            name="a",
            tables=(Table(name="b", tables=(Table(name="c"),)), Table(name="d")),
        )
        assert [x.name for x in t.walk()] == ["a", "b", "c", "d"]

    def test_structural_equality(self):
        """Tables with the same content are equal."""
        assert Table(name="t", fields=(Field("a", "string"),)) == Table(
            name="t", fields=(Field("a", "string"),)
        )

    def test_dict_round_trip_with_nesting(self):
        """Nested tables survive serialization."""
        t = Table(
            name="release",
            fields=(Field("name", "string", unique=True),),
            joins=(Join("project"),),
            tables=(Table(name="entry", fields=(Field("value", "number"),)),),
            unique=True,
        )
        assert Table.from_dict(t.to_dict()) == t

    def test_from_dict_accepts_null_sections(self):
        """Null sections (as written by YAML) read as empty."""
        t = Table.from_dict({"name": "t", "fields": None, "joins": None, "tables": None})
        assert t == Table(name="t")

    def test_from_dict_rejects_non_mapping(self):
        """A table written as a bare name is rejected."""
        with pytest.raises(ValueError, match="Table must be a mapping"):
            Table.from_dict("release")

    def test_from_dict_rejects_mapping_of_fields(self):
        """Fields must be a list of field definitions."""
        with pytest.raises(ValueError, match="Fields of table 'release' must be a list"):
            Table.from_dict({"name": "release", "fields": {"version": "string"}})

    def test_from_dict_rejects_bare_join(self):
        """Joins must be mappings with a table key."""
        with pytest.raises(ValueError, match="Join must be a mapping"):
            Table.from_dict({"name": "release", "joins": ["project"]})

    def test_non_string_names_rejected(self):
        """Names and types must be strings."""
        with pytest.raises(ValueError, match="Table name must be a string"):
            Table(name=["release"])
        with pytest.raises(ValueError, match="type must be a string"):
            Field("version", 3)
