"""
tests/test_parsers.py
Unit tests for laragen.parsers (the field definition DSL).

Tests cover:
- Base type and validation token splitting
- Parameterised types: foreign, enum, decimal, file/files
- Malformed definitions and the segment they name
- Unknown base types kept as passthrough
- Serialising a parsed field back to its definition
"""

from __future__ import annotations

import pytest

from laragen.errors import MalformedFieldSpec
from laragen.models import (
    DecimalParams,
    EnumParams,
    FileParams,
    ForeignParams,
)
from laragen.parsers import field_to_definition, parse_field


# ===========================================================================
# Base types and validation tokens
# ===========================================================================


class TestSimpleFields:
    """Fields without type parameters."""

    def test_string_with_validations(self) -> None:
        spec = parse_field("string|required|max:255")
        assert spec.base_type == "string"
        assert spec.type_params is None
        assert spec.validations == ("required", "max:255"), (
            f"Unexpected validations: {spec.validations}"
        )

    def test_bare_type_has_no_validations(self) -> None:
        spec = parse_field("text")
        assert spec.base_type == "text"
        assert spec.validations == ()

    def test_validation_tokens_kept_verbatim(self) -> None:
        spec = parse_field("string|regex:/^[a-z]+$/|unique")
        assert spec.validations == ("regex:/^[a-z]+$/", "unique")

    def test_helper_properties(self) -> None:
        spec = parse_field("string|nullable|unique|index|max:80|default:guest")
        assert spec.is_nullable
        assert spec.is_unique
        assert spec.has_index
        assert spec.max_length == 80
        assert spec.default_value == "guest"
        assert not spec.is_required

    def test_unknown_type_is_passthrough(self) -> None:
        spec = parse_field("geometry|nullable")
        assert spec.base_type == "geometry"
        assert not spec.is_known_type
        assert spec.validations == ("nullable",)


# ===========================================================================
# Parameterised types
# ===========================================================================


class TestForeignFields:
    """``foreign:<table>`` definitions."""

    def test_foreign_with_nullable(self) -> None:
        spec = parse_field("foreign:posts|nullable")
        assert spec.base_type == "foreign"
        assert isinstance(spec.type_params, ForeignParams)
        assert spec.type_params.table == "posts"
        assert spec.validations == ("nullable",)
        assert spec.foreign_table == "posts"

    def test_foreign_without_table_fails(self) -> None:
        with pytest.raises(MalformedFieldSpec) as exc_info:
            parse_field("foreign|required")
        assert "foreign" in str(exc_info.value)

    def test_foreign_with_empty_table_fails(self) -> None:
        with pytest.raises(MalformedFieldSpec):
            parse_field("foreign:")


class TestDecimalFields:
    """``decimal[:p,s]`` definitions."""

    def test_decimal_with_default(self) -> None:
        spec = parse_field("decimal:8,2|default:0.00")
        assert spec.base_type == "decimal"
        assert isinstance(spec.type_params, DecimalParams)
        assert spec.type_params.precision == 8
        assert spec.type_params.scale == 2
        assert spec.validations == ("default:0.00",)

    def test_decimal_missing_scale_fails(self) -> None:
        with pytest.raises(MalformedFieldSpec) as exc_info:
            parse_field("decimal:8")
        assert exc_info.value.segment == "decimal:8", (
            f"Error should name the bad segment, got '{exc_info.value.segment}'"
        )

    def test_decimal_non_numeric_fails(self) -> None:
        with pytest.raises(MalformedFieldSpec):
            parse_field("decimal:a,b")

    def test_bare_decimal_uses_defaults(self) -> None:
        spec = parse_field("decimal|nullable")
        assert spec.type_params == DecimalParams(precision=8, scale=2)


class TestEnumFields:
    """``enum:<a>,<b>`` definitions."""

    def test_enum_values(self) -> None:
        spec = parse_field("enum:draft,published,archived|default:draft")
        assert isinstance(spec.type_params, EnumParams)
        assert spec.enum_values == ("draft", "published", "archived")
        assert spec.default_value == "draft"

    def test_enum_without_values_fails(self) -> None:
        with pytest.raises(MalformedFieldSpec):
            parse_field("enum")

    def test_enum_with_empty_value_fails(self) -> None:
        with pytest.raises(MalformedFieldSpec):
            parse_field("enum:a,,b")


class TestFileFields:
    """``file`` / ``files`` definitions with an optional disk."""

    def test_file_with_disk(self) -> None:
        spec = parse_field("file:public|nullable")
        assert isinstance(spec.type_params, FileParams)
        assert spec.storage_disk == "public"
        assert spec.is_file
        assert not spec.multiple

    def test_files_without_disk(self) -> None:
        spec = parse_field("files")
        assert spec.is_file
        assert spec.multiple
        assert spec.type_params == FileParams(disk=None)


# ===========================================================================
# Malformed input
# ===========================================================================


class TestMalformedDefinitions:

    @pytest.mark.parametrize("definition", ["", "   ", "|required", ":posts"])
    def test_empty_or_typeless_definitions_fail(self, definition: str) -> None:
        with pytest.raises(MalformedFieldSpec):
            parse_field(definition)


# ===========================================================================
# Serialisation
# ===========================================================================


class TestFieldToDefinition:
    """A parsed field serialises back to an equivalent definition."""

    @pytest.mark.parametrize(
        "definition",
        [
            "string|required|max:255",
            "foreign:posts|nullable",
            "decimal:10,4|default:0.00",
            "enum:low,high|default:low",
            "file:s3",
            "boolean",
        ],
    )
    def test_definition_survives_reparse(self, definition: str) -> None:
        spec = parse_field(definition)
        text = field_to_definition(spec)
        assert text == definition, f"'{definition}' serialised as '{text}'"
        assert parse_field(text) == spec

    def test_bare_decimal_serialises_with_defaults(self) -> None:
        assert field_to_definition(parse_field("decimal")) == "decimal:8,2"
