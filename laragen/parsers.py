# File: laragen/parsers.py
"""
laragen - Field DSL Parser
===========================

Parses the compact per-field definition strings of the schema::

    "string|required|max:255"
    "foreign:users|required"
    "enum:draft,published|default:draft"
    "decimal:8,2|default:0.00"
    "files:s3|nullable"

The first ``|`` segment is the type (optionally ``type:params``); the rest
are validation tokens kept verbatim and in order.  Unknown base types are
preserved so newer schemas still load.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from laragen.errors import MalformedFieldSpec
from laragen.models import (
    SIMPLE_FIELD_TYPES,
    DecimalParams,
    EnumParams,
    FieldSpec,
    FieldType,
    FileParams,
    ForeignParams,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.parsers")


def _parse_decimal(definition: str, params: str) -> DecimalParams:
    parts: List[str] = [p.strip() for p in params.split(",")]
    if len(parts) != 2:
        raise MalformedFieldSpec(
            definition,
            f"decimal:{params}",
            f"needs exactly two values (precision,scale), got {len(parts)}",
        )
    if not all(p.isdigit() for p in parts):
        raise MalformedFieldSpec(
            definition, f"decimal:{params}", "precision and scale must be integers"
        )
    precision, scale = int(parts[0]), int(parts[1])
    if precision < 1:
        raise MalformedFieldSpec(
            definition, f"decimal:{params}", "precision must be at least 1"
        )
    return DecimalParams(precision=precision, scale=scale)


def _parse_enum(definition: str, params: str) -> EnumParams:
    values: Tuple[str, ...] = tuple(v.strip() for v in params.split(","))
    if not params.strip() or any(not v for v in values):
        raise MalformedFieldSpec(
            definition, f"enum:{params}", "needs at least one non-empty value"
        )
    return EnumParams(values=values)


def parse_field(definition: str) -> FieldSpec:
    """
    Parse one field definition string into a ``FieldSpec``.

    Raises:
        MalformedFieldSpec: on a grammar violation, naming the bad segment.
    """
    if not isinstance(definition, str) or not definition.strip():
        raise MalformedFieldSpec(str(definition), str(definition), "is empty")

    segments: List[str] = definition.split("|")
    type_segment: str = segments[0].strip()
    validations: Tuple[str, ...] = tuple(t for t in segments[1:] if t != "")

    if not type_segment:
        raise MalformedFieldSpec(definition, segments[0], "has no base type")

    params: Optional[str] = None
    base_type: str = type_segment
    if ":" in type_segment:
        base_type, params = type_segment.split(":", 1)
        base_type = base_type.strip()
        if not base_type:
            raise MalformedFieldSpec(definition, type_segment, "has no base type")

    if base_type == FieldType.FOREIGN.value:
        table: str = (params or "").strip()
        if not table:
            raise MalformedFieldSpec(
                definition, type_segment, "needs a target table (foreign:<table>)"
            )
        return FieldSpec(
            base_type=base_type,
            type_params=ForeignParams(table=table),
            validations=validations,
        )

    if base_type == FieldType.ENUM.value:
        if params is None:
            raise MalformedFieldSpec(
                definition, type_segment, "needs at least one value (enum:<a>,<b>)"
            )
        return FieldSpec(
            base_type=base_type,
            type_params=_parse_enum(definition, params),
            validations=validations,
        )

    if base_type == FieldType.DECIMAL.value:
        decimal: DecimalParams = (
            _parse_decimal(definition, params) if params is not None else DecimalParams()
        )
        return FieldSpec(base_type=base_type, type_params=decimal, validations=validations)

    if base_type in (FieldType.FILE.value, FieldType.FILES.value):
        disk: Optional[str] = (params or "").strip() or None
        return FieldSpec(
            base_type=base_type,
            type_params=FileParams(disk=disk),
            validations=validations,
        )

    if params is not None:
        logger.debug(
            "Ignoring parameters '%s' of field type '%s'.", params, base_type
        )
    if base_type not in SIMPLE_FIELD_TYPES:
        logger.info("Unknown field type '%s' kept as passthrough.", base_type)

    return FieldSpec(base_type=base_type, validations=validations)


def field_to_definition(spec: FieldSpec) -> str:
    """Serialise a ``FieldSpec`` back into DSL form."""
    params = spec.type_params
    type_segment: str = spec.base_type
    if isinstance(params, ForeignParams):
        type_segment = f"{spec.base_type}:{params.table}"
    elif isinstance(params, EnumParams):
        type_segment = f"{spec.base_type}:{','.join(params.values)}"
    elif isinstance(params, DecimalParams):
        type_segment = f"{spec.base_type}:{params.precision},{params.scale}"
    elif isinstance(params, FileParams) and params.disk:
        type_segment = f"{spec.base_type}:{params.disk}"
    return "|".join((type_segment,) + tuple(spec.validations))


__all__: List[str] = [
    "parse_field",
    "field_to_definition",
]

logger.debug("laragen.parsers loaded — %d public symbols.", len(__all__))
