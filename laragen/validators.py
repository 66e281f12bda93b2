# File: laragen/validators.py
"""
laragen - Schema Validators
============================
This module provides a **pure-function validation pipeline** that operates
on the ``Schema`` model built by ``laragen.schema``.

The builder has already parsed every DSL string; anything it could not
parse was recorded as a ``ParseIssue`` and is reported here as an error.
This module adds the **cross-entity semantic checks**: foreign-key table
resolution, relation target resolution, pivot table references, and a
set of non-fatal warnings (dependency cycles, mixed policy operators,
unknown field types, unknown routes, unsupported scopes, unknown hook
stages).

Validation never raises.  Items are produced in a stable order: schema
level first, then per entity in declaration order (fields, then
relations, then the rest), then pivots, then cycles.

Usage by downstream modules:
    from laragen.validators import validate_schema
    result = validate_schema(schema)
    if not result:
        print(result.format_report())
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from laragen.models import Entity, ParseIssue, PivotSpec, Schema
from laragen.ordering import find_cycles
from laragen.rules import HOOK_STAGES
from laragen.schema import MALFORMED_FIELD_SPEC, MALFORMED_RELATION_SPEC

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """
    Accumulates ``ValidationError`` instances produced by the pipeline.

    Insertion order is preserved; it is the report order.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self, level: Optional[str] = None) -> List[str]:
        return [e.code for e in self._items if level is None or e.level == level]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _report_issues(
    result: ValidationResult, issues: List[ParseIssue], owner: str
) -> None:
    for issue in issues:
        result.add_error(
            issue.code,
            issue.message,
            {"owner": owner, "subject": issue.subject},
        )


# ---------------------------------------------------------------------------
# Schema-level validators
# ---------------------------------------------------------------------------


def validate_meta(schema: Schema) -> ValidationResult:
    """The schema must carry a ``meta`` block."""
    result: ValidationResult = ValidationResult()
    if schema.meta is None:
        result.add_error("MISSING_META", "Missing 'meta' section in schema.")
    return result


def validate_entities_present(schema: Schema) -> ValidationResult:
    """At least one model must be declared."""
    result: ValidationResult = ValidationResult()
    if not schema.entities:
        result.add_error("NO_ENTITIES", "No models defined in schema.")
    return result


def validate_structure(schema: Schema) -> ValidationResult:
    """Report document-level problems found while building the schema."""
    result: ValidationResult = ValidationResult()
    _report_issues(result, list(schema.parse_issues), "schema")
    return result


# ---------------------------------------------------------------------------
# Entity-level validators
# ---------------------------------------------------------------------------


def _issues_by_subject(entity: Entity, code: str) -> Dict[str, ParseIssue]:
    return {i.subject: i for i in entity.parse_issues if i.code == code}


def validate_entity_fields(entity: Entity, schema: Schema) -> ValidationResult:
    """
    Check an entity's fields, one field at a time in declaration order:
    - at least one field declared
    - malformed field definitions
    - ``foreign:<table>`` targets resolve to an entity table
    - unknown base types (warning)

    Complexity: O(F) where F = number of fields.
    """
    result: ValidationResult = ValidationResult()
    field_issues: Dict[str, ParseIssue] = _issues_by_subject(entity, MALFORMED_FIELD_SPEC)

    if not entity.fields and not field_issues:
        result.add_error(
            "ENTITY_HAS_NO_FIELDS",
            f"Model '{entity.name}' has no fields defined.",
            {"entity": entity.name},
        )

    tables: Dict[str, str] = schema.entity_tables
    for field_name in entity.field_names or tuple(entity.fields):
        issue: Optional[ParseIssue] = field_issues.pop(f"{entity.name}.{field_name}", None)
        if issue is not None:
            _report_issues(result, [issue], entity.name)
            continue
        spec = entity.fields.get(field_name)
        if spec is None:
            continue
        table = spec.foreign_table
        if table is not None and table not in tables:
            result.add_error(
                "UNKNOWN_FOREIGN_TABLE",
                f"Model '{entity.name}' field '{field_name}' references "
                f"unknown table '{table}'.",
                {"entity": entity.name, "field": field_name, "table": table},
            )
        if not spec.is_known_type:
            result.add_warning(
                "UNKNOWN_FIELD_TYPE",
                f"Model '{entity.name}' field '{field_name}' has unknown type "
                f"'{spec.base_type}'; it is passed through unchanged.",
                {"entity": entity.name, "field": field_name, "type": spec.base_type},
            )

    _report_issues(result, list(field_issues.values()), entity.name)
    return result


def validate_entity_relations(entity: Entity, schema: Schema) -> ValidationResult:
    """
    Check that every relation names an existing entity, in declaration
    order, with malformed definitions reported in place.

    Complexity: O(R) where R = number of relations.
    """
    result: ValidationResult = ValidationResult()
    relation_issues: Dict[str, ParseIssue] = _issues_by_subject(
        entity, MALFORMED_RELATION_SPEC
    )

    for rel_name in entity.relation_names or tuple(entity.relations):
        issue: Optional[ParseIssue] = relation_issues.pop(f"{entity.name}.{rel_name}", None)
        if issue is not None:
            _report_issues(result, [issue], entity.name)
            continue
        spec = entity.relations.get(rel_name)
        if spec is None:
            continue
        ctx: Dict[str, Any] = {"entity": entity.name, "relation": rel_name}
        if spec.unresolved_target:
            result.add_error(
                "RELATION_TARGET_MISSING",
                f"Model '{entity.name}' relation '{rel_name}' ({spec.kind}) "
                f"does not name a target model.",
                ctx,
            )
        elif spec.target is not None and spec.target not in schema.entities:
            result.add_error(
                "UNKNOWN_RELATION_TARGET",
                f"Model '{entity.name}' relation '{rel_name}' references "
                f"unknown model '{spec.target}'.",
                {**ctx, "target": spec.target},
            )

    _report_issues(result, list(relation_issues.values()), entity.name)
    return result


def validate_entity_options(entity: Entity, schema: Schema) -> ValidationResult:
    """
    Remaining per-entity checks: other parse issues, then warnings for
    unknown routes, unsupported scopes, mixed policy operators and unknown
    hook stages.
    """
    result: ValidationResult = ValidationResult()
    _report_issues(
        result,
        [
            i
            for i in entity.parse_issues
            if i.code not in (MALFORMED_FIELD_SPEC, MALFORMED_RELATION_SPEC)
        ],
        entity.name,
    )

    for token in entity.unknown_routes:
        result.add_warning(
            "UNKNOWN_ROUTE_ACTION",
            f"Model '{entity.name}' route '{token}' is not one of "
            f"list/show/create/update/delete and is ignored.",
            {"entity": entity.name, "route": token},
        )

    for scope in entity.scopes.values():
        if not scope.supported:
            result.add_warning(
                "UNSUPPORTED_SCOPE",
                f"Model '{entity.name}' scope '{scope.name}' ('{scope.source}') "
                f"is not a supported form and is skipped.",
                {"entity": entity.name, "scope": scope.name},
            )

    for action, rule in entity.policies.items():
        if rule.mixed_operators:
            result.add_warning(
                "POLICY_RULE_MIXED_OPERATORS",
                f"Model '{entity.name}' policy '{action}' mixes '|' and ','; "
                f"it is read as an OR of '{rule.source}' split on '|'.",
                {"entity": entity.name, "action": action, "rule": rule.source},
            )

    for stage in entity.hooks:
        if stage not in HOOK_STAGES:
            result.add_warning(
                "UNKNOWN_HOOK_STAGE",
                f"Model '{entity.name}' hook stage '{stage}' is never called "
                f"by the generated controller.",
                {"entity": entity.name, "stage": stage},
            )

    return result


def validate_entity(entity: Entity, schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    validators: List[Callable[[Entity, Schema], ValidationResult]] = [
        validate_entity_fields,
        validate_entity_relations,
        validate_entity_options,
    ]
    for validator_fn in validators:
        result.merge(validator_fn(entity, schema))
    return result


# ---------------------------------------------------------------------------
# Pivot and graph validators
# ---------------------------------------------------------------------------


def validate_pivot(pivot: PivotSpec, schema: Schema) -> ValidationResult:
    """Pivot fields parse, foreign targets resolve, unique columns exist."""
    result: ValidationResult = ValidationResult()
    _report_issues(result, list(pivot.parse_issues), pivot.name)

    tables: Dict[str, str] = schema.entity_tables
    for field_name, spec in pivot.fields.items():
        table = spec.foreign_table
        if table is not None and table not in tables:
            result.add_error(
                "PIVOT_UNKNOWN_TABLE",
                f"Pivot '{pivot.name}' field '{field_name}' references "
                f"unknown table '{table}'.",
                {"pivot": pivot.name, "field": field_name, "table": table},
            )

    declared: Set[str] = set(pivot.fields)
    for column in pivot.unique:
        if column not in declared:
            result.add_warning(
                "PIVOT_UNIQUE_UNKNOWN_FIELD",
                f"Pivot '{pivot.name}' unique constraint names undeclared "
                f"field '{column}'.",
                {"pivot": pivot.name, "field": column},
            )
    return result


def validate_dependency_cycles(schema: Schema) -> ValidationResult:
    """
    Warn about cycles in the dependency graph; the orderer drops the
    closing edge of each.
    """
    result: ValidationResult = ValidationResult()
    for cycle in find_cycles(schema):
        cycle_str: str = " → ".join(cycle)
        result.add_warning(
            "BELONGS_TO_CYCLE",
            f"Circular model dependency detected: {cycle_str}. "
            f"Generation order will not respect every edge.",
            {"cycle": cycle},
        )
    if len(result) == 0:
        logger.debug("No circular model dependencies detected.")
    return result


# ---------------------------------------------------------------------------
# Composite validation orchestrator
# ---------------------------------------------------------------------------


def validate_schema(schema: Schema) -> ValidationResult:
    """
    **Master validation entry point.**  Returns a merged
    ``ValidationResult``; never raises.

    Complexity: O(E + F + R + P) — linear in total schema entries.
    """
    logger.info("Starting validation — %d models.", len(schema.entities))
    result: ValidationResult = ValidationResult()

    validators: List[Callable[[Schema], ValidationResult]] = [
        validate_meta,
        validate_entities_present,
        validate_structure,
    ]
    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(schema))

    for entity in schema.entities.values():
        result.merge(validate_entity(entity, schema))

    for pivot in schema.pivots.values():
        result.merge(validate_pivot(pivot, schema))

    result.merge(validate_dependency_cycles(schema))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_meta",
    "validate_entities_present",
    "validate_structure",
    "validate_entity_fields",
    "validate_entity_relations",
    "validate_entity_options",
    "validate_entity",
    "validate_pivot",
    "validate_dependency_cycles",
    "validate_schema",
]

logger.debug("laragen.validators loaded — %d public symbols.", len(__all__))
