# File: laragen/schema.py
"""
laragen - Schema Builder
=========================

Loads the JSON schema document and builds the immutable ``Schema`` model.

Building never raises on DSL or structural problems: a malformed field,
relation, rule or block is recorded as a ``ParseIssue`` on the entity (or
on the schema) and the rest of the document is still built, so that the
validator can report every problem in one pass.

Usage::

    from laragen.schema import load_schema

    schema = load_schema("schema.json")
    for name, entity in schema.entities.items():
        print(name, entity.table, list(entity.fields))
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from laragen.errors import (
    IOFailure,
    InvalidSchemaJson,
    MalformedFieldSpec,
    MalformedRelationSpec,
    MalformedRuleSpec,
    SchemaNotFound,
)
from laragen.models import (
    ROUTE_SYNONYMS,
    ActionSpec,
    AuthConfig,
    CustomRoute,
    Entity,
    FactoryConfig,
    FieldSpec,
    IndexFilter,
    MetaConfig,
    ParseIssue,
    PivotSpec,
    RelationSpec,
    RouteAction,
    RuleExpr,
    Schema,
    ScopeSpec,
)
from laragen.parsers import parse_field
from laragen.rules import parse_relation, parse_rule, parse_scope, resolve_actions
from laragen.utils import table_name_for

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.schema")

# ---------------------------------------------------------------------------
# Issue codes recorded during the build
# ---------------------------------------------------------------------------
MALFORMED_FIELD_SPEC: str = "MALFORMED_FIELD_SPEC"
MALFORMED_RELATION_SPEC: str = "MALFORMED_RELATION_SPEC"
MALFORMED_POLICY_RULE: str = "MALFORMED_POLICY_RULE"
MALFORMED_ACTION: str = "MALFORMED_ACTION"
INVALID_SCHEMA_STRUCTURE: str = "INVALID_SCHEMA_STRUCTURE"

_META_BLOCKS: Tuple[str, ...] = ("app", "database", "mail", "cache", "queues", "cors")
_ROUTE_TOKENS: Tuple[str, ...] = tuple(a.value for a in RouteAction)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_schema_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read and decode the schema document.

    Raises:
        SchemaNotFound:    *path* does not exist or is not a file.
        InvalidSchemaJson: not UTF-8 JSON, or the top level is not an object.
        IOFailure:         the file exists but cannot be read.
    """
    schema_path = Path(path)
    if not schema_path.is_file():
        raise SchemaNotFound(str(schema_path))

    try:
        text: str = schema_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidSchemaJson(str(schema_path), str(exc)) from exc
    except OSError as exc:
        raise IOFailure("read", str(schema_path), exc) from exc

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidSchemaJson(str(schema_path), str(exc)) from exc

    if not isinstance(data, dict):
        raise InvalidSchemaJson(
            str(schema_path),
            f"top-level value must be an object, got {type(data).__name__}",
        )

    logger.debug("Loaded schema document %s (%d top-level keys).", schema_path, len(data))
    return data


def load_schema(path: Union[str, Path]) -> Schema:
    """``load_schema_file`` followed by ``build_schema``."""
    return build_schema(load_schema_file(path))


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def _issue(code: str, subject: str, message: str) -> ParseIssue:
    logger.debug("Parse issue %s on %s: %s", code, subject, message)
    return ParseIssue(code=code, subject=subject, message=message)


def _as_dict(
    value: Any, subject: str, issues: List[ParseIssue]
) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        issues.append(
            _issue(
                INVALID_SCHEMA_STRUCTURE,
                subject,
                f"'{subject}' must be an object, got {type(value).__name__}.",
            )
        )
        return {}
    return value


def _as_str_list(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return ()


def _build_fields(
    owner: str, raw_fields: Dict[str, Any], issues: List[ParseIssue]
) -> Dict[str, FieldSpec]:
    fields: Dict[str, FieldSpec] = {}
    for field_name, definition in raw_fields.items():
        subject: str = f"{owner}.{field_name}"
        if not isinstance(definition, str):
            issues.append(
                _issue(
                    MALFORMED_FIELD_SPEC,
                    subject,
                    f"'{owner}' field '{field_name}' must be a definition string.",
                )
            )
            continue
        try:
            fields[field_name] = parse_field(definition)
        except MalformedFieldSpec as exc:
            issues.append(
                _issue(
                    MALFORMED_FIELD_SPEC,
                    subject,
                    f"'{owner}' field '{field_name}': {exc}",
                )
            )
    return fields


def _build_meta(raw_meta: Any, issues: List[ParseIssue]) -> Optional[MetaConfig]:
    if raw_meta is None:
        return None
    if not isinstance(raw_meta, dict):
        issues.append(
            _issue(
                INVALID_SCHEMA_STRUCTURE,
                "meta",
                f"'meta' must be an object, got {type(raw_meta).__name__}.",
            )
        )
        return None

    defaults = MetaConfig()
    raw_auth: Dict[str, Any] = _as_dict(raw_meta.get("auth"), "meta.auth", issues)
    auth = AuthConfig(
        enabled=bool(raw_auth.get("enabled", False)),
        provider=str(raw_auth.get("provider") or "sanctum"),
        guards=_as_str_list(raw_auth.get("guards")) or AuthConfig().guards,
        stateful_domains=_as_str_list(raw_auth.get("stateful_domains")),
    )

    blocks: Dict[str, Dict[str, Any]] = {
        block: dict(_as_dict(raw_meta.get(block), f"meta.{block}", issues))
        for block in _META_BLOCKS
    }

    return MetaConfig(
        project=str(raw_meta.get("project") or defaults.project),
        version=str(raw_meta.get("version") or defaults.version),
        auth=auth,
        middlewares=_as_str_list(raw_meta.get("middlewares")),
        **blocks,
    )


def _build_routes(
    raw_routes: Any, entity_name: str, issues: List[ParseIssue]
) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    if raw_routes is None:
        return (), ()
    if not isinstance(raw_routes, list):
        issues.append(
            _issue(
                INVALID_SCHEMA_STRUCTURE,
                f"{entity_name}.routes",
                f"'{entity_name}' routes must be a list of route names.",
            )
        )
        return (), ()

    known: List[str] = []
    unknown: List[str] = []
    for token in raw_routes:
        text: str = str(token).strip()
        canonical: str = ROUTE_SYNONYMS.get(text, text)
        if canonical in _ROUTE_TOKENS:
            known.append(canonical)
        else:
            unknown.append(text)
    return tuple(known), tuple(unknown)


def _build_policies(
    raw: Dict[str, Any], entity_name: str, issues: List[ParseIssue]
) -> Dict[str, RuleExpr]:
    policies: Dict[str, RuleExpr] = {}
    for action, rule in raw.items():
        try:
            policies[action] = parse_rule(rule)
        except MalformedRuleSpec as exc:
            issues.append(
                _issue(
                    MALFORMED_POLICY_RULE,
                    f"{entity_name}.policies.{action}",
                    f"'{entity_name}' policy '{action}': {exc}",
                )
            )
    return policies


def _build_actions(
    raw: Dict[str, Any], subject: str, entity_name: str, issues: List[ParseIssue]
) -> Dict[str, Tuple[ActionSpec, ...]]:
    actions: Dict[str, Tuple[ActionSpec, ...]] = {}
    for stage, value in raw.items():
        try:
            actions[stage] = resolve_actions(value)
        except MalformedRuleSpec as exc:
            issues.append(
                _issue(
                    MALFORMED_ACTION,
                    f"{entity_name}.{subject}.{stage}",
                    f"'{entity_name}' {subject} '{stage}': {exc}",
                )
            )
    return actions


def _build_index_filter(
    raw_filters: Dict[str, Any], entity_name: str, issues: List[ParseIssue]
) -> Optional[IndexFilter]:
    raw_index: Dict[str, Any] = _as_dict(
        raw_filters.get("index"), f"{entity_name}.filters.index", issues
    )
    if not raw_index:
        return None

    where: Dict[str, str] = {
        str(k): str(v)
        for k, v in _as_dict(
            raw_index.get("where"), f"{entity_name}.filters.index.where", issues
        ).items()
    }

    order_by: Optional[Tuple[str, str]] = None
    raw_order = raw_index.get("orderBy")
    if isinstance(raw_order, str) and raw_order:
        order_by = (raw_order, "asc")
    elif isinstance(raw_order, list) and raw_order:
        direction: str = str(raw_order[1]).lower() if len(raw_order) > 1 else "asc"
        order_by = (str(raw_order[0]), direction if direction in ("asc", "desc") else "asc")

    return IndexFilter(
        where=where,
        order_by=order_by,
        with_relations=_as_str_list(raw_index.get("with")),
    )


def _build_factory(
    raw_factory: Any, entity_name: str, issues: List[ParseIssue]
) -> Optional[FactoryConfig]:
    if raw_factory is None or raw_factory is False:
        return None
    if raw_factory is True:
        return FactoryConfig()
    if isinstance(raw_factory, dict):
        try:
            return FactoryConfig(
                count=int(raw_factory.get("count", 10)),
                states=_as_str_list(raw_factory.get("states")),
            )
        except (TypeError, ValueError, PydanticValidationError):
            pass
    issues.append(
        _issue(
            INVALID_SCHEMA_STRUCTURE,
            f"{entity_name}.factory",
            f"'{entity_name}' factory must be true, false or "
            "{\"count\": <n>, \"states\": [...]}.",
        )
    )
    return None


def _build_entity(name: str, config: Dict[str, Any]) -> Entity:
    issues: List[ParseIssue] = []

    table: str = str(config.get("table") or table_name_for(name))
    raw_fields: Dict[str, Any] = _as_dict(config.get("fields"), f"{name}.fields", issues)
    fields = _build_fields(name, raw_fields, issues)

    raw_relations: Dict[str, Any] = _as_dict(
        config.get("relations"), f"{name}.relations", issues
    )
    relations: Dict[str, RelationSpec] = {}
    for rel_name, definition in raw_relations.items():
        try:
            relations[rel_name] = parse_relation(definition)
        except MalformedRelationSpec as exc:
            issues.append(
                _issue(
                    MALFORMED_RELATION_SPEC,
                    f"{name}.{rel_name}",
                    f"'{name}' relation '{rel_name}': {exc}",
                )
            )

    routes, unknown_routes = _build_routes(config.get("routes"), name, issues)

    scopes: Dict[str, ScopeSpec] = {
        scope_name: parse_scope(scope_name, definition)
        for scope_name, definition in _as_dict(
            config.get("scopes"), f"{name}.scopes", issues
        ).items()
    }

    policies = _build_policies(
        _as_dict(config.get("policies"), f"{name}.policies", issues), name, issues
    )
    hooks = _build_actions(
        _as_dict(config.get("hooks"), f"{name}.hooks", issues), "hooks", name, issues
    )
    observers = _build_actions(
        _as_dict(config.get("observers"), f"{name}.observers", issues),
        "observers",
        name,
        issues,
    )
    filters = _build_index_filter(
        _as_dict(config.get("filters"), f"{name}.filters", issues), name, issues
    )
    factory = _build_factory(config.get("factory"), name, issues)

    entity = Entity(
        name=name,
        table=table,
        fields=fields,
        relations=relations,
        routes=routes,
        unknown_routes=unknown_routes,
        scopes=scopes,
        policies=policies,
        hooks=hooks,
        observers=observers,
        filters=filters,
        factory=factory,
        seeder=config.get("seeder") is True,
        cache=dict(_as_dict(config.get("cache"), f"{name}.cache", issues)),
        field_names=tuple(raw_fields),
        relation_names=tuple(raw_relations),
        parse_issues=tuple(issues),
    )
    logger.debug("Built %r.", entity)
    return entity


def _build_pivot(name: str, config: Dict[str, Any]) -> PivotSpec:
    issues: List[ParseIssue] = []
    fields = _build_fields(name, _as_dict(config.get("fields"), f"{name}.fields", issues), issues)
    unique: Tuple[str, ...] = _as_str_list(config.get("unique"))
    return PivotSpec(name=name, fields=fields, unique=unique, parse_issues=tuple(issues))


def _build_custom_routes(
    raw_custom: Dict[str, Any], issues: List[ParseIssue]
) -> Tuple[CustomRoute, ...]:
    raw_routes = raw_custom.get("routes")
    if raw_routes is None:
        return ()
    if not isinstance(raw_routes, list):
        issues.append(
            _issue(INVALID_SCHEMA_STRUCTURE, "custom.routes", "'custom.routes' must be a list.")
        )
        return ()

    routes: List[CustomRoute] = []
    for index, item in enumerate(raw_routes):
        if not isinstance(item, dict):
            issues.append(
                _issue(
                    INVALID_SCHEMA_STRUCTURE,
                    f"custom.routes[{index}]",
                    f"Custom route #{index} must be an object.",
                )
            )
            continue
        try:
            routes.append(
                CustomRoute(
                    method=str(item.get("method") or "get"),
                    uri=str(item.get("uri") or ""),
                    controller=str(item.get("controller") or ""),
                    middleware=_as_str_list(item.get("middleware")),
                    name=str(item["name"]) if item.get("name") else None,
                )
            )
        except PydanticValidationError:
            issues.append(
                _issue(
                    INVALID_SCHEMA_STRUCTURE,
                    f"custom.routes[{index}]",
                    f"Custom route #{index} needs a 'uri' and a 'controller'.",
                )
            )
    return tuple(routes)


def build_schema(raw: Dict[str, Any]) -> Schema:
    """
    Build the ``Schema`` model from a decoded schema document.

    The document itself is deep-copied into ``Schema.raw`` so later
    mutation of *raw* by the caller cannot change the schema hash.
    """
    issues: List[ParseIssue] = []

    meta = _build_meta(raw.get("meta"), issues)

    entities: Dict[str, Entity] = {}
    for name, config in _as_dict(raw.get("models"), "models", issues).items():
        if not isinstance(config, dict) or not name.strip():
            issues.append(
                _issue(
                    INVALID_SCHEMA_STRUCTURE,
                    str(name),
                    f"Model '{name}' must be a named object.",
                )
            )
            continue
        entities[name] = _build_entity(name, config)

    pivots: Dict[str, PivotSpec] = {}
    for name, config in _as_dict(raw.get("pivots"), "pivots", issues).items():
        if not isinstance(config, dict) or not name.strip():
            issues.append(
                _issue(
                    INVALID_SCHEMA_STRUCTURE,
                    str(name),
                    f"Pivot '{name}' must be a named object.",
                )
            )
            continue
        pivots[name] = _build_pivot(name, config)

    custom_routes = _build_custom_routes(
        _as_dict(raw.get("custom"), "custom", issues), issues
    )

    schema = Schema(
        meta=meta,
        entities=entities,
        pivots=pivots,
        custom_routes=custom_routes,
        raw=copy.deepcopy(raw),
        parse_issues=tuple(issues),
    )
    logger.info(
        "Schema built: %d entities, %d pivots, %d custom routes.",
        len(entities),
        len(pivots),
        len(custom_routes),
    )
    return schema


__all__: List[str] = [
    "MALFORMED_FIELD_SPEC",
    "MALFORMED_RELATION_SPEC",
    "MALFORMED_POLICY_RULE",
    "MALFORMED_ACTION",
    "INVALID_SCHEMA_STRUCTURE",
    "load_schema_file",
    "load_schema",
    "build_schema",
]

logger.debug("laragen.schema loaded — %d public symbols.", len(__all__))
