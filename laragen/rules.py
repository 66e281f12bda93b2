# File: laragen/rules.py
"""
laragen - Relation, Policy and Hook Resolver
=============================================

Turns the small string languages of an entity block into typed values:

* relations   ``"belongsToMany:Tag,post_tag,post_id,tag_id"``
* policies    ``"role:admin|owner"``, ``"authenticated,owner"``
* hook and observer actions, given as a name, a list or
  ``{"action": ..., "message": ...}``
* query scopes ``"where:status,published"``, ``"orderBy:created_at,desc"``

Policy rules combine with ``|`` (any) or ``,`` (all).  A rule using both
is parsed with ``|`` taking precedence, each ``|`` clause read as a single
atomic condition, and is flagged as ``mixed_operators``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from laragen.errors import MalformedRelationSpec, MalformedRuleSpec
from laragen.models import (
    LITERAL_CONDITIONS,
    ActionSpec,
    Condition,
    ConditionKind,
    RelationKind,
    RelationSpec,
    RuleExpr,
    RuleOperator,
    ScopeSpec,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.rules")

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

BUILTIN_ACTIONS: Tuple[str, ...] = (
    "log",
    "sanitizeInput",
    "generateUuid",
    "clearCache",
    "cleanupFiles",
    "logActivity",
    "moveChildrenToParent",
    "clearProjectCache",
    "updateProjectProgress",
    "clearProjectsCache",
)

HOOK_STAGES: Tuple[str, ...] = (
    "beforeCreate",
    "afterCreate",
    "beforeUpdate",
    "afterUpdate",
    "beforeDelete",
    "afterDelete",
)

OBSERVER_EVENTS: Tuple[str, ...] = (
    "creating",
    "created",
    "updating",
    "updated",
    "saving",
    "saved",
    "deleting",
    "deleted",
    "restoring",
    "restored",
)

# Condition fields that compare against the authenticated user's id
USER_ID_FIELDS: Tuple[str, ...] = ("user_id", "owner_id")

# Positional parameter names per relation kind
_RELATION_PARAMS: Dict[str, Tuple[str, ...]] = {
    RelationKind.BELONGS_TO.value: ("target", "foreign_key"),
    RelationKind.HAS_ONE.value: ("target", "foreign_key"),
    RelationKind.HAS_MANY.value: ("target", "foreign_key"),
    RelationKind.BELONGS_TO_MANY.value: (
        "target",
        "pivot_table",
        "foreign_pivot_key",
        "related_pivot_key",
    ),
    RelationKind.MORPH_TO.value: (),
    RelationKind.MORPH_MANY.value: ("target", "morph_name"),
    RelationKind.MORPHED_BY_MANY.value: ("target", "morph_name"),
}


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


def parse_relation(definition: str) -> RelationSpec:
    """
    Parse ``<kind>[:<p1>[,<p2>...]]`` into a ``RelationSpec``.

    A missing target is not an error here; the returned RelationSpec has
    ``unresolved_target`` set and the validator reports it.

    Raises:
        MalformedRelationSpec: empty definition or unknown kind.
    """
    if not isinstance(definition, str) or not definition.strip():
        raise MalformedRelationSpec(str(definition), "is empty")

    kind_token, _, params_text = definition.partition(":")
    kind_token = kind_token.strip()
    try:
        kind = RelationKind(kind_token)
    except ValueError:
        raise MalformedRelationSpec(
            definition, f"unknown relation kind '{kind_token}'"
        ) from None

    params: List[str] = [p.strip() for p in params_text.split(",")] if params_text else []
    names: Tuple[str, ...] = _RELATION_PARAMS[kind.value]
    if kind is RelationKind.MORPH_TO and any(params):
        logger.debug("morphTo ignores parameters in '%s'.", definition)

    values: Dict[str, Optional[str]] = {}
    for index, name in enumerate(names):
        value: Optional[str] = params[index] if index < len(params) else None
        values[name] = value or None

    return RelationSpec(kind=kind, **values)


def relation_to_definition(spec: RelationSpec) -> str:
    """Serialise a ``RelationSpec`` back into DSL form."""
    names: Tuple[str, ...] = _RELATION_PARAMS[spec.kind]
    params: List[str] = [getattr(spec, name) or "" for name in names]
    while params and not params[-1]:
        params.pop()
    if not params:
        return spec.kind
    return f"{spec.kind}:{','.join(params)}"


# ---------------------------------------------------------------------------
# Policy rules
# ---------------------------------------------------------------------------


def _parse_condition(token: str, rule: str) -> Condition:
    token = token.strip()
    if not token:
        raise MalformedRuleSpec(rule, "contains an empty condition")

    if token.startswith("role:"):
        roles: Tuple[str, ...] = tuple(
            r.strip() for r in token[len("role:"):].split(",") if r.strip()
        )
        if not roles:
            raise MalformedRuleSpec(rule, "role condition names no roles")
        return Condition(kind=ConditionKind.ROLE, roles=roles)

    if token in LITERAL_CONDITIONS:
        return Condition(kind=ConditionKind(token))

    if ":" in token:
        field, value = token.split(":", 1)
        field = field.strip()
        if not field:
            raise MalformedRuleSpec(rule, f"condition '{token}' names no field")
        if field in USER_ID_FIELDS:
            return Condition(kind=ConditionKind.USER_FIELD, field=field)
        return Condition(kind=ConditionKind.FIELD_EQUALS, field=field, value=value.strip())

    return Condition(kind=ConditionKind.PREDICATE, method=token)


def parse_rule(rule: str) -> RuleExpr:
    """
    Parse a policy rule string into a ``RuleExpr``.

    Raises:
        MalformedRuleSpec: empty rule or empty clause.
    """
    if not isinstance(rule, str) or not rule.strip():
        raise MalformedRuleSpec(str(rule), "is empty")

    text: str = rule.strip()
    if "|" in text:
        conditions = tuple(_parse_condition(c, text) for c in text.split("|"))
        mixed: bool = "," in text
        if mixed:
            logger.debug(
                "Policy rule '%s' mixes '|' and ','; '|' takes precedence.", text
            )
        return RuleExpr(
            operator=RuleOperator.ANY,
            conditions=conditions,
            source=text,
            mixed_operators=mixed,
        )

    if "," in text:
        return RuleExpr(
            operator=RuleOperator.ALL,
            conditions=tuple(_parse_condition(c, text) for c in text.split(",")),
            source=text,
        )

    return RuleExpr(
        operator=RuleOperator.SINGLE,
        conditions=(_parse_condition(text, text),),
        source=text,
    )


# ---------------------------------------------------------------------------
# Hook and observer actions
# ---------------------------------------------------------------------------


def is_builtin_action(name: str) -> bool:
    return name in BUILTIN_ACTIONS


def _resolve_one(item: Any) -> ActionSpec:
    if isinstance(item, str):
        name: str = item.strip()
        if not name:
            raise MalformedRuleSpec(item, "action name is empty")
        return ActionSpec(name=name, builtin=is_builtin_action(name))
    if isinstance(item, dict):
        name = str(item.get("action", "")).strip()
        if not name:
            raise MalformedRuleSpec(str(item), "action object has no 'action' key")
        message = item.get("message")
        return ActionSpec(
            name=name,
            builtin=is_builtin_action(name),
            message=str(message) if message is not None else None,
        )
    raise MalformedRuleSpec(repr(item), "action must be a name or an object")


def resolve_actions(value: Any) -> Tuple[ActionSpec, ...]:
    """
    Normalise a hook or observer value into an ordered tuple of actions.

    Accepts a single name, an ``{"action", "message"}`` object, or a list
    mixing both.
    """
    if isinstance(value, list):
        return tuple(_resolve_one(item) for item in value)
    return (_resolve_one(value),)


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


def parse_scope(name: str, definition: Any) -> ScopeSpec:
    """
    Parse a scope definition.

    Supported forms are ``where:<field>,<value>``, ``orderBy:<field>[,<dir>]``
    and ``whereNull:<field>``.  Anything else yields an unsupported scope
    (``method`` None), which the validator reports as a warning.
    """
    source: str = definition if isinstance(definition, str) else repr(definition)
    if not isinstance(definition, str) or ":" not in definition:
        return ScopeSpec(name=name, source=source)

    method, _, params_text = definition.partition(":")
    params: List[str] = [p.strip() for p in params_text.split(",")]
    field: str = params[0] if params else ""
    if not field:
        return ScopeSpec(name=name, source=source)

    if method == "where" and len(params) >= 2:
        return ScopeSpec(
            name=name,
            method="where",
            field=field,
            argument=",".join(params[1:]),
            source=source,
        )
    if method == "orderBy":
        direction: str = params[1].lower() if len(params) > 1 and params[1] else "asc"
        if direction not in ("asc", "desc"):
            return ScopeSpec(name=name, source=source)
        return ScopeSpec(
            name=name, method="orderBy", field=field, argument=direction, source=source
        )
    if method == "whereNull":
        return ScopeSpec(name=name, method="whereNull", field=field, source=source)

    return ScopeSpec(name=name, source=source)


__all__: List[str] = [
    "BUILTIN_ACTIONS",
    "HOOK_STAGES",
    "OBSERVER_EVENTS",
    "USER_ID_FIELDS",
    "parse_relation",
    "relation_to_definition",
    "parse_rule",
    "is_builtin_action",
    "resolve_actions",
    "parse_scope",
]

logger.debug("laragen.rules loaded — %d public symbols.", len(__all__))
