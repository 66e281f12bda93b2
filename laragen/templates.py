# File: laragen/templates.py
"""
laragen - PHP Template Engine
==============================
Turns a validated ``Schema`` into Laravel source files:

    1. Eloquent models (fillable, casts, relations, scopes)
    2. Create-table migrations, pivot migrations, the users modify migration
    3. API controllers with hook dispatch and file endpoints
    4. The generated section of ``routes/api.php``
    5. Factories and seeders, plus the DatabaseSeeder call list
    6. Policies, observers and their service providers
    7. The AuthController

All string assembly uses ``List[str]`` + ``"\\n".join()``.  Rendering
methods never touch the disk; paths and merging belong to the generator.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple

from laragen.manifest import MIGRATIONS_DIR, MODIFY_USERS_SUFFIX, migration_suffix
from laragen.merge import ROUTES_MARKERS, SEEDERS_MARKERS, wrap_section
from laragen.models import (
    ActionSpec,
    Condition,
    ConditionKind,
    CustomRoute,
    Entity,
    FieldSpec,
    FieldType,
    PivotSpec,
    RelationKind,
    RelationSpec,
    RouteAction,
    RuleExpr,
    RuleOperator,
    Schema,
)
from laragen.rules import HOOK_STAGES, OBSERVER_EVENTS
from laragen.utils import (
    indent_lines,
    model_name_for_table,
    php_list,
    php_string,
    resource_segment,
    to_camel_case,
    to_snake_case,
    to_studly_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Columns managed by $table->id() / timestamps() / softDeletes()
AUTO_COLUMNS: Tuple[str, ...] = ("id", "created_at", "updated_at", "deleted_at")

# Columns the framework's own users migration already creates
DEFAULT_USER_COLUMNS: Tuple[str, ...] = (
    "id",
    "name",
    "email",
    "email_verified_at",
    "password",
    "remember_token",
    "created_at",
    "updated_at",
)

DEFAULT_PER_PAGE: int = 15
DEFAULT_DISK: str = "public"
MIGRATION_TIMESTAMP_FORMAT: str = "%Y_%m_%d_%H%M%S"

_CONTROLLER_NS: str = "\\App\\Http\\Controllers"

_CAST_MAP: Dict[str, str] = {
    FieldType.BOOLEAN.value: "boolean",
    FieldType.JSON.value: "array",
    FieldType.DATE.value: "date",
    FieldType.DATETIME.value: "datetime",
    FieldType.TIMESTAMP.value: "datetime",
    FieldType.DECIMAL.value: "float",
    FieldType.FLOAT.value: "float",
    FieldType.INTEGER.value: "integer",
    FieldType.FILES.value: "array",
}

_COLUMN_METHODS: Dict[str, str] = {
    FieldType.STRING.value: "string",
    FieldType.TEXT.value: "text",
    FieldType.LONG_TEXT.value: "longText",
    FieldType.INTEGER.value: "integer",
    FieldType.BOOLEAN.value: "boolean",
    FieldType.DATE.value: "date",
    FieldType.DATETIME.value: "dateTime",
    FieldType.TIMESTAMP.value: "timestamp",
    FieldType.JSON.value: "json",
    FieldType.FLOAT.value: "float",
    FieldType.UUID.value: "uuid",
    FieldType.FILE.value: "string",
    FieldType.FILES.value: "json",
}

# Validation rule implied by each base type
_TYPE_RULES: Dict[str, str] = {
    FieldType.STRING.value: "string",
    FieldType.TEXT.value: "string",
    FieldType.LONG_TEXT.value: "string",
    FieldType.INTEGER.value: "integer",
    FieldType.BOOLEAN.value: "boolean",
    FieldType.DATE.value: "date",
    FieldType.DATETIME.value: "date",
    FieldType.TIMESTAMP.value: "date",
    FieldType.JSON.value: "array",
    FieldType.FLOAT.value: "numeric",
    FieldType.DECIMAL.value: "numeric",
    FieldType.UUID.value: "uuid",
}

# relation kind → (Eloquent method, return type class)
_RELATION_METHODS: Dict[str, Tuple[str, str]] = {
    RelationKind.BELONGS_TO.value: ("belongsTo", "BelongsTo"),
    RelationKind.HAS_ONE.value: ("hasOne", "HasOne"),
    RelationKind.HAS_MANY.value: ("hasMany", "HasMany"),
    RelationKind.BELONGS_TO_MANY.value: ("belongsToMany", "BelongsToMany"),
    RelationKind.MORPH_TO.value: ("morphTo", "MorphTo"),
    RelationKind.MORPH_MANY.value: ("morphMany", "MorphMany"),
    RelationKind.MORPHED_BY_MANY.value: ("morphedByMany", "MorphToMany"),
}

# route action → (HTTP verb, takes the model parameter, controller method)
ROUTE_VERBS: Dict[str, Tuple[str, bool, str]] = {
    RouteAction.LIST.value: ("get", False, "index"),
    RouteAction.SHOW.value: ("get", True, "show"),
    RouteAction.CREATE.value: ("post", False, "store"),
    RouteAction.UPDATE.value: ("put", True, "update"),
    RouteAction.DELETE.value: ("delete", True, "destroy"),
}

STANDARD_POLICY_METHODS: Tuple[str, ...] = (
    "viewAny",
    "view",
    "create",
    "update",
    "delete",
    "restore",
    "forceDelete",
)
_USER_ONLY_POLICY_METHODS: Tuple[str, ...] = ("viewAny", "create")

# policy method → controller action it guards
_POLICY_ACTIONS: Dict[str, str] = {
    "viewAny": "index",
    "view": "show",
    "create": "store",
    "update": "update",
    "delete": "destroy",
}

# Conditions that read the model instance
_MODEL_CONDITIONS: Tuple[str, ...] = (
    ConditionKind.OWNER.value,
    ConditionKind.PUBLIC.value,
    ConditionKind.COLLABORATOR.value,
    ConditionKind.PROJECT_MEMBER.value,
    ConditionKind.PROJECT_OWNER.value,
    ConditionKind.ASSIGNEE.value,
    ConditionKind.USER_FIELD.value,
    ConditionKind.FIELD_EQUALS.value,
)

# Built-in actions that need a saved model rather than request data
_MODEL_ONLY_ACTIONS: Tuple[str, ...] = (
    "cleanupFiles",
    "logActivity",
    "moveChildrenToParent",
    "clearProjectCache",
    "updateProjectProgress",
)

# Facade (or helper class) each built-in action uses
_ACTION_IMPORTS: Dict[str, str] = {
    "log": "Illuminate\\Support\\Facades\\Log",
    "logActivity": "Illuminate\\Support\\Facades\\Log",
    "generateUuid": "Illuminate\\Support\\Str",
    "clearCache": "Illuminate\\Support\\Facades\\Cache",
    "clearProjectCache": "Illuminate\\Support\\Facades\\Cache",
    "clearProjectsCache": "Illuminate\\Support\\Facades\\Cache",
    "cleanupFiles": "Illuminate\\Support\\Facades\\Storage",
}

_NUMERIC_RE: re.Pattern[str] = re.compile(r"^-?\d+(\.\d+)?$")

_DELETE_STAGES: Tuple[str, ...] = ("beforeDelete", "afterDelete", "deleting", "deleted")


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def migration_timestamp(moment: datetime) -> str:
    """``2024_01_31_120000`` form used as the migration filename prefix."""
    return moment.strftime(MIGRATION_TIMESTAMP_FORMAT)


def migration_filename(moment: datetime, table: str) -> str:
    return f"{MIGRATIONS_DIR}/{migration_timestamp(moment)}{migration_suffix(table)}"


def modify_users_filename(moment: datetime) -> str:
    return f"{MIGRATIONS_DIR}/{migration_timestamp(moment)}{MODIFY_USERS_SUFFIX}"


def route_parameter(entity: Entity) -> str:
    """Route-model binding parameter, matching the controller's argument."""
    return entity.variable_name


def _model_variable(entity: Entity) -> str:
    # $user is the policy's first argument
    name: str = entity.variable_name
    return "model" if name == "user" else name


def _php_double_quoted(text: str) -> str:
    """Escape text for a PHP double-quoted string, keeping ``$var`` interpolation."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _php_default(value: str) -> str:
    if value in ("true", "false", "null"):
        return value
    if _NUMERIC_RE.match(value):
        return value
    return php_string(value)


def _model_class_for_table(schema: Schema, table: str) -> str:
    entity: Optional[Entity] = schema.entity_for_table(table)
    return entity.class_name if entity is not None else model_name_for_table(table)


# ---------------------------------------------------------------------------
# Field-level rendering
# ---------------------------------------------------------------------------


def migration_column(name: str, spec: FieldSpec) -> List[str]:
    """
    Blueprint statements for one field.

    Most fields produce one line; a foreign field whose name does not end
    in ``_id`` and an indexed field produce an extra statement.
    """
    extra: List[str] = []
    base: str = spec.base_type

    if base == FieldType.FOREIGN.value:
        table: str = spec.foreign_table or ""
        if name.endswith("_id"):
            column = f"$table->foreignId('{name}')"
            tail = f"->constrained('{table}')"
        else:
            column = f"$table->unsignedBigInteger('{name}')"
            tail = ""
            extra.append(f"$table->foreign('{name}')->references('id')->on('{table}');")
    elif base == FieldType.STRING.value and spec.max_length is not None:
        column, tail = f"$table->string('{name}', {spec.max_length})", ""
    elif base == FieldType.ENUM.value:
        column, tail = f"$table->enum('{name}', {php_list(spec.enum_values)})", ""
    elif base == FieldType.DECIMAL.value:
        precision, scale = spec.type_params.precision, spec.type_params.scale
        column, tail = f"$table->decimal('{name}', {precision}, {scale})", ""
    else:
        method: Optional[str] = _COLUMN_METHODS.get(base)
        if method is None:
            logger.debug("No column method for type '%s'; using string.", base)
            method = "string"
        column, tail = f"$table->{method}('{name}')", ""

    modifiers: List[str] = []
    if spec.is_nullable:
        modifiers.append("->nullable()")
    default: Optional[str] = spec.default_value
    if default is not None:
        if default == "now":
            modifiers.append("->useCurrent()")
        else:
            modifiers.append(f"->default({_php_default(default)})")
    if spec.is_unique:
        modifiers.append("->unique()")

    lines: List[str] = [f"{column}{''.join(modifiers)}{tail};"]
    lines.extend(extra)
    if spec.has_index:
        lines.append(f"$table->index('{name}');")
    return lines


def validation_rules(table: str, name: str, spec: FieldSpec, for_update: bool = False) -> List[str]:
    """
    Laravel validation tokens for one field.

    Schema tokens keep their order; ``index`` and ``default:`` are storage
    hints and are dropped, ``unique`` gains its table and column, and the
    rule implied by the type is appended when not already present.
    """
    tokens: List[str] = []
    for token in spec.validations:
        if token == "index" or token.startswith("default:"):
            continue
        if token == "unique":
            token = f"unique:{table},{name}"
        elif token == "required" and for_update:
            token = "sometimes"
        tokens.append(token)

    implied: Optional[str] = None
    if spec.base_type == FieldType.ENUM.value:
        implied = "in:" + ",".join(spec.enum_values)
    elif spec.base_type == FieldType.FOREIGN.value:
        implied = f"exists:{spec.foreign_table},id"
    else:
        implied = _TYPE_RULES.get(spec.base_type)

    names: Set[str] = {t.split(":", 1)[0] for t in tokens}
    if implied is not None and implied.split(":", 1)[0] not in names:
        tokens.append(implied)
    return tokens


def _rules_expression(tokens: Sequence[str], ignore_variable: Optional[str] = None) -> str:
    """PHP expression for a rule string; update rules ignore the current row."""
    if ignore_variable is None:
        return php_string("|".join(tokens))
    unique: List[str] = [t for t in tokens if t.startswith("unique:")]
    if not unique:
        return php_string("|".join(tokens))
    rest: List[str] = [t for t in tokens if not t.startswith("unique:")]
    text: str = "|".join(rest + [f"{unique[0]},"])
    return f"{php_string(text)} . ${ignore_variable}->id"


def fake_value(schema: Schema, name: str, spec: FieldSpec) -> str:
    """Faker expression for a factory definition."""
    if spec.base_type == FieldType.FOREIGN.value:
        related: str = _model_class_for_table(schema, spec.foreign_table or "users")
        return f"\\App\\Models\\{related}::factory()"

    by_name: Dict[str, str] = {
        "email": "fake()->unique()->safeEmail()",
        "name": "fake()->name()",
        "title": "fake()->sentence(3)",
        "description": "fake()->paragraph()",
        "content": "fake()->paragraphs(3, true)",
        "slug": "fake()->unique()->slug()",
        "password": "bcrypt('password')",
        "phone": "fake()->phoneNumber()",
        "address": "fake()->address()",
        "bio": "fake()->paragraph()",
        "url": "fake()->url()",
        "website": "fake()->url()",
    }
    if name.lower() in by_name:
        return by_name[name.lower()]

    base: str = spec.base_type
    if base == FieldType.STRING.value:
        if spec.has_validation("email"):
            return "fake()->unique()->safeEmail()"
        limit: Optional[int] = spec.max_length
        if limit is not None and limit <= 50:
            return "fake()->word()"
        if limit is not None and limit <= 255:
            return "fake()->sentence()"
        return "fake()->text(200)"
    if base in (FieldType.TEXT.value, FieldType.LONG_TEXT.value):
        return "fake()->paragraph()"
    if base == FieldType.INTEGER.value:
        return "fake()->numberBetween(1, 1000)"
    if base in (FieldType.DECIMAL.value, FieldType.FLOAT.value):
        return "fake()->randomFloat(2, 0, 999.99)"
    if base == FieldType.BOOLEAN.value:
        return "fake()->boolean()"
    if base == FieldType.DATE.value:
        return "fake()->date()"
    if base in (FieldType.DATETIME.value, FieldType.TIMESTAMP.value):
        return "fake()->dateTime()"
    if base == FieldType.JSON.value:
        return "['key' => fake()->word()]"
    if base == FieldType.ENUM.value:
        return f"fake()->randomElement({php_list(spec.enum_values)})"
    if base == FieldType.UUID.value:
        return "fake()->uuid()"
    if spec.is_file:
        return "null"
    return "fake()->word()"


# ---------------------------------------------------------------------------
# Policy rules
# ---------------------------------------------------------------------------


def render_condition(condition: Condition, variable: str = "model", has_model: bool = True) -> str:
    """PHP boolean expression for one atomic condition."""
    kind: str = condition.kind
    model: str = f"${variable}"
    if kind in _MODEL_CONDITIONS and not has_model:
        return "false"

    if kind == ConditionKind.ROLE.value:
        checks: List[str] = [f"$user->hasRole({php_string(r)})" for r in condition.roles]
        return checks[0] if len(checks) == 1 else "(" + " || ".join(checks) + ")"
    if kind == ConditionKind.OWNER.value:
        return f"$user->id === {model}->user_id"
    if kind == ConditionKind.AUTHENTICATED.value:
        return "$user !== null"
    if kind == ConditionKind.PUBLIC.value:
        return f"{model}->is_public === true"
    if kind == ConditionKind.COLLABORATOR.value:
        return f"{model}->collaborators->contains($user->id)"
    if kind == ConditionKind.PROJECT_MEMBER.value:
        return (
            f"({model}->project->collaborators->contains($user->id)"
            f" || {model}->project->user_id === $user->id)"
        )
    if kind == ConditionKind.PROJECT_OWNER.value:
        return f"{model}->project->user_id === $user->id"
    if kind == ConditionKind.ASSIGNEE.value:
        return f"{model}->user_id === $user->id"
    if kind == ConditionKind.USER_FIELD.value:
        return f"$user->id === {model}->{condition.field}"
    if kind == ConditionKind.FIELD_EQUALS.value:
        return f"{model}->{condition.field} === {php_string(condition.value or '')}"
    return f"$user->{condition.method}()"


def render_rule(expr: RuleExpr, variable: str = "model", has_model: bool = True) -> str:
    """
    PHP boolean expression for a parsed rule: ``||`` for an any-rule,
    ``&&`` for an all-rule.
    """
    parts: List[str] = [render_condition(c, variable, has_model) for c in expr.conditions]
    if expr.operator == RuleOperator.SINGLE.value:
        return parts[0]
    joiner: str = " || " if expr.operator == RuleOperator.ANY.value else " && "
    return "(" + joiner.join(parts) + ")"


# ---------------------------------------------------------------------------
# Hook and observer actions
# ---------------------------------------------------------------------------


def _action_lines(
    action: ActionSpec, subject: str, stage: str, entity: Entity, on_data: bool
) -> List[str]:
    """
    Body lines for one action.  *subject* is ``$data`` for request-data
    stages, otherwise the model variable.
    """
    name: str = action.name
    if not action.builtin:
        return [f"$this->{to_camel_case(name)}({subject});"]

    if on_data and name in _MODEL_ONLY_ACTIONS:
        return [f"// {name} needs a saved model; skipped for request data"]

    if name == "log":
        message: str = action.message or f"{stage} event"
        return [f'Log::info("[AI-NATIVE HOOK] {_php_double_quoted(message)}");']

    if name == "sanitizeInput":
        if on_data:
            return [
                f"{subject} = array_map(fn ($value) => is_string($value) "
                f"? trim(strip_tags($value)) : $value, {subject});"
            ]
        return [
            f"foreach ({subject}->getDirty() as $key => $value) {{",
            "    if (is_string($value)) {",
            f"        {subject}->{{$key}} = trim(strip_tags($value));",
            "    }",
            "}",
        ]

    if name == "generateUuid":
        if on_data:
            return [f"{subject}['id'] = {subject}['id'] ?? (string) Str::uuid();"]
        return [
            f"if (empty({subject}->id)) {{",
            f"    {subject}->id = (string) Str::uuid();",
            "}",
        ]

    if name == "clearCache":
        return [f"Cache::tags(['{entity.table}'])->flush();"]

    if name == "cleanupFiles":
        if not entity.file_fields:
            return ["// No file fields to clean up"]
        lines: List[str] = []
        for field_name, spec in entity.file_fields:
            storage: str = f"Storage::disk('{spec.storage_disk or DEFAULT_DISK}')"
            if stage in _DELETE_STAGES:
                lines.extend([
                    f"if ({subject}->{field_name}) {{",
                    f"    {storage}->delete({subject}->{field_name});",
                    "}",
                ])
            else:
                lines.extend([
                    f"if ({subject}->isDirty('{field_name}') "
                    f"&& {subject}->getOriginal('{field_name}')) {{",
                    f"    {storage}->delete({subject}->getOriginal('{field_name}'));",
                    "}",
                ])
        return lines

    if name == "logActivity":
        return [
            f"Log::info('{entity.variable_name} activity', [",
            f"    'model_id' => {subject}->id,",
            f"    'model_type' => get_class({subject}),",
            f"    'event' => '{stage}',",
            "]);",
        ]

    if name == "moveChildrenToParent":
        return [
            f"if ({subject}->children()->count() > 0) {{",
            f"    {subject}->children()->update([",
            f"        'parent_id' => {subject}->parent_id,",
            "    ]);",
            "}",
        ]

    if name == "clearProjectCache":
        return [
            f"if ({subject}->project) {{",
            f"    Cache::tags(['project_' . {subject}->project->id])->flush();",
            "}",
        ]

    if name == "updateProjectProgress":
        return [
            f"if ({subject}->project) {{",
            f"    {subject}->project->updateProgress();",
            "}",
        ]

    # clearProjectsCache
    return ["Cache::tags(['projects'])->flush();"]


def _action_imports(actions: Sequence[ActionSpec]) -> Set[str]:
    return {_ACTION_IMPORTS[a.name] for a in actions if a.builtin and a.name in _ACTION_IMPORTS}


def _custom_action_stubs(
    actions: Sequence[ActionSpec], parameter: str, heading: str
) -> List[str]:
    lines: List[str] = []
    seen: Set[str] = set()
    for action in actions:
        if action.builtin:
            continue
        method: str = to_camel_case(action.name)
        if method in seen:
            continue
        seen.add(method)
        lines.extend([
            "",
            "    /**",
            f"     * {heading} {action.name}.",
            "     */",
            f"    protected function {method}({parameter}): void",
            "    {",
            "        //",
            "    }",
        ])
    return lines


def _php_use_block(imports: Sequence[str]) -> List[str]:
    return [f"use {name};" for name in sorted(set(imports))]


# ---------------------------------------------------------------------------
# Template generator
# ---------------------------------------------------------------------------


class TemplateGenerator:
    """
    Stateless PHP generator over one schema.

    Each ``render_*`` method returns the complete content of one file;
    ``routes_section_lines`` and ``database_seeder_lines`` return only the
    generated section that is merged into hand-edited files.
    """

    def __init__(self, schema: Schema) -> None:
        self._schema: Schema = schema
        logger.debug("TemplateGenerator initialised for %r.", schema)

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def _auth_middleware(self) -> str:
        return "auth:sanctum" if self._schema.auth_config.provider == "sanctum" else "auth"

    def _related_class(self, relation: RelationSpec) -> Optional[str]:
        if relation.target is None:
            return None
        entity: Optional[Entity] = self._schema.entities.get(relation.target)
        return entity.class_name if entity is not None else to_studly_case(relation.target)

    # ===================================================================
    # 1. Eloquent model
    # ===================================================================

    def render_model(self, entity: Entity) -> str:
        """Model class with marked fillable, casts, relations and scopes sections."""
        is_user: bool = entity.table == "users"
        auth = self._schema.auth_config

        imports: List[str] = ["Illuminate\\Database\\Eloquent\\Factories\\HasFactory"]
        traits: List[str] = []
        if is_user:
            imports.append("Illuminate\\Foundation\\Auth\\User as Authenticatable")
            imports.append("Illuminate\\Notifications\\Notifiable")
            if auth.enabled and auth.provider == "sanctum":
                imports.append("Laravel\\Sanctum\\HasApiTokens")
                traits.append("HasApiTokens")
        else:
            imports.append("Illuminate\\Database\\Eloquent\\Model")
        traits.append("HasFactory")
        if is_user:
            traits.append("Notifiable")
        if entity.has_soft_deletes:
            imports.append("Illuminate\\Database\\Eloquent\\SoftDeletes")
            traits.append("SoftDeletes")
        if entity.cache:
            imports.append("App\\Traits\\Cacheable")
            traits.append("Cacheable")
        for relation in entity.relations.values():
            imports.append(
                f"Illuminate\\Database\\Eloquent\\Relations\\{_RELATION_METHODS[relation.kind][1]}"
            )

        lines: List[str] = ["<?php", "", "namespace App\\Models;", ""]
        lines.extend(_php_use_block(imports))
        lines.append("")
        parent: str = "Authenticatable" if is_user else "Model"
        lines.append(f"class {entity.class_name} extends {parent}")
        lines.append("{")
        lines.append(f"    use {', '.join(traits)};")
        lines.append("")
        lines.append(f"    protected $table = '{entity.table}';")
        lines.append("")

        fillable: List[str] = [n for n in entity.fields if n not in AUTO_COLUMNS]
        lines.append("    // >>> AI-NATIVE FILLABLE START")
        lines.append("    protected $fillable = [")
        lines.extend(f"        '{name}'," for name in fillable)
        lines.append("    ];")
        lines.append("    // >>> AI-NATIVE FILLABLE END")

        hidden: List[str] = [n for n in entity.fields if "password" in n]
        if is_user and "remember_token" not in hidden:
            hidden.append("remember_token")
        if hidden:
            lines.append("")
            lines.append("    protected $hidden = [")
            lines.extend(f"        '{name}'," for name in hidden)
            lines.append("    ];")

        lines.append("")
        lines.append("    // >>> AI-NATIVE CASTS START")
        lines.append("    protected $casts = [")
        for name, spec in entity.fields.items():
            cast: Optional[str] = "hashed" if "password" in name else _CAST_MAP.get(spec.base_type)
            if cast is not None and name not in ("created_at", "updated_at"):
                lines.append(f"        '{name}' => '{cast}',")
        lines.append("    ];")
        lines.append("    // >>> AI-NATIVE CASTS END")

        lines.append("")
        lines.append("    // >>> AI-NATIVE RELATIONS START")
        for relation_name, relation in entity.relations.items():
            lines.extend(self._relation_method(relation_name, relation))
        lines.append("    // >>> AI-NATIVE RELATIONS END")

        lines.append("")
        lines.append("    // >>> AI-NATIVE SCOPES START")
        for scope in entity.scopes.values():
            if not scope.supported:
                logger.debug("Skipping unsupported scope %s.%s.", entity.name, scope.name)
                continue
            if scope.method == "where":
                call = f"where('{scope.field}', {_php_default(scope.argument or '')})"
            elif scope.method == "orderBy":
                call = f"orderBy('{scope.field}', '{scope.argument}')"
            else:
                call = f"whereNull('{scope.field}')"
            lines.extend([
                f"    public function scope{to_studly_case(scope.name)}($query)",
                "    {",
                f"        return $query->{call};",
                "    }",
                "",
            ])
        lines.append("    // >>> AI-NATIVE SCOPES END")
        lines.append("}")
        lines.append("")
        return "\n".join(lines)

    def _relation_method(self, name: str, relation: RelationSpec) -> List[str]:
        method, return_type = _RELATION_METHODS[relation.kind]
        related: Optional[str] = self._related_class(relation)

        args: List[str] = []
        if relation.kind == RelationKind.MORPH_TO.value:
            pass
        elif related is None:
            logger.warning("Relation '%s' has no target; not rendered.", name)
            return []
        else:
            args.append(f"{related}::class")
            if relation.kind == RelationKind.BELONGS_TO_MANY.value:
                for value in (
                    relation.pivot_table,
                    relation.foreign_pivot_key,
                    relation.related_pivot_key,
                ):
                    if value is None:
                        break
                    args.append(php_string(value))
            elif relation.kind == RelationKind.MORPH_MANY.value:
                args.append(php_string(relation.morph_name or to_snake_case(name)))
            elif relation.kind == RelationKind.MORPHED_BY_MANY.value:
                args.append(php_string(relation.morph_name or "taggable"))
            elif relation.foreign_key is not None:
                args.append(php_string(relation.foreign_key))

        return [
            f"    public function {name}(): {return_type}",
            "    {",
            f"        return $this->{method}({', '.join(args)});",
            "    }",
            "",
        ]

    # ===================================================================
    # 2. Migrations
    # ===================================================================

    @staticmethod
    def _migration_file(up: List[str], down: List[str]) -> str:
        lines: List[str] = [
            "<?php",
            "",
            "use Illuminate\\Database\\Migrations\\Migration;",
            "use Illuminate\\Database\\Schema\\Blueprint;",
            "use Illuminate\\Support\\Facades\\Schema;",
            "",
            "return new class extends Migration",
            "{",
            "    /**",
            "     * Run the migrations.",
            "     */",
            "    public function up(): void",
            "    {",
        ]
        lines.extend(indent_lines(up, level=2))
        lines.extend([
            "    }",
            "",
            "    /**",
            "     * Reverse the migrations.",
            "     */",
            "    public function down(): void",
            "    {",
        ])
        lines.extend(indent_lines(down, level=2))
        lines.extend(["    }", "};", ""])
        return "\n".join(lines)

    @staticmethod
    def _create_table(table: str, fields: Dict[str, FieldSpec], tail: Sequence[str]) -> List[str]:
        body: List[str] = ["$table->id();"]
        for name, spec in fields.items():
            if name in AUTO_COLUMNS:
                continue
            body.extend(migration_column(name, spec))
        body.extend(tail)
        lines: List[str] = [f"Schema::create('{table}', function (Blueprint $table) {{"]
        lines.extend(indent_lines(body))
        lines.append("});")
        return lines

    def render_migration(self, entity: Entity) -> str:
        """Create-table migration: id, declared columns, timestamps, soft deletes."""
        tail: List[str] = ["$table->timestamps();"]
        if entity.has_soft_deletes:
            tail.append("$table->softDeletes();")
        up: List[str] = self._create_table(entity.table, entity.fields, tail)
        return self._migration_file(up, [f"Schema::dropIfExists('{entity.table}');"])

    def render_pivot_migration(self, pivot: PivotSpec) -> str:
        tail: List[str] = []
        if pivot.unique:
            tail.append(f"$table->unique({php_list(pivot.unique)});")
        tail.append("$table->timestamps();")
        up: List[str] = self._create_table(pivot.name, pivot.fields, tail)
        return self._migration_file(up, [f"Schema::dropIfExists('{pivot.name}');"])

    def render_modify_users_migration(self, entity: Entity) -> str:
        """Adds the columns of a users entity beyond the framework defaults."""
        added: List[Tuple[str, FieldSpec]] = [
            (n, s) for n, s in entity.fields.items()
            if n not in DEFAULT_USER_COLUMNS and n != "deleted_at"
        ]

        add_body: List[str] = []
        drop_body: List[str] = []
        plain: List[str] = []
        for name, spec in added:
            add_body.extend(migration_column(name, spec))
            if spec.base_type == FieldType.FOREIGN.value and name.endswith("_id"):
                drop_body.append(f"$table->dropConstrainedForeignId('{name}');")
            elif spec.base_type == FieldType.FOREIGN.value:
                drop_body.append(f"$table->dropForeign(['{name}']);")
                plain.append(name)
            else:
                plain.append(name)
        if entity.has_soft_deletes:
            add_body.append("$table->softDeletes();")
            drop_body.append("$table->dropSoftDeletes();")
        if plain:
            drop_body.append(f"$table->dropColumn({php_list(plain)});")
        if not add_body:
            add_body.append("//")
            drop_body.append("//")

        up: List[str] = ["Schema::table('users', function (Blueprint $table) {"]
        up.extend(indent_lines(add_body))
        up.append("});")
        down: List[str] = ["Schema::table('users', function (Blueprint $table) {"]
        down.extend(indent_lines(drop_body))
        down.append("});")
        return self._migration_file(up, down)

    # ===================================================================
    # 3. Controller
    # ===================================================================

    def _middleware_lines(self, entity: Entity) -> List[str]:
        """Constructor middleware derived from role/authenticated policy rules."""
        routed: Set[str] = {ROUTE_VERBS[r][2] for r in entity.routes}
        grouped: Dict[str, List[str]] = {}

        for method, expr in entity.policies.items():
            action: Optional[str] = _POLICY_ACTIONS.get(method)
            if action is None or action not in routed:
                continue
            middleware: List[str] = []
            kinds: List[str] = [c.kind for c in expr.conditions]
            if expr.operator == RuleOperator.ANY.value:
                if all(k == ConditionKind.ROLE.value for k in kinds):
                    roles = [r for c in expr.conditions for r in c.roles]
                    middleware.append("role:" + "|".join(roles))
            else:
                for condition in expr.conditions:
                    if condition.kind == ConditionKind.ROLE.value:
                        middleware.append("role:" + "|".join(condition.roles))
                    elif condition.kind == ConditionKind.AUTHENTICATED.value:
                        middleware.append(self._auth_middleware)
            for name in middleware:
                grouped.setdefault(name, []).append(action)

        return [
            f"        $this->middleware('{name}')->only({php_list(actions)});"
            for name, actions in grouped.items()
        ]

    def render_controller(self, entity: Entity) -> str:
        """API controller for the entity's routes, hook handlers and file endpoints."""
        cls: str = entity.class_name
        var: str = entity.variable_name
        stages: List[str] = [s for s in HOOK_STAGES if s in entity.hooks]
        all_actions: List[ActionSpec] = [a for s in stages for a in entity.hooks[s]]

        imports: List[str] = [
            f"App\\Models\\{cls}",
            "Illuminate\\Http\\JsonResponse",
            "Illuminate\\Http\\Request",
        ]
        imports.extend(_action_imports(all_actions))
        if entity.file_fields:
            imports.append("Illuminate\\Support\\Facades\\Storage")

        lines: List[str] = ["<?php", "", "namespace App\\Http\\Controllers;", ""]
        lines.extend(_php_use_block(imports))
        lines.extend(["", f"class {cls}Controller extends Controller", "{"])

        middleware: List[str] = self._middleware_lines(entity)
        if middleware:
            lines.extend(["    public function __construct()", "    {"])
            lines.extend(middleware)
            lines.extend(["    }", ""])

        validated_fields: List[Tuple[str, FieldSpec]] = [
            (n, s) for n, s in entity.fields.items()
            if n not in AUTO_COLUMNS and not s.is_file
        ]

        for route in (r.value for r in RouteAction):
            if route not in entity.routes:
                continue
            method: str = ROUTE_VERBS[route][2]
            builder = getattr(self, f"_controller_{method}")
            lines.extend(builder(entity, validated_fields, stages))
            lines.append("")

        for field_name, spec in entity.file_fields:
            lines.extend(self._file_endpoints(entity, field_name, spec))

        for stage in stages:
            lines.extend(self._hook_handler(entity, stage))

        lines.extend(_custom_action_stubs(all_actions, "mixed $subject", "Custom hook action"))
        while lines[-1] == "":
            lines.pop()
        lines.extend(["}", ""])
        logger.debug("Rendered controller %sController (%d routes).", cls, len(entity.routes))
        return "\n".join(lines)

    def _controller_index(
        self, entity: Entity, fields: List[Tuple[str, FieldSpec]], stages: List[str]
    ) -> List[str]:
        cls: str = entity.class_name
        lines: List[str] = [
            "    public function index(Request $request): JsonResponse",
            "    {",
            f"        $query = {cls}::query();",
        ]
        filters = entity.filters
        if filters is not None:
            for column, value in filters.where.items():
                rendered: str = "auth()->id()" if value == "$auth.id" else _php_default(str(value))
                lines.append(f"        $query->where('{column}', {rendered});")
            if filters.order_by is not None:
                column, direction = filters.order_by
                lines.append(f"        $query->orderBy('{column}', '{direction}');")
            if filters.with_relations:
                lines.append(f"        $query->with({php_list(filters.with_relations)});")

        searchable: List[str] = [
            n for n, s in entity.fields.items()
            if s.base_type in (FieldType.STRING.value, FieldType.TEXT.value, FieldType.LONG_TEXT.value)
            and "password" not in n and "token" not in n
        ]
        if searchable:
            lines.extend([
                "",
                "        if ($search = $request->get('search')) {",
                "            $query->where(function ($q) use ($search) {",
            ])
            for index, name in enumerate(searchable):
                call: str = "where" if index == 0 else "orWhere"
                lines.append(f"                $q->{call}('{name}', 'like', \"%{{$search}}%\");")
            lines.extend(["            });", "        }"])

        lines.extend([
            "",
            f"        return response()->json($query->paginate($request->get('per_page', {DEFAULT_PER_PAGE})));",
            "    }",
        ])
        return lines

    def _controller_show(
        self, entity: Entity, fields: List[Tuple[str, FieldSpec]], stages: List[str]
    ) -> List[str]:
        var: str = entity.variable_name
        return [
            f"    public function show({entity.class_name} ${var}): JsonResponse",
            "    {",
            f"        return response()->json(${var});",
            "    }",
        ]

    def _rules_block(
        self, entity: Entity, fields: List[Tuple[str, FieldSpec]], for_update: bool
    ) -> List[str]:
        lines: List[str] = ["        $validated = $request->validate(["]
        ignore: Optional[str] = entity.variable_name if for_update else None
        for name, spec in fields:
            tokens: List[str] = validation_rules(entity.table, name, spec, for_update)
            lines.append(f"            '{name}' => {_rules_expression(tokens, ignore)},")
        lines.append("        ]);")
        return lines

    def _controller_store(
        self, entity: Entity, fields: List[Tuple[str, FieldSpec]], stages: List[str]
    ) -> List[str]:
        cls, var = entity.class_name, entity.variable_name
        lines: List[str] = [
            "    public function store(Request $request): JsonResponse",
            "    {",
        ]
        lines.extend(self._rules_block(entity, fields, for_update=False))
        lines.append("")
        if "beforeCreate" in stages:
            lines.append("        $validated = $this->handleBeforeCreate($validated);")
        lines.append(f"        ${var} = {cls}::create($validated);")
        if "afterCreate" in stages:
            lines.append(f"        $this->handleAfterCreate(${var});")
        lines.extend(["", f"        return response()->json(${var}, 201);", "    }"])
        return lines

    def _controller_update(
        self, entity: Entity, fields: List[Tuple[str, FieldSpec]], stages: List[str]
    ) -> List[str]:
        cls, var = entity.class_name, entity.variable_name
        lines: List[str] = [
            f"    public function update(Request $request, {cls} ${var}): JsonResponse",
            "    {",
        ]
        lines.extend(self._rules_block(entity, fields, for_update=True))
        lines.append("")
        if "beforeUpdate" in stages:
            lines.append(f"        $validated = $this->handleBeforeUpdate($validated, ${var});")
        lines.append(f"        ${var}->update($validated);")
        if "afterUpdate" in stages:
            lines.append(f"        $this->handleAfterUpdate(${var});")
        lines.extend(["", f"        return response()->json(${var});", "    }"])
        return lines

    def _controller_destroy(
        self, entity: Entity, fields: List[Tuple[str, FieldSpec]], stages: List[str]
    ) -> List[str]:
        cls, var = entity.class_name, entity.variable_name
        lines: List[str] = [
            f"    public function destroy({cls} ${var}): JsonResponse",
            "    {",
        ]
        if "beforeDelete" in stages:
            lines.append(f"        $this->handleBeforeDelete(${var});")
        lines.append(f"        ${var}->delete();")
        if "afterDelete" in stages:
            lines.append(f"        $this->handleAfterDelete(${var});")
        lines.extend(["", "        return response()->json(null, 204);", "    }"])
        return lines

    def _file_endpoints(self, entity: Entity, field_name: str, spec: FieldSpec) -> List[str]:
        cls, var = entity.class_name, entity.variable_name
        studly: str = to_studly_case(field_name)
        disk: str = spec.storage_disk or DEFAULT_DISK
        storage: str = f"Storage::disk('{disk}')"

        lines: List[str] = [
            f"    public function upload{studly}(Request $request, {cls} ${var}): JsonResponse",
            "    {",
        ]
        if spec.multiple:
            lines.extend([
                "        $request->validate([",
                "            'files' => 'required|array',",
                "            'files.*' => 'file',",
                "        ]);",
                "",
                f"        $paths = ${var}->{field_name} ?? [];",
                "        foreach ($request->file('files') as $file) {",
                f"            $paths[] = $file->store('{entity.table}', '{disk}');",
                "        }",
                f"        ${var}->update(['{field_name}' => $paths]);",
            ])
        else:
            lines.extend([
                "        $request->validate(['file' => 'required|file']);",
                "",
                f"        if (${var}->{field_name}) {{",
                f"            {storage}->delete(${var}->{field_name});",
                "        }",
                f"        $path = $request->file('file')->store('{entity.table}', '{disk}');",
                f"        ${var}->update(['{field_name}' => $path]);",
            ])
        lines.extend(["", f"        return response()->json(${var});", "    }", ""])

        lines.append(f"    public function download{studly}({cls} ${var})")
        lines.append("    {")
        if spec.multiple:
            lines.extend([
                f"        $urls = collect(${var}->{field_name} ?? [])",
                f"            ->map(fn ($path) => {storage}->url($path))",
                "            ->values();",
                "",
                "        return response()->json($urls);",
            ])
        else:
            lines.extend([
                f"        if (! ${var}->{field_name} || ! {storage}->exists(${var}->{field_name})) {{",
                "            abort(404);",
                "        }",
                "",
                f"        return {storage}->download(${var}->{field_name});",
            ])
        lines.extend(["    }", ""])
        return lines

    def _hook_handler(self, entity: Entity, stage: str) -> List[str]:
        cls, var = entity.class_name, entity.variable_name
        method: str = f"handle{stage[0].upper()}{stage[1:]}"
        on_data: bool = stage in ("beforeCreate", "beforeUpdate")

        if stage == "beforeCreate":
            signature = f"protected function {method}(array $data): array"
        elif stage == "beforeUpdate":
            signature = f"protected function {method}(array $data, {cls} ${var}): array"
        else:
            signature = f"protected function {method}({cls} ${var}): void"

        subject: str = "$data" if on_data else f"${var}"
        body: List[str] = []
        for action in entity.hooks[stage]:
            body.extend(_action_lines(action, subject, stage, entity, on_data))
        if on_data:
            body.extend(["", "return $data;"])

        lines: List[str] = [f"    {signature}", "    {"]
        lines.extend(indent_lines(body, level=2))
        lines.extend(["    }", ""])
        return lines

    # ===================================================================
    # 4. Routes
    # ===================================================================

    def routes_section_lines(self) -> List[str]:
        """Body of the marked routes section, without the markers."""
        schema: Schema = self._schema
        lines: List[str] = []

        if schema.auth_config.enabled:
            auth: str = f"{_CONTROLLER_NS}\\AuthController::class"
            lines.append("// Authentication routes")
            if schema.auth_config.provider == "sanctum":
                lines.append(f"Route::post('/register', [{auth}, 'register']);")
            lines.append(f"Route::post('/login', [{auth}, 'login']);")
            lines.append("")
            lines.append(f"Route::middleware('{self._auth_middleware}')->group(function () {{")
            lines.append(f"    Route::post('/logout', [{auth}, 'logout']);")
            lines.append(f"    Route::get('/user', [{auth}, 'user']);")
            lines.append("});")
            lines.append("")

        body: List[str] = []
        for entity in schema.entities.values():
            if not entity.has_routes:
                continue
            body.extend(self._entity_route_lines(entity))
            body.append("")
        if schema.custom_routes:
            body.append("// Custom routes")
            body.extend(self._custom_route_line(route) for route in schema.custom_routes)
            body.append("")
        while body and body[-1] == "":
            body.pop()

        middlewares: Tuple[str, ...] = schema.global_middlewares
        if middlewares and body:
            lines.append(f"Route::middleware({php_list(middlewares)})->group(function () {{")
            lines.extend(indent_lines(body))
            lines.append("});")
        else:
            lines.extend(body)

        while lines and lines[-1] == "":
            lines.pop()
        return lines

    def _entity_route_lines(self, entity: Entity) -> List[str]:
        controller: str = f"{_CONTROLLER_NS}\\{entity.class_name}Controller::class"
        segment: str = resource_segment(entity.name)
        parameter: str = "{" + route_parameter(entity) + "}"

        lines: List[str] = [f"// {entity.class_name} routes"]
        for route in (r.value for r in RouteAction):
            if route not in entity.routes:
                continue
            verb, with_model, method = ROUTE_VERBS[route]
            uri: str = f"{segment}/{parameter}" if with_model else segment
            lines.append(f"Route::{verb}('{uri}', [{controller}, '{method}']);")

        for field_name, _ in entity.file_fields:
            studly: str = to_studly_case(field_name)
            lines.append(
                f"Route::post('{segment}/{parameter}/upload/{field_name}', "
                f"[{controller}, 'upload{studly}']);"
            )
            lines.append(
                f"Route::get('{segment}/{parameter}/download/{field_name}', "
                f"[{controller}, 'download{studly}']);"
            )
        return lines

    @staticmethod
    def _custom_route_line(route: CustomRoute) -> str:
        target: str = route.controller
        if "@" in target:
            cls, method = target.split("@", 1)
        else:
            cls, method = target, None
        qualified: str = cls if cls.startswith("\\") else (
            f"\\{cls}" if "\\" in cls else f"{_CONTROLLER_NS}\\{cls}"
        )
        action: str = (
            f"[{qualified}::class, {php_string(method)}]" if method else f"{qualified}::class"
        )
        line: str = f"Route::{route.method}({php_string(route.uri)}, {action})"
        if route.middleware:
            line += f"->middleware({php_list(route.middleware)})"
        if route.name:
            line += f"->name({php_string(route.name)})"
        return line + ";"

    def render_routes_file(self, section: Optional[Sequence[str]] = None) -> str:
        """A fresh ``routes/api.php`` holding only the marked section."""
        body: Sequence[str] = self.routes_section_lines() if section is None else section
        lines: List[str] = [
            "<?php",
            "",
            "use Illuminate\\Support\\Facades\\Route;",
            "",
            wrap_section(body, ROUTES_MARKERS),
            "",
        ]
        return "\n".join(lines)

    # ===================================================================
    # 5. Factories & seeders
    # ===================================================================

    def render_factory(self, entity: Entity) -> str:
        cls: str = entity.class_name
        lines: List[str] = [
            "<?php",
            "",
            "namespace Database\\Factories;",
            "",
            f"use App\\Models\\{cls};",
            "use Illuminate\\Database\\Eloquent\\Factories\\Factory;",
            "",
            "/**",
            f" * @extends \\Illuminate\\Database\\Eloquent\\Factories\\Factory<\\App\\Models\\{cls}>",
            " */",
            f"class {cls}Factory extends Factory",
            "{",
            f"    protected $model = {cls}::class;",
            "",
            "    /**",
            "     * Define the model's default state.",
            "     *",
            "     * @return array<string, mixed>",
            "     */",
            "    public function definition(): array",
            "    {",
            "        return [",
        ]
        for name, spec in entity.fields.items():
            if name in AUTO_COLUMNS:
                continue
            lines.append(f"            '{name}' => {fake_value(self._schema, name, spec)},")
        lines.extend(["        ];", "    }"])

        for method, column, value in self._factory_states(entity):
            lines.extend([
                "",
                f"    public function {method}(): static",
                "    {",
            ])
            if column is None:
                lines.append("        return $this->state([]);")
            else:
                lines.extend([
                    "        return $this->state([",
                    f"            '{column}' => {value},",
                    "        ]);",
                ])
            lines.append("    }")

        lines.extend(["}", ""])
        return "\n".join(lines)

    @staticmethod
    def _factory_states(entity: Entity) -> List[Tuple[str, Optional[str], str]]:
        """(method, column, PHP value) per state; column None for declared-only states."""
        states: List[Tuple[str, Optional[str], str]] = []
        seen: Set[str] = {"definition"}

        def add(method: str, column: Optional[str], value: str) -> None:
            if method and method not in seen:
                seen.add(method)
                states.append((method, column, value))

        for column in ("is_active", "active"):
            if column in entity.fields:
                add("inactive", column, "false")
                break
        for column in ("published", "is_published"):
            if column in entity.fields:
                add("unpublished", column, "false")
                break
        for name, spec in entity.fields.items():
            for value in spec.enum_values:
                add(to_camel_case(value), name, php_string(value))
        if entity.factory is not None:
            for state in entity.factory.states:
                add(to_camel_case(state), None, "")
        return states

    def render_seeder(self, entity: Entity) -> str:
        cls: str = entity.class_name
        imports: List[str] = [f"App\\Models\\{cls}", "Illuminate\\Database\\Seeder"]
        body: List[str] = []

        if entity.factory is None:
            body.append(f"// {cls} has no factory; add seed rows here.")
        else:
            count: int = entity.factory.count
            parents: List[Tuple[str, str, str]] = []
            for relation_name, relation in entity.relations.items():
                if not relation.is_belongs_to:
                    continue
                related: Optional[str] = self._related_class(relation)
                if related is None or related == cls:
                    continue
                key: str = relation.foreign_key or f"{to_snake_case(relation_name)}_id"
                parents.append((related, f"${to_camel_case(relation_name)}Ids", key))
                imports.append(f"App\\Models\\{related}")

            if parents:
                for related, variable, _ in parents:
                    body.append(f"{variable} = {related}::query()->pluck('id');")
                body.append("")
                body.append(f"{cls}::factory()")
                body.append(f"    ->count({count})")
                body.append("    ->state(fn () => [")
                for related, variable, key in parents:
                    body.append(
                        f"        '{key}' => {variable}->isNotEmpty() "
                        f"? {variable}->random() : {related}::factory(),"
                    )
                body.append("    ])")
                body.append("    ->create();")
            else:
                body.append(f"{cls}::factory()->count({count})->create();")

        lines: List[str] = ["<?php", "", "namespace Database\\Seeders;", ""]
        lines.extend(_php_use_block(imports))
        lines.extend([
            "",
            f"class {cls}Seeder extends Seeder",
            "{",
            "    /**",
            "     * Run the database seeds.",
            "     */",
            "    public function run(): void",
            "    {",
        ])
        lines.extend(indent_lines(body, level=2))
        lines.extend(["    }", "}", ""])
        return "\n".join(lines)

    def database_seeder_lines(self, order: Sequence[str]) -> List[str]:
        """Seeder calls for *order*, skipping entities without a seeder."""
        lines: List[str] = []
        for name in order:
            entity: Optional[Entity] = self._schema.entities.get(name)
            if entity is not None and entity.seeder:
                lines.append(f"{entity.class_name}Seeder::class,")
        return lines

    def render_database_seeder(self, order: Sequence[str]) -> str:
        lines: List[str] = [
            "<?php",
            "",
            "namespace Database\\Seeders;",
            "",
            "use Illuminate\\Database\\Seeder;",
            "",
            "class DatabaseSeeder extends Seeder",
            "{",
            "    /**",
            "     * Seed the application's database.",
            "     */",
            "    public function run(): void",
            "    {",
            "        $this->call([",
            wrap_section(self.database_seeder_lines(order), SEEDERS_MARKERS, " " * 12),
            "        ]);",
            "    }",
            "}",
            "",
        ]
        return "\n".join(lines)

    # ===================================================================
    # 6. Policies, observers, providers
    # ===================================================================

    def render_policy(self, entity: Entity) -> str:
        cls: str = entity.class_name
        var: str = _model_variable(entity)
        imports: List[str] = [
            "App\\Models\\User",
            f"App\\Models\\{cls}",
            "Illuminate\\Auth\\Access\\HandlesAuthorization",
            "Illuminate\\Auth\\Access\\Response",
        ]
        lines: List[str] = ["<?php", "", "namespace App\\Policies;", ""]
        lines.extend(_php_use_block(imports))
        lines.extend(["", f"class {cls}Policy", "{", "    use HandlesAuthorization;"])

        methods: List[str] = list(STANDARD_POLICY_METHODS)
        methods.extend(m for m in entity.policies if m not in STANDARD_POLICY_METHODS)
        for method in methods:
            has_model: bool = method not in _USER_ONLY_POLICY_METHODS
            params: str = "User $user" + (f", {cls} ${var}" if has_model else "")
            expr: Optional[RuleExpr] = entity.policies.get(method)
            if expr is not None:
                check = render_rule(expr, var, has_model)
                body = f"return {check} ? Response::allow() : Response::deny();"
            else:
                body = self._default_policy_body(method, var)
            lines.extend([
                "",
                "    /**",
                f"     * Determine whether the user can {method} the model.",
                "     */",
                f"    public function {method}({params}): Response",
                "    {",
                f"        {body}",
                "    }",
            ])

        lines.extend(["}", ""])
        return "\n".join(lines)

    @staticmethod
    def _default_policy_body(method: str, var: str) -> str:
        if method in ("viewAny", "view"):
            return "return Response::allow();"
        if method == "create":
            return "return $user ? Response::allow() : Response::deny();"
        if method in ("update", "delete"):
            return f"return $user->id === ${var}->user_id ? Response::allow() : Response::deny();"
        return "return $user->isAdmin() ? Response::allow() : Response::deny();"

    def render_observer(self, entity: Entity) -> str:
        cls, var = entity.class_name, entity.variable_name
        events: List[str] = [e for e in OBSERVER_EVENTS if e in entity.observers]
        for event in entity.observers:
            if event not in OBSERVER_EVENTS:
                logger.warning("Observer event '%s' on %s is not an Eloquent event.", event, cls)
        all_actions: List[ActionSpec] = [a for e in events for a in entity.observers[e]]

        imports: List[str] = [f"App\\Models\\{cls}"]
        imports.extend(_action_imports(all_actions))

        lines: List[str] = ["<?php", "", "namespace App\\Observers;", ""]
        lines.extend(_php_use_block(imports))
        lines.extend(["", f"class {cls}Observer", "{"])

        for event in events:
            body: List[str] = []
            for action in entity.observers[event]:
                body.extend(_action_lines(action, f"${var}", event, entity, on_data=False))
            lines.extend([
                "    /**",
                f"     * Handle the {cls} \"{event}\" event.",
                "     */",
                f"    public function {event}({cls} ${var}): void",
                "    {",
            ])
            lines.extend(indent_lines(body, level=2))
            lines.extend(["    }", ""])

        lines.extend(_custom_action_stubs(all_actions, f"{cls} ${var}", "Custom observer action"))
        while lines[-1] == "":
            lines.pop()
        lines.extend(["}", ""])
        return "\n".join(lines)

    def render_auth_service_provider(self) -> str:
        entities: List[Entity] = [e for e in self._schema.entities.values() if e.has_policies]
        imports: List[str] = [
            "Illuminate\\Foundation\\Support\\Providers\\AuthServiceProvider as ServiceProvider",
        ]
        for entity in entities:
            imports.append(f"App\\Models\\{entity.class_name}")
            imports.append(f"App\\Policies\\{entity.class_name}Policy")

        lines: List[str] = ["<?php", "", "namespace App\\Providers;", ""]
        lines.extend(_php_use_block(imports))
        lines.extend([
            "",
            "class AuthServiceProvider extends ServiceProvider",
            "{",
            "    /**",
            "     * The model to policy mappings for the application.",
            "     *",
            "     * @var array<class-string, class-string>",
            "     */",
            "    protected $policies = [",
        ])
        lines.extend(
            f"        {e.class_name}::class => {e.class_name}Policy::class," for e in entities
        )
        lines.extend([
            "    ];",
            "",
            "    public function boot(): void",
            "    {",
            "        $this->registerPolicies();",
            "    }",
            "}",
            "",
        ])
        return "\n".join(lines)

    def render_observer_service_provider(self) -> str:
        entities: List[Entity] = [e for e in self._schema.entities.values() if e.has_observers]
        imports: List[str] = ["Illuminate\\Support\\ServiceProvider"]
        for entity in entities:
            imports.append(f"App\\Models\\{entity.class_name}")
            imports.append(f"App\\Observers\\{entity.class_name}Observer")

        lines: List[str] = ["<?php", "", "namespace App\\Providers;", ""]
        lines.extend(_php_use_block(imports))
        lines.extend([
            "",
            "class ObserverServiceProvider extends ServiceProvider",
            "{",
            "    public function register(): void",
            "    {",
            "        //",
            "    }",
            "",
            "    public function boot(): void",
            "    {",
        ])
        lines.extend(
            f"        {e.class_name}::observe({e.class_name}Observer::class);" for e in entities
        )
        lines.extend(["    }", "}", ""])
        return "\n".join(lines)

    # ===================================================================
    # 7. Auth controller
    # ===================================================================

    def render_auth_controller(self) -> str:
        if self._schema.auth_config.provider == "sanctum":
            return _SANCTUM_AUTH_CONTROLLER
        return _SESSION_AUTH_CONTROLLER


# ---------------------------------------------------------------------------
# Auth controller bodies
# ---------------------------------------------------------------------------

_SANCTUM_AUTH_CONTROLLER: str = r"""<?php

namespace App\Http\Controllers;

use App\Models\User;
use Illuminate\Http\JsonResponse;
use Illuminate\Http\Request;
use Illuminate\Support\Facades\Hash;
use Illuminate\Validation\ValidationException;

class AuthController extends Controller
{
    public function register(Request $request): JsonResponse
    {
        $request->validate([
            'name' => 'required|string|max:255',
            'email' => 'required|string|email|max:255|unique:users',
            'password' => 'required|string|min:8|confirmed',
        ]);

        $user = User::create([
            'name' => $request->name,
            'email' => $request->email,
            'password' => Hash::make($request->password),
        ]);

        $token = $user->createToken('auth-token')->plainTextToken;

        return response()->json([
            'user' => $user,
            'token' => $token,
            'token_type' => 'Bearer',
        ], 201);
    }

    public function login(Request $request): JsonResponse
    {
        $request->validate([
            'email' => 'required|email',
            'password' => 'required',
        ]);

        $user = User::where('email', $request->email)->first();

        if (! $user || ! Hash::check($request->password, $user->password)) {
            throw ValidationException::withMessages([
                'email' => ['The provided credentials are incorrect.'],
            ]);
        }

        $token = $user->createToken('auth-token')->plainTextToken;

        return response()->json([
            'user' => $user,
            'token' => $token,
            'token_type' => 'Bearer',
        ]);
    }

    public function logout(Request $request): JsonResponse
    {
        $request->user()->currentAccessToken()->delete();

        return response()->json(['message' => 'Successfully logged out']);
    }

    public function user(Request $request): JsonResponse
    {
        return response()->json($request->user());
    }
}
"""

_SESSION_AUTH_CONTROLLER: str = r"""<?php

namespace App\Http\Controllers;

use Illuminate\Http\JsonResponse;
use Illuminate\Http\Request;
use Illuminate\Support\Facades\Auth;

class AuthController extends Controller
{
    public function login(Request $request): JsonResponse
    {
        $credentials = $request->validate([
            'email' => 'required|email',
            'password' => 'required',
        ]);

        if (Auth::attempt($credentials)) {
            $request->session()->regenerate();

            return response()->json([
                'user' => Auth::user(),
                'message' => 'Login successful',
            ]);
        }

        return response()->json([
            'message' => 'The provided credentials do not match our records.',
        ], 401);
    }

    public function logout(Request $request): JsonResponse
    {
        Auth::logout();
        $request->session()->invalidate();
        $request->session()->regenerateToken();

        return response()->json(['message' => 'Successfully logged out']);
    }

    public function user(Request $request): JsonResponse
    {
        return response()->json($request->user());
    }
}
"""


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "AUTO_COLUMNS",
    "DEFAULT_USER_COLUMNS",
    "DEFAULT_PER_PAGE",
    "DEFAULT_DISK",
    "MIGRATION_TIMESTAMP_FORMAT",
    "ROUTE_VERBS",
    "STANDARD_POLICY_METHODS",
    "migration_timestamp",
    "migration_filename",
    "modify_users_filename",
    "route_parameter",
    "migration_column",
    "validation_rules",
    "fake_value",
    "render_condition",
    "render_rule",
    "TemplateGenerator",
]

logger.debug("laragen.templates loaded — %d public symbols.", len(__all__))
