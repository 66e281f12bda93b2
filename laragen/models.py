# File: laragen/models.py
"""
laragen - Core Data Models
===========================
Pydantic V2 models for the parsed schema and for the persisted generation
state.  These models are the single source of truth for the pipeline:

    Raw JSON → Schema (parsers/rules) → Validation → Reconciliation → Drivers

Schema-side models are frozen: a ``Schema`` is built once per run and read
by every other component.  The ``Manifest`` and its ``FileRecord`` entries
are mutable and owned by the reconciliation engine.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from laragen.utils import to_camel_case, to_studly_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.models")

# ---------------------------------------------------------------------------
# Enums — fixed sets used across the entire project
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    """Base types understood by the field DSL."""

    STRING = "string"
    TEXT = "text"
    LONG_TEXT = "longText"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    JSON = "json"
    FLOAT = "float"
    UUID = "uuid"
    ENUM = "enum"
    DECIMAL = "decimal"
    FOREIGN = "foreign"
    FILE = "file"
    FILES = "files"


# Types that never carry parameters
SIMPLE_FIELD_TYPES: Tuple[str, ...] = (
    FieldType.STRING.value,
    FieldType.TEXT.value,
    FieldType.LONG_TEXT.value,
    FieldType.INTEGER.value,
    FieldType.BOOLEAN.value,
    FieldType.DATE.value,
    FieldType.DATETIME.value,
    FieldType.TIMESTAMP.value,
    FieldType.JSON.value,
    FieldType.FLOAT.value,
    FieldType.UUID.value,
)

KNOWN_FIELD_TYPES: Tuple[str, ...] = tuple(t.value for t in FieldType)


class RelationKind(str, Enum):
    """Eloquent relation kinds accepted by the relation DSL."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"
    MORPH_TO = "morphTo"
    MORPH_MANY = "morphMany"
    MORPHED_BY_MANY = "morphedByMany"


class RouteAction(str, Enum):
    """Canonical route verbs of an entity."""

    LIST = "list"
    SHOW = "show"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


ROUTE_SYNONYMS: Dict[str, str] = {
    "index": RouteAction.LIST.value,
    "store": RouteAction.CREATE.value,
    "destroy": RouteAction.DELETE.value,
}


class ConditionKind(str, Enum):
    """Atomic policy conditions."""

    ROLE = "role"
    OWNER = "owner"
    AUTHENTICATED = "authenticated"
    PUBLIC = "public"
    COLLABORATOR = "collaborator"
    PROJECT_MEMBER = "projectMember"
    PROJECT_OWNER = "projectOwner"
    ASSIGNEE = "assignee"
    FIELD_EQUALS = "fieldEquals"
    USER_FIELD = "userField"
    PREDICATE = "predicate"


# Literal condition tokens, in resolution order after ``role:``
LITERAL_CONDITIONS: Tuple[str, ...] = (
    ConditionKind.OWNER.value,
    ConditionKind.AUTHENTICATED.value,
    ConditionKind.PUBLIC.value,
    ConditionKind.COLLABORATOR.value,
    ConditionKind.PROJECT_MEMBER.value,
    ConditionKind.PROJECT_OWNER.value,
    ConditionKind.ASSIGNEE.value,
)


class RuleOperator(str, Enum):
    """How the conditions of a rule combine."""

    SINGLE = "single"
    ANY = "or"
    ALL = "and"


class ArtifactKind(str, Enum):
    """Manifest buckets; one per generated artifact family."""

    MODELS = "models"
    CONTROLLERS = "controllers"
    MIGRATIONS = "migrations"
    FACTORIES = "factories"
    SEEDERS = "seeders"
    POLICIES = "policies"
    OBSERVERS = "observers"
    ROUTES = "routes"
    PROVIDERS = "providers"
    CONFIG = "config"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Field descriptors
# ---------------------------------------------------------------------------


class ForeignParams(BaseModel):
    """``foreign:<table>``"""

    model_config = _FROZEN_CONFIG

    kind: Literal["foreign"] = "foreign"
    table: str = Field(..., min_length=1, description="Referenced table name.")


class EnumParams(BaseModel):
    """``enum:<v1>,<v2>,...``"""

    model_config = _FROZEN_CONFIG

    kind: Literal["enum"] = "enum"
    values: Tuple[str, ...] = Field(..., min_length=1, description="Allowed values.")


class DecimalParams(BaseModel):
    """``decimal:<precision>,<scale>``; both default together."""

    model_config = _FROZEN_CONFIG

    kind: Literal["decimal"] = "decimal"
    precision: int = Field(default=8, ge=1, description="Total digits.")
    scale: int = Field(default=2, ge=0, description="Digits after the point.")


class FileParams(BaseModel):
    """``file:<disk>`` / ``files:<disk>``"""

    model_config = _FROZEN_CONFIG

    kind: Literal["file"] = "file"
    disk: Optional[str] = Field(default=None, description="Storage disk name.")


TypeParams = Annotated[
    Union[ForeignParams, EnumParams, DecimalParams, FileParams],
    Field(discriminator="kind"),
]


class FieldSpec(BaseModel):
    """
    Parsed form of one field definition string.

    ``validations`` keeps every token after the type segment verbatim and
    in order; the accessors below answer the questions drivers ask most
    often without re-parsing anything.
    """

    model_config = _FROZEN_CONFIG

    base_type: str = Field(..., min_length=1, description="DSL base type name.")
    type_params: Optional[TypeParams] = Field(
        default=None, description="Type-specific parameters."
    )
    validations: Tuple[str, ...] = Field(
        default=(), description="Validation tokens in declaration order."
    )

    @computed_field  # type: ignore[misc]
    @property
    def is_file(self) -> bool:
        return self.base_type in (FieldType.FILE.value, FieldType.FILES.value)

    @computed_field  # type: ignore[misc]
    @property
    def multiple(self) -> bool:
        return self.base_type == FieldType.FILES.value

    @model_validator(mode="after")
    def _check_params_match_type(self) -> "FieldSpec":
        expected: Dict[str, type] = {
            FieldType.FOREIGN.value: ForeignParams,
            FieldType.ENUM.value: EnumParams,
            FieldType.DECIMAL.value: DecimalParams,
        }
        required = expected.get(self.base_type)
        if required is not None and not isinstance(self.type_params, required):
            raise ValueError(
                f"Field type '{self.base_type}' requires {required.__name__}."
            )
        return self

    # -- Validation token accessors -----------------------------------------

    @property
    def is_known_type(self) -> bool:
        return self.base_type in KNOWN_FIELD_TYPES

    def has_validation(self, token: str) -> bool:
        return token in self.validations

    def validation_value(self, rule: str) -> Optional[str]:
        """Value of the first ``<rule>:<value>`` token, or None."""
        prefix: str = f"{rule}:"
        for token in self.validations:
            if token.startswith(prefix):
                return token[len(prefix):]
        return None

    @property
    def is_unique(self) -> bool:
        return "unique" in self.validations

    @property
    def is_nullable(self) -> bool:
        return "nullable" in self.validations

    @property
    def is_required(self) -> bool:
        return "required" in self.validations

    @property
    def has_index(self) -> bool:
        return "index" in self.validations

    @property
    def default_value(self) -> Optional[str]:
        return self.validation_value("default")

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @property
    def max_length(self) -> Optional[int]:
        raw: Optional[str] = self.validation_value("max")
        if raw is not None and raw.isdigit():
            return int(raw)
        return None

    @property
    def foreign_table(self) -> Optional[str]:
        if isinstance(self.type_params, ForeignParams):
            return self.type_params.table
        return None

    @property
    def enum_values(self) -> Tuple[str, ...]:
        if isinstance(self.type_params, EnumParams):
            return self.type_params.values
        return ()

    @property
    def storage_disk(self) -> Optional[str]:
        if isinstance(self.type_params, FileParams):
            return self.type_params.disk
        return None

    def __repr__(self) -> str:
        return f"<FieldSpec {self.base_type} {list(self.validations)}>"


# ---------------------------------------------------------------------------
# Relations, rules, actions
# ---------------------------------------------------------------------------


class RelationSpec(BaseModel):
    """Parsed form of one relation definition string."""

    model_config = _FROZEN_CONFIG

    kind: RelationKind = Field(..., description="Relation kind.")
    target: Optional[str] = Field(default=None, description="Target entity name.")
    foreign_key: Optional[str] = Field(default=None)
    pivot_table: Optional[str] = Field(default=None)
    foreign_pivot_key: Optional[str] = Field(default=None)
    related_pivot_key: Optional[str] = Field(default=None)
    morph_name: Optional[str] = Field(default=None)

    @computed_field  # type: ignore[misc]
    @property
    def unresolved_target(self) -> bool:
        return self.target is None and self.kind != RelationKind.MORPH_TO.value

    @property
    def is_belongs_to(self) -> bool:
        return self.kind == RelationKind.BELONGS_TO.value


class Condition(BaseModel):
    """One atomic policy condition."""

    model_config = _FROZEN_CONFIG

    kind: ConditionKind
    roles: Tuple[str, ...] = ()
    field: Optional[str] = None
    value: Optional[str] = None
    method: Optional[str] = None


class RuleExpr(BaseModel):
    """
    Parsed policy rule: a single condition, an OR, or an AND.

    Mixed ``|``/``,`` rules are parsed with ``|`` taking precedence and are
    flagged through ``mixed_operators``.
    """

    model_config = _FROZEN_CONFIG

    operator: RuleOperator
    conditions: Tuple[Condition, ...] = Field(..., min_length=1)
    source: str = Field(default="", description="Rule text, for messages.")
    mixed_operators: bool = False


class ActionSpec(BaseModel):
    """A hook or observer action, classified as built-in or custom."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    builtin: bool = False
    message: Optional[str] = None


class ScopeSpec(BaseModel):
    """A query scope; ``method`` is None for unsupported forms."""

    model_config = _FROZEN_CONFIG

    name: str
    method: Optional[Literal["where", "orderBy", "whereNull"]] = None
    field: Optional[str] = None
    argument: Optional[str] = None
    source: str = ""

    @property
    def supported(self) -> bool:
        return self.method is not None


class IndexFilter(BaseModel):
    """Default constraints applied by a generated index action."""

    model_config = _FROZEN_CONFIG

    where: Dict[str, str] = Field(default_factory=dict)
    order_by: Optional[Tuple[str, str]] = None
    with_relations: Tuple[str, ...] = ()


class FactoryConfig(BaseModel):
    """Factory settings of an entity."""

    model_config = _FROZEN_CONFIG

    count: int = Field(default=10, ge=0, description="Rows created by the seeder.")
    states: Tuple[str, ...] = ()


class ParseIssue(BaseModel):
    """A problem found while building the schema, reported by the validator."""

    model_config = _FROZEN_CONFIG

    code: str
    subject: str
    message: str


# ---------------------------------------------------------------------------
# Entities, pivots, schema
# ---------------------------------------------------------------------------


class Entity(BaseModel):
    """
    One schema-declared model.

    Drives creation of the model class, migration, controller, factory,
    seeder, policy and observer for this entity.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    table: str = Field(..., min_length=1)
    fields: Dict[str, FieldSpec] = Field(default_factory=dict)
    relations: Dict[str, RelationSpec] = Field(default_factory=dict)
    routes: Tuple[RouteAction, ...] = ()
    unknown_routes: Tuple[str, ...] = ()
    scopes: Dict[str, ScopeSpec] = Field(default_factory=dict)
    policies: Dict[str, RuleExpr] = Field(default_factory=dict)
    hooks: Dict[str, Tuple[ActionSpec, ...]] = Field(default_factory=dict)
    observers: Dict[str, Tuple[ActionSpec, ...]] = Field(default_factory=dict)
    filters: Optional[IndexFilter] = None
    factory: Optional[FactoryConfig] = None
    seeder: bool = False
    cache: Dict[str, Any] = Field(default_factory=dict)
    # declared names in document order, including ones that failed to parse
    field_names: Tuple[str, ...] = ()
    relation_names: Tuple[str, ...] = ()
    parse_issues: Tuple[ParseIssue, ...] = ()

    @field_validator("routes")
    @classmethod
    def _dedupe_routes(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(v))

    # -- Naming -------------------------------------------------------------

    @property
    def class_name(self) -> str:
        return to_studly_case(self.name)

    @property
    def variable_name(self) -> str:
        return to_camel_case(self.name)

    # -- Feature flags ------------------------------------------------------

    @property
    def has_routes(self) -> bool:
        return bool(self.routes)

    @property
    def has_factory(self) -> bool:
        return self.factory is not None

    @property
    def has_policies(self) -> bool:
        return bool(self.policies)

    @property
    def has_observers(self) -> bool:
        return bool(self.observers)

    @property
    def has_soft_deletes(self) -> bool:
        return "deleted_at" in self.fields

    @property
    def belongs_to_targets(self) -> List[str]:
        return [
            r.target
            for r in self.relations.values()
            if r.is_belongs_to and r.target is not None
        ]

    @property
    def file_fields(self) -> List[Tuple[str, FieldSpec]]:
        return [(n, f) for n, f in self.fields.items() if f.is_file]

    def __repr__(self) -> str:
        return (
            f"<Entity {self.name} ({len(self.fields)} fields, "
            f"{len(self.relations)} relations)>"
        )


class PivotSpec(BaseModel):
    """A many-to-many join table; generates only a migration."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Pivot table name.")
    fields: Dict[str, FieldSpec] = Field(default_factory=dict)
    unique: Tuple[str, ...] = ()
    parse_issues: Tuple[ParseIssue, ...] = ()


class CustomRoute(BaseModel):
    """A hand-declared route appended to the generated routes section."""

    model_config = _FROZEN_CONFIG

    method: str = Field(default="get")
    uri: str = Field(..., min_length=1)
    controller: str = Field(..., min_length=1)
    middleware: Tuple[str, ...] = ()
    name: Optional[str] = None

    @field_validator("method")
    @classmethod
    def _lower_method(cls, v: str) -> str:
        return v.lower()


class AuthConfig(BaseModel):
    """``meta.auth``"""

    model_config = _FROZEN_CONFIG

    enabled: bool = False
    provider: str = "sanctum"
    guards: Tuple[str, ...] = ("web", "api")
    stateful_domains: Tuple[str, ...] = ()


class MetaConfig(BaseModel):
    """``meta`` block of the schema document."""

    model_config = _FROZEN_CONFIG

    project: str = "GeneratedAPI"
    version: str = "1.0.0"
    auth: AuthConfig = Field(default_factory=AuthConfig)
    middlewares: Tuple[str, ...] = ()
    app: Dict[str, Any] = Field(default_factory=dict)
    database: Dict[str, Any] = Field(default_factory=dict)
    mail: Dict[str, Any] = Field(default_factory=dict)
    cache: Dict[str, Any] = Field(default_factory=dict)
    queues: Dict[str, Any] = Field(default_factory=dict)
    cors: Dict[str, Any] = Field(default_factory=dict)


class Schema(BaseModel):
    """
    The whole parsed schema, immutable for the duration of a run.

    ``raw`` keeps the source document; it is what the manifest hashes and
    snapshots.
    """

    model_config = _FROZEN_CONFIG

    meta: Optional[MetaConfig] = None
    entities: Dict[str, Entity] = Field(default_factory=dict)
    pivots: Dict[str, PivotSpec] = Field(default_factory=dict)
    custom_routes: Tuple[CustomRoute, ...] = ()
    raw: Dict[str, Any] = Field(default_factory=dict)
    parse_issues: Tuple[ParseIssue, ...] = ()

    @property
    def project(self) -> str:
        return self.meta.project if self.meta else MetaConfig().project

    @property
    def version(self) -> str:
        return self.meta.version if self.meta else MetaConfig().version

    @property
    def auth_config(self) -> AuthConfig:
        return self.meta.auth if self.meta else AuthConfig()

    @property
    def global_middlewares(self) -> Tuple[str, ...]:
        return self.meta.middlewares if self.meta else ()

    @property
    def entity_tables(self) -> Dict[str, str]:
        """table name → entity name"""
        return {e.table: e.name for e in self.entities.values()}

    def entity_for_table(self, table: str) -> Optional[Entity]:
        name: Optional[str] = self.entity_tables.get(table)
        return self.entities.get(name) if name is not None else None

    def __repr__(self) -> str:
        return (
            f"<Schema {self.project} ({len(self.entities)} entities, "
            f"{len(self.pivots)} pivots)>"
        )


# ---------------------------------------------------------------------------
# Generation state
# ---------------------------------------------------------------------------

MANIFEST_VERSION: str = "1.0.0"


def _default_buckets() -> Dict[str, Dict[str, "FileRecord"]]:
    return {kind.value: {} for kind in ArtifactKind}


class FileRecord(BaseModel):
    """One generated artifact as last written."""

    model_config = _SHARED_CONFIG

    generated_at: str
    content_hash: Optional[str] = None
    size_bytes: int = Field(default=0, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Manifest(BaseModel):
    """
    Persistent record of generated artifacts and the schema behind them.

    Unknown top-level keys are ignored so older or newer manifests load.
    """

    model_config = ConfigDict(
        strict=False,
        populate_by_name=True,
        validate_assignment=True,
        use_enum_values=True,
        extra="ignore",
    )

    version: str = MANIFEST_VERSION
    generated_at: Optional[str] = None
    schema_hash: Optional[str] = None
    schema_snapshot: Optional[Dict[str, Any]] = None
    files: Dict[str, Dict[str, FileRecord]] = Field(default_factory=_default_buckets)
    total_file_count: int = 0
    generator_version: str = ""

    @model_validator(mode="after")
    def _ensure_buckets(self) -> "Manifest":
        for kind in ArtifactKind:
            self.files.setdefault(kind.value, {})
        return self

    def all_files(self) -> List[Tuple[str, str, FileRecord]]:
        """(kind, path, record) triples in bucket then insertion order."""
        return [
            (kind, path, record)
            for kind, bucket in self.files.items()
            for path, record in bucket.items()
        ]

    def tracked_paths(self) -> List[str]:
        seen: Dict[str, None] = {}
        for _, path, _ in self.all_files():
            seen.setdefault(path, None)
        return list(seen)

    def record_for(self, path: str) -> Optional[FileRecord]:
        for bucket in self.files.values():
            if path in bucket:
                return bucket[path]
        return None

    def upsert(self, kind: str, path: str, record: FileRecord) -> None:
        self.files.setdefault(kind, {})[path] = record
        self.recount()

    def remove_path(self, path: str) -> int:
        """Drop *path* from every bucket; returns how many records went."""
        removed: int = 0
        for bucket in self.files.values():
            if bucket.pop(path, None) is not None:
                removed += 1
        self.recount()
        return removed

    def recount(self) -> None:
        self.total_file_count = sum(len(b) for b in self.files.values())


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldType",
    "SIMPLE_FIELD_TYPES",
    "KNOWN_FIELD_TYPES",
    "RelationKind",
    "RouteAction",
    "ROUTE_SYNONYMS",
    "ConditionKind",
    "LITERAL_CONDITIONS",
    "RuleOperator",
    "ArtifactKind",
    "ForeignParams",
    "EnumParams",
    "DecimalParams",
    "FileParams",
    "TypeParams",
    "FieldSpec",
    "RelationSpec",
    "Condition",
    "RuleExpr",
    "ActionSpec",
    "ScopeSpec",
    "IndexFilter",
    "FactoryConfig",
    "ParseIssue",
    "Entity",
    "PivotSpec",
    "CustomRoute",
    "AuthConfig",
    "MetaConfig",
    "Schema",
    "MANIFEST_VERSION",
    "FileRecord",
    "Manifest",
]

logger.debug("laragen.models loaded — %d public symbols.", len(__all__))
