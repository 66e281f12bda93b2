# File: laragen/__init__.py
"""
laragen — Schema-Driven Laravel Code Generator
===============================================

Reads a declarative JSON schema of entities, fields, relations, routes,
policies, hooks, observers and pivot tables, and writes the matching
Laravel models, migrations, controllers, routes, factories, seeders,
policies, observers and auth scaffolding.  A manifest tracks every
generated file so later runs detect schema drift, clean up obsolete
output and merge into hand-edited files.

Architecture overview::

    ┌──────────────┐     ┌─────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ LaravelGenerator │────▶│ TemplateGenerator│
    │   (cli.py)   │     │  (generator.py)  │     │  (templates.py)  │
    └──────────────┘     └────────┬────────┘     └──────────────────┘
                                  │
              ┌──────────────┬────┴─────────┬───────────────┐
              ▼              ▼              ▼               ▼
        ┌──────────┐  ┌────────────┐  ┌────────────┐  ┌──────────┐
        │  schema  │  │ validators │  │ reconciler │  │  merge   │
        │ parsers  │  │ ordering   │  │ manifest   │  │ envconfig│
        │  rules   │  │            │  │ filesystem │  │          │
        └──────────┘  └────────────┘  └────────────┘  └──────────┘

Usage::

    # As a library
    from laragen import GenerationOptions, LaravelGenerator, RunMode
    gen = LaravelGenerator(GenerationOptions(mode=RunMode.MERGE))
    report = gen.generate_from_file("schema.json", "./my-app")

    # From the command line
    laragen generate schema.json --project-root ./my-app --merge -v

Public API:
    - LaravelGenerator     — Master orchestrator
    - GenerationOptions    — Run options (mode, only, force, env)
    - load_schema          — Schema file → ``Schema``
    - validate_schema      — Schema validation entry point
    - dependency_order     — belongsTo-first entity order
    - ManifestStore        — Manifest and history persistence
    - ReconciliationEngine — Per-run manifest state machine
    - TemplateGenerator    — PHP template engine
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from laragen.errors import (
    CorruptManifest,
    InvalidSchemaJson,
    IOFailure,
    LaragenError,
    MalformedFieldSpec,
    MalformedRelationSpec,
    ReconciliationStateError,
    SchemaNotFound,
    ValidationFailed,
)
from laragen.models import (
    ArtifactKind,
    Entity,
    FieldSpec,
    FieldType,
    Manifest,
    RelationKind,
    RelationSpec,
    RuleExpr,
    Schema,
)
from laragen.parsers import field_to_definition, parse_field
from laragen.rules import parse_relation, parse_rule, resolve_actions
from laragen.schema import build_schema, load_schema
from laragen.validators import ValidationResult, validate_schema
from laragen.ordering import dependency_order
from laragen.filesystem import ProjectFilesystem
from laragen.manifest import ManifestStore, required_artifacts, schema_hash
from laragen.reconciler import ReconciliationEngine, RunMode, resolve_mode
from laragen.envconfig import flatten_env
from laragen.templates import TemplateGenerator
from laragen.generator import GenerationOptions, GenerationReport, LaravelGenerator

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Core orchestrator
    "LaravelGenerator",
    "GenerationOptions",
    "GenerationReport",
    # Errors
    "LaragenError",
    "SchemaNotFound",
    "InvalidSchemaJson",
    "MalformedFieldSpec",
    "MalformedRelationSpec",
    "ValidationFailed",
    "CorruptManifest",
    "IOFailure",
    "ReconciliationStateError",
    # Models
    "ArtifactKind",
    "Entity",
    "FieldSpec",
    "FieldType",
    "Manifest",
    "RelationKind",
    "RelationSpec",
    "RuleExpr",
    "Schema",
    # Parsing
    "parse_field",
    "field_to_definition",
    "parse_relation",
    "parse_rule",
    "resolve_actions",
    "build_schema",
    "load_schema",
    # Validation & ordering
    "validate_schema",
    "ValidationResult",
    "dependency_order",
    # State
    "ProjectFilesystem",
    "ManifestStore",
    "required_artifacts",
    "schema_hash",
    "ReconciliationEngine",
    "RunMode",
    "resolve_mode",
    # Rendering
    "flatten_env",
    "TemplateGenerator",
]
