# File: laragen/generator.py
"""
laragen - Generation Pipeline (Orchestrator)
=============================================

Connects every phase of a run:

    Schema file → Validation → Manifest diff → Cleanup → Generation → Manifest save

The ``LaravelGenerator`` class is both the programmatic API and the
backend of the CLI.

Workflow::

    1. Load the schema document and build the ``Schema`` (schema.py).
    2. Validate it (validators.py); errors stop the run before any write.
    3. Load the manifest and diff it against the schema (reconciler.py).
    4. Preview mode stops here and reports the plan.
    5. Clean mode deletes obsolete artifacts.
    6. Update ``.env`` from the schema's meta blocks (envconfig.py).
    7. Render every artifact in dependency order (templates.py), writing,
       merging or skipping according to the run mode.
    8. Commit the manifest and a history entry.
    9. Return a ``GenerationReport`` with per-step metrics and every
       artifact outcome.

Error handling strategy:
    - Validation errors are collected and surfaced, never partially applied.
    - A failing artifact (driver error or I/O error) is recorded and the
      run continues with the next one.
    - A run with failures, or one restricted with ``only``, saves the
      manifest without stamping the schema hash, so the next run retries.
"""

from __future__ import annotations

import fnmatch
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator

from laragen.envconfig import flatten_env, update_env_text
from laragen.errors import (
    CorruptManifest,
    InvalidSchemaJson,
    IOFailure,
    SchemaNotFound,
    ValidationFailed,
)
from laragen.filesystem import ProjectFilesystem
from laragen.manifest import (
    AUTH_CONTROLLER_PATH,
    AUTH_PROVIDER_PATH,
    DATABASE_SEEDER_PATH,
    MODIFY_USERS_PATTERN,
    OBSERVER_PROVIDER_PATH,
    ROUTES_PATH,
    CleanupReport,
    ManifestStore,
    controller_path,
    entity_migration_pattern,
    factory_path,
    migration_pattern,
    model_path,
    observer_path,
    policy_path,
    seeder_path,
)
from laragen.merge import (
    APPENDED,
    ROUTES_MARKERS,
    SEEDERS_MARKERS,
    SectionMarkers,
    merge_section,
)
from laragen.models import ArtifactKind, Entity, PivotSpec, Schema
from laragen.ordering import dependency_order
from laragen.reconciler import ReconciliationEngine, ReconciliationPlan, RunMode
from laragen.schema import load_schema
from laragen.templates import (
    TemplateGenerator,
    migration_filename,
    modify_users_filename,
)
from laragen.utils import Timer
from laragen.validators import ValidationResult, validate_schema

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.generator")

# ---------------------------------------------------------------------------
# Components & artifact actions
# ---------------------------------------------------------------------------

COMPONENTS: Tuple[str, ...] = (
    "models",
    "migrations",
    "controllers",
    "routes",
    "factories",
    "seeders",
    "policies",
    "observers",
    "auth",
    "providers",
)

CREATED: str = "created"
OVERWRITTEN: str = "overwritten"
MERGED: str = "merged"
# APPENDED is shared with laragen.merge
SKIPPED: str = "skipped"
DELETED: str = "deleted"

ENV_PATH: str = ".env"
ENV_EXAMPLE_PATH: str = ".env.example"

_SEEDER_CALL_ANCHOR: "re.Pattern[str]" = re.compile(r"\$this->call\(\[")
_SEEDER_INDENT: str = " " * 12


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class GenerationOptions(BaseModel):
    """
    Run options, usually built from CLI flags.

    ``only`` restricts generation to some components; empty means all.
    """

    model_config = ConfigDict(frozen=True)

    mode: RunMode = RunMode.CLEAN
    only: Tuple[str, ...] = ()
    force: bool = False
    write_env: bool = True

    @field_validator("only", mode="before")
    @classmethod
    def _normalise_only(cls, v: Any) -> Tuple[str, ...]:
        if v is None:
            return ()
        tokens: List[str] = v.split(",") if isinstance(v, str) else [str(t) for t in v]
        selected: List[str] = []
        for token in tokens:
            name: str = token.strip().lower()
            if not name:
                continue
            if name not in COMPONENTS:
                logger.warning("Ignoring unknown component '%s'.", name)
                continue
            if name not in selected:
                selected.append(name)
        return tuple(selected)

    def includes(self, component: str) -> bool:
        return not self.only or component in self.only


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class ArtifactResult:
    """Outcome for one file touched by a run."""

    kind: str
    path: str
    action: str
    success: bool = True
    error: Optional[str] = None


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``LaravelGenerator.generate()``.

    Holds timing information, the reconciliation plan, every artifact
    outcome and the errors of each class.
    """

    success: bool = False
    project_name: str = ""
    project_root: str = ""
    mode: RunMode = RunMode.CLEAN
    schema_changed: bool = False
    unchanged: bool = False
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    io_errors: List[str] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    artifacts: List[ArtifactResult] = field(default_factory=list)

    plan: Optional[ReconciliationPlan] = None
    history_entry: Optional[str] = None

    @property
    def failed_artifacts(self) -> List[ArtifactResult]:
        return [a for a in self.artifacts if not a.success]

    def artifacts_with(self, action: str) -> List[ArtifactResult]:
        return [a for a in self.artifacts if a.action == action and a.success]

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  laragen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Project:          {self.project_name}")
        lines.append(f"  Project root:     {self.project_root}")
        lines.append(f"  Mode:             {self.mode.value}")
        lines.append(
            f"  Schema:           {'changed' if self.schema_changed else 'unchanged'}"
        )
        written: int = sum(
            1 for a in self.artifacts
            if a.success and a.action in (CREATED, OVERWRITTEN, MERGED, APPENDED)
        )
        lines.append(f"  Files written:    {written}")
        lines.append(f"  Files skipped:    {len(self.artifacts_with(SKIPPED))}")
        lines.append(f"  Files deleted:    {len(self.artifacts_with(DELETED))}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.unchanged:
            lines.append(f"{'─'*60}")
            lines.append("  Schema unchanged; nothing to do (use --force to regenerate).")

        if self.mode is RunMode.PREVIEW and self.plan is not None:
            lines.append(f"{'─'*60}")
            lines.append(f"  Required Artifacts ({len(self.plan.required)}):")
            for path in self.plan.required:
                lines.append(f"    • {path}")
            lines.append(f"  Would Clean Up ({len(self.plan.cleanup)}):")
            for path in self.plan.cleanup:
                lines.append(f"    ⊘ {path}")

        if self.input_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Input Errors ({len(self.input_errors)}):")
            for err in self.input_errors:
                lines.append(f"    ✗ {err}")

        if self.validation_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Errors ({len(self.validation_errors)}):")
            for err in self.validation_errors:
                lines.append(f"    ✗ {err}")

        if self.validation_warnings:
            lines.append(f"{'─'*60}")
            lines.append(
                f"  Validation Warnings ({len(self.validation_warnings)}):"
            )
            for warn in self.validation_warnings:
                lines.append(f"    ⚠ {warn}")

        if self.generation_errors:
            lines.append(f"{'─'*60}")
            lines.append(
                f"  Generation Errors ({len(self.generation_errors)}):"
            )
            for err in self.generation_errors:
                lines.append(f"    ✗ {err}")

        if self.io_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  I/O Errors ({len(self.io_errors)}):")
            for err in self.io_errors:
                lines.append(f"    ✗ {err}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Per-run state
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class _Run:
    schema: Schema
    fs: ProjectFilesystem
    engine: ReconciliationEngine
    report: GenerationReport
    templates: TemplateGenerator
    started: datetime
    migrations_written: int = 0

    @property
    def mode(self) -> RunMode:
        return self.engine.mode

    def next_migration_moment(self) -> datetime:
        moment: datetime = self.started + timedelta(seconds=self.migrations_written)
        self.migrations_written += 1
        return moment


# ---------------------------------------------------------------------------
# LaravelGenerator — Master orchestrator
# ---------------------------------------------------------------------------


class LaravelGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = LaravelGenerator(GenerationOptions(mode=RunMode.MERGE))

        report = generator.generate_from_file(
            schema_path=Path("schema.json"),
            project_root=Path("./my-laravel-app"),
        )

        print(report.summary())

    The generator is reusable; create once, call generate() many times.
    """

    def __init__(
        self,
        options: Optional[GenerationOptions] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._options: GenerationOptions = options or GenerationOptions()
        self._clock: Callable[[], datetime] = clock or datetime.now
        logger.debug(
            "LaravelGenerator initialised: mode=%s, only=%s, force=%s, env=%s.",
            self._options.mode.value,
            ",".join(self._options.only) or "all",
            self._options.force,
            self._options.write_env,
        )

    @property
    def options(self) -> GenerationOptions:
        return self._options

    # -----------------------------------------------------------------
    # Public: validation only
    # -----------------------------------------------------------------

    def validate_file(self, schema_path: Union[str, Path]) -> Tuple[Schema, ValidationResult]:
        """
        Load and validate a schema file without touching any project.

        Raises:
            SchemaNotFound, InvalidSchemaJson, IOFailure
        """
        schema: Schema = load_schema(schema_path)
        return schema, validate_schema(schema)

    # -----------------------------------------------------------------
    # Public: generate from file
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        schema_path: Union[str, Path],
        project_root: Union[str, Path],
    ) -> GenerationReport:
        """Full pipeline: load file → validate → reconcile → generate → save."""
        report: GenerationReport = GenerationReport(mode=self._options.mode)
        report.project_root = str(Path(project_root).resolve())

        with Timer("load_schema") as t_load:
            try:
                schema: Schema = load_schema(schema_path)
            except (SchemaNotFound, InvalidSchemaJson) as exc:
                report.input_errors.append(str(exc))
                failure: Optional[str] = str(exc)
            except IOFailure as exc:
                report.io_errors.append(str(exc))
                failure = str(exc)
            else:
                failure = None

        if failure is not None:
            logger.error("%s", failure)
            report.step_metrics.append(GenerationStepMetric(
                step_name="Load Schema File",
                success=False,
                elapsed_seconds=t_load.elapsed,
                detail=failure,
            ))
            return self._finalise_report(report, t_load.elapsed)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Schema File",
            success=True,
            elapsed_seconds=t_load.elapsed,
            detail=f"from {Path(schema_path).name}, {len(schema.entities)} entities",
        ))
        logger.info("Loaded schema %s: %r", schema_path, schema)

        fs = ProjectFilesystem(project_root)
        return self._run_pipeline(schema, fs, report, raise_on_invalid=False)

    # -----------------------------------------------------------------
    # Public: generate from an in-memory schema
    # -----------------------------------------------------------------

    def generate(
        self,
        schema: Schema,
        project_root: Union[str, Path],
        *,
        raise_on_invalid: bool = False,
        fs: Optional[ProjectFilesystem] = None,
    ) -> GenerationReport:
        """
        Full pipeline from a built ``Schema``.

        Raises:
            ValidationFailed: only with ``raise_on_invalid=True``.
        """
        filesystem: ProjectFilesystem = fs or ProjectFilesystem(project_root)
        report: GenerationReport = GenerationReport(mode=self._options.mode)
        report.project_root = str(filesystem.root.resolve())
        return self._run_pipeline(schema, filesystem, report, raise_on_invalid)

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        schema: Schema,
        fs: ProjectFilesystem,
        report: GenerationReport,
        raise_on_invalid: bool,
    ) -> GenerationReport:
        pipeline_start: float = time.perf_counter()
        report.project_name = schema.project

        def done() -> GenerationReport:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        # --- Step: Validation ---
        result: ValidationResult = self._step_validate(schema, report)
        if result.has_errors:
            if raise_on_invalid:
                raise ValidationFailed(result)
            return done()

        # --- Step: Manifest + plan ---
        engine = ReconciliationEngine(ManifestStore(fs), fs, self._options.mode)
        if not self._step_load_manifest(engine, report):
            return done()
        plan: ReconciliationPlan = self._step_plan(engine, schema, report)

        if self._options.mode is RunMode.PREVIEW:
            logger.info(
                "Preview: %d required, %d would be removed; nothing written.",
                len(plan.required),
                len(plan.cleanup),
            )
            return done()

        if not plan.schema_changed and not self._options.force:
            report.unchanged = True
            logger.info("Schema unchanged; nothing to do.")
            return done()

        # --- Step: Cleanup ---
        self._step_cleanup(engine, report)

        # --- Step: Environment ---
        if self._options.write_env:
            self._step_environment(schema, fs, report)

        # --- Step: Ordering + generation ---
        order: List[str] = self._step_order(schema, report)
        run = _Run(
            schema=schema,
            fs=fs,
            engine=engine,
            report=report,
            templates=TemplateGenerator(schema),
            started=self._clock(),
        )
        self._step_generate(run, order)

        # --- Step: Save manifest ---
        self._step_commit(run)
        return done()

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(self, schema: Schema, report: GenerationReport) -> ValidationResult:
        with Timer("validation") as t:
            result: ValidationResult = validate_schema(schema)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Schema",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        if result.has_errors:
            logger.error(
                "Validation failed with %d error(s) in %.3fs.",
                result.error_count,
                t.elapsed,
            )
            for err in result.errors:
                logger.error("  ✗ %s", err)
        elif result.has_warnings:
            logger.warning(
                "Validation passed with %d warning(s) in %.3fs.",
                result.warning_count,
                t.elapsed,
            )
            for warn in result.warnings:
                logger.warning("  ⚠ %s", warn)
        else:
            logger.info(
                "Validation passed: %d entities validated in %.3fs.",
                len(schema.entities),
                t.elapsed,
            )
        return result

    # -----------------------------------------------------------------
    # Pipeline step: Manifest
    # -----------------------------------------------------------------

    def _step_load_manifest(self, engine: ReconciliationEngine, report: GenerationReport) -> bool:
        with Timer("load_manifest") as t:
            try:
                manifest = engine.load()
            except CorruptManifest as exc:
                report.input_errors.append(str(exc))
                error: Optional[str] = str(exc)
            except IOFailure as exc:
                report.io_errors.append(str(exc))
                error = str(exc)
            else:
                error = None

        if error is not None:
            logger.error("%s", error)
            report.step_metrics.append(GenerationStepMetric(
                step_name="Load Manifest",
                success=False,
                elapsed_seconds=t.elapsed,
                detail=error,
            ))
            return False

        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Manifest",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{manifest.total_file_count} tracked file(s)",
        ))
        return True

    def _step_plan(
        self, engine: ReconciliationEngine, schema: Schema, report: GenerationReport
    ) -> ReconciliationPlan:
        with Timer("plan") as t:
            plan: ReconciliationPlan = engine.diff(schema)

        report.plan = plan
        report.schema_changed = plan.schema_changed
        report.step_metrics.append(GenerationStepMetric(
            step_name="Plan Changes",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=(
                f"schema {'changed' if plan.schema_changed else 'unchanged'}, "
                f"{len(plan.required)} required, {len(plan.cleanup)} obsolete"
            ),
        ))
        return plan

    # -----------------------------------------------------------------
    # Pipeline step: Cleanup
    # -----------------------------------------------------------------

    def _step_cleanup(self, engine: ReconciliationEngine, report: GenerationReport) -> None:
        kinds: Dict[str, str] = {
            path: kind for kind, path, _ in engine.manifest.all_files()
        }

        with Timer("cleanup") as t:
            cleaned: CleanupReport = engine.reconcile()

        for path in cleaned.deleted:
            report.artifacts.append(
                ArtifactResult(kinds.get(path, ArtifactKind.MIGRATIONS.value), path, DELETED)
            )
        for failure in cleaned.failures:
            report.io_errors.append(str(failure))
            report.artifacts.append(ArtifactResult(
                kinds.get(failure.path, "obsolete"),
                failure.path,
                DELETED,
                success=False,
                error=str(failure),
            ))

        report.step_metrics.append(GenerationStepMetric(
            step_name="Clean Up Obsolete Files",
            success=cleaned.success,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(cleaned.deleted)} deleted, {len(cleaned.missing)} already absent"
                if engine.mode is RunMode.CLEAN
                else "merge mode keeps existing files"
            ),
        ))

    # -----------------------------------------------------------------
    # Pipeline step: Environment
    # -----------------------------------------------------------------

    def _step_environment(
        self, schema: Schema, fs: ProjectFilesystem, report: GenerationReport
    ) -> None:
        values: Dict[str, str] = flatten_env(schema)
        if not values:
            logger.debug("No meta configuration to write to %s.", ENV_PATH)
            return

        with Timer("environment") as t:
            try:
                if fs.exists(ENV_PATH):
                    text: str = fs.read_text(ENV_PATH)
                elif fs.exists(ENV_EXAMPLE_PATH):
                    text = fs.read_text(ENV_EXAMPLE_PATH)
                else:
                    text = ""
                fs.write_text(ENV_PATH, update_env_text(text, values))
            except IOFailure as exc:
                report.io_errors.append(str(exc))
                logger.error("%s", exc)
                error: Optional[str] = str(exc)
            else:
                error = None

        report.step_metrics.append(GenerationStepMetric(
            step_name="Update Environment",
            success=error is None,
            elapsed_seconds=t.elapsed,
            detail=error or f"{len(values)} key(s) in {ENV_PATH}",
        ))

    # -----------------------------------------------------------------
    # Pipeline step: Ordering
    # -----------------------------------------------------------------

    def _step_order(self, schema: Schema, report: GenerationReport) -> List[str]:
        with Timer("ordering") as t:
            order: List[str] = dependency_order(schema)
        logger.info("Generation order: %s", " → ".join(order) or "(none)")
        report.step_metrics.append(GenerationStepMetric(
            step_name="Order Entities",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(order)} entities ordered",
        ))
        return order

    # -----------------------------------------------------------------
    # Pipeline step: Code generation
    # -----------------------------------------------------------------

    def _step_generate(self, run: _Run, order: Sequence[str]) -> None:
        opts: GenerationOptions = self._options
        schema: Schema = run.schema
        templates: TemplateGenerator = run.templates
        before: int = len(run.report.artifacts)

        with Timer("code_generation") as t:
            for name in order:
                self._generate_entity(run, schema.entities[name])

            if opts.includes("migrations"):
                for pivot in schema.pivots.values():
                    self._generate_pivot(run, pivot)

            if opts.includes("routes"):
                self._emit_merged(
                    run,
                    ArtifactKind.ROUTES.value,
                    ROUTES_PATH,
                    ROUTES_MARKERS,
                    templates.routes_section_lines,
                    templates.render_routes_file,
                )

            if opts.includes("seeders"):
                if run.mode is RunMode.MERGE:
                    self._emit_merged(
                        run,
                        ArtifactKind.SEEDERS.value,
                        DATABASE_SEEDER_PATH,
                        SEEDERS_MARKERS,
                        lambda: templates.database_seeder_lines(order),
                        lambda: templates.render_database_seeder(order),
                        anchor=_SEEDER_CALL_ANCHOR,
                        indent=_SEEDER_INDENT,
                    )
                else:
                    self._emit(
                        run,
                        ArtifactKind.SEEDERS.value,
                        DATABASE_SEEDER_PATH,
                        lambda: templates.render_database_seeder(order),
                    )

            if opts.includes("providers"):
                self._emit(
                    run,
                    ArtifactKind.PROVIDERS.value,
                    AUTH_PROVIDER_PATH,
                    templates.render_auth_service_provider,
                )
                self._emit(
                    run,
                    ArtifactKind.PROVIDERS.value,
                    OBSERVER_PROVIDER_PATH,
                    templates.render_observer_service_provider,
                )

            if opts.includes("auth") and schema.auth_config.enabled:
                self._emit(
                    run,
                    ArtifactKind.CONTROLLERS.value,
                    AUTH_CONTROLLER_PATH,
                    templates.render_auth_controller,
                    {"provider": schema.auth_config.provider},
                )

        produced: List[ArtifactResult] = run.report.artifacts[before:]
        failed: int = sum(1 for a in produced if not a.success)
        detail: str = (
            f"{sum(1 for a in produced if a.action != SKIPPED and a.success)} written, "
            f"{sum(1 for a in produced if a.action == SKIPPED)} skipped, "
            f"{failed} failed"
        )
        run.report.step_metrics.append(GenerationStepMetric(
            step_name="Code Generation",
            success=failed == 0,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        logger.info("Code generation complete: %s in %.3fs.", detail, t.elapsed)

    def _generate_entity(self, run: _Run, entity: Entity) -> None:
        opts: GenerationOptions = self._options
        templates: TemplateGenerator = run.templates
        meta: Dict[str, Any] = {"entity": entity.name, "table": entity.table}

        if opts.includes("models"):
            self._emit(
                run, ArtifactKind.MODELS.value, model_path(entity),
                lambda: templates.render_model(entity), meta,
            )

        if opts.includes("migrations"):
            pattern: Optional[str] = entity_migration_pattern(entity)
            if pattern == MODIFY_USERS_PATTERN:
                self._emit_migration(
                    run,
                    pattern,
                    modify_users_filename,
                    lambda: templates.render_modify_users_migration(entity),
                    meta,
                )
            elif pattern is not None:
                self._emit_migration(
                    run,
                    pattern,
                    lambda moment: migration_filename(moment, entity.table),
                    lambda: templates.render_migration(entity),
                    meta,
                )
            else:
                logger.debug("Skipping migration for framework table %s.", entity.table)

        if opts.includes("controllers") and entity.has_routes:
            self._emit(
                run, ArtifactKind.CONTROLLERS.value, controller_path(entity),
                lambda: templates.render_controller(entity), meta,
            )

        if opts.includes("factories") and entity.has_factory:
            self._emit(
                run, ArtifactKind.FACTORIES.value, factory_path(entity),
                lambda: templates.render_factory(entity), meta,
            )

        if opts.includes("seeders") and entity.seeder:
            self._emit(
                run, ArtifactKind.SEEDERS.value, seeder_path(entity),
                lambda: templates.render_seeder(entity), meta,
            )

        if opts.includes("policies") and entity.has_policies:
            self._emit(
                run, ArtifactKind.POLICIES.value, policy_path(entity),
                lambda: templates.render_policy(entity), meta,
            )

        if opts.includes("observers") and entity.has_observers:
            self._emit(
                run, ArtifactKind.OBSERVERS.value, observer_path(entity),
                lambda: templates.render_observer(entity), meta,
            )

    def _generate_pivot(self, run: _Run, pivot: PivotSpec) -> None:
        self._emit_migration(
            run,
            migration_pattern(pivot.name),
            lambda moment: migration_filename(moment, pivot.name),
            lambda: run.templates.render_pivot_migration(pivot),
            {"pivot": pivot.name, "table": pivot.name},
        )

    # -----------------------------------------------------------------
    # Artifact writers
    # -----------------------------------------------------------------

    def _render(
        self, run: _Run, kind: str, path: str, action: str, render: Callable[[], Any]
    ) -> Optional[Any]:
        """Call a driver; a driver failure is recorded, never raised."""
        try:
            return render()
        except Exception as exc:
            message: str = f"{path}: {type(exc).__name__}: {exc}"
            run.report.generation_errors.append(message)
            run.report.artifacts.append(
                ArtifactResult(kind, path, action, success=False, error=message)
            )
            logger.error("Generation failed for %s", path, exc_info=True)
            return None

    def _store(
        self,
        run: _Run,
        kind: str,
        path: str,
        action: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            run.fs.write_text(path, content)
            run.engine.record(kind, path, metadata)
        except IOFailure as exc:
            run.report.io_errors.append(str(exc))
            run.report.artifacts.append(
                ArtifactResult(kind, path, action, success=False, error=str(exc))
            )
            logger.error("%s", exc)
            return
        run.report.artifacts.append(ArtifactResult(kind, path, action))
        logger.debug("%s %s", action.capitalize(), path)

    def _track_existing(
        self, run: _Run, kind: str, path: str, metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Merge mode keeps an existing file and only records it."""
        try:
            run.engine.record(kind, path, metadata)
        except IOFailure as exc:
            run.report.io_errors.append(str(exc))
            run.report.artifacts.append(
                ArtifactResult(kind, path, SKIPPED, success=False, error=str(exc))
            )
            logger.error("%s", exc)
            return
        run.report.artifacts.append(ArtifactResult(kind, path, SKIPPED))
        logger.info("Keeping existing %s", path)

    def _emit(
        self,
        run: _Run,
        kind: str,
        path: str,
        render: Callable[[], str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write one whole-file artifact: created, overwritten, or kept in merge mode."""
        existed: bool = run.fs.exists(path)
        if existed and run.mode is RunMode.MERGE:
            self._track_existing(run, kind, path, metadata)
            return

        action: str = OVERWRITTEN if existed else CREATED
        content: Optional[str] = self._render(run, kind, path, action, render)
        if content is not None:
            self._store(run, kind, path, action, content, metadata)

    def _emit_merged(
        self,
        run: _Run,
        kind: str,
        path: str,
        markers: SectionMarkers,
        section: Callable[[], List[str]],
        fresh: Callable[[], str],
        anchor: Optional["re.Pattern[str]"] = None,
        indent: str = "",
    ) -> None:
        """Merge the marked section into an existing file, or create the file."""
        if not run.fs.exists(path):
            content: Optional[str] = self._render(run, kind, path, CREATED, fresh)
            if content is not None:
                self._store(run, kind, path, CREATED, content)
            return

        try:
            text: str = run.fs.read_text(path)
        except IOFailure as exc:
            run.report.io_errors.append(str(exc))
            run.report.artifacts.append(
                ArtifactResult(kind, path, MERGED, success=False, error=str(exc))
            )
            logger.error("%s", exc)
            return

        body: Optional[List[str]] = self._render(run, kind, path, MERGED, section)
        if body is None:
            return
        outcome = merge_section(text, markers, body, anchor=anchor, indent=indent)
        action: str = APPENDED if outcome.action == APPENDED else MERGED
        self._store(run, kind, path, action, outcome.text)

    def _emit_migration(
        self,
        run: _Run,
        pattern: str,
        make_path: Callable[[datetime], str],
        render: Callable[[], str],
        metadata: Dict[str, Any],
    ) -> None:
        """
        Write a timestamped migration.

        Merge mode keeps existing migrations for the table.  Clean mode
        deletes them and drops their records before writing the new file,
        so only one migration per table exists.
        """
        kind: str = ArtifactKind.MIGRATIONS.value
        try:
            existing: List[str] = run.fs.glob(pattern)
        except IOFailure as exc:
            run.report.io_errors.append(str(exc))
            run.report.artifacts.append(
                ArtifactResult(kind, pattern, CREATED, success=False, error=str(exc))
            )
            logger.error("%s", exc)
            return

        if existing and run.mode is RunMode.MERGE:
            for path in existing:
                self._track_existing(run, kind, path, metadata)
            return

        for path in existing:
            try:
                run.fs.delete(path)
            except IOFailure as exc:
                run.report.io_errors.append(str(exc))
                run.report.artifacts.append(
                    ArtifactResult(kind, path, DELETED, success=False, error=str(exc))
                )
                logger.error("%s; keeping it and not writing a second migration.", exc)
                return
            logger.debug("Replacing migration %s", path)

        for tracked in run.engine.manifest.tracked_paths():
            if fnmatch.fnmatchcase(tracked, pattern):
                run.engine.forget(tracked)

        path: str = make_path(run.next_migration_moment())
        action: str = OVERWRITTEN if existing else CREATED
        content: Optional[str] = self._render(run, kind, path, action, render)
        if content is not None:
            self._store(run, kind, path, action, content, metadata)

    # -----------------------------------------------------------------
    # Pipeline step: Save manifest
    # -----------------------------------------------------------------

    def _step_commit(self, run: _Run) -> None:
        report: GenerationReport = run.report
        clean_run: bool = not (
            report.generation_errors or report.io_errors or report.failed_artifacts
        )
        # a partial run must not mark the schema as fully applied
        stamp: bool = clean_run and not self._options.only

        with Timer("commit") as t:
            try:
                report.history_entry = run.engine.commit(stamp_schema=stamp)
            except IOFailure as exc:
                report.io_errors.append(str(exc))
                logger.error("%s", exc)
                error: Optional[str] = str(exc)
            else:
                error = None

        if error is not None:
            detail: str = error
        elif report.history_entry:
            detail = f"history {Path(report.history_entry).name}"
        else:
            detail = (
                "saved without schema stamp (run had failures)"
                if not clean_run
                else "saved without schema stamp (partial run)"
            )

        report.step_metrics.append(GenerationStepMetric(
            step_name="Save Manifest",
            success=error is None,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(
        self,
        report: GenerationReport,
        total_elapsed: float,
    ) -> GenerationReport:
        """Set final status and timing on the report."""
        report.total_elapsed_seconds = total_elapsed

        has_errors: bool = bool(
            report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.io_errors
            or report.failed_artifacts
        )
        report.success = not has_errors

        if report.success:
            logger.info(
                "Run finished (%s mode) in %.3fs.",
                report.mode.value,
                total_elapsed,
            )
        else:
            logger.error(
                "Run failed in %.3fs: %d input, %d validation, %d generation, %d I/O error(s).",
                total_elapsed,
                len(report.input_errors),
                len(report.validation_errors),
                len(report.generation_errors),
                len(report.io_errors),
            )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "COMPONENTS",
    "CREATED",
    "OVERWRITTEN",
    "MERGED",
    "APPENDED",
    "SKIPPED",
    "DELETED",
    "ENV_PATH",
    "GenerationOptions",
    "ArtifactResult",
    "GenerationStepMetric",
    "GenerationReport",
    "LaravelGenerator",
]

logger.debug("laragen.generator loaded — %d public symbols.", len(__all__))
