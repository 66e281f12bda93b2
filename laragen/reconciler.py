# File: laragen/reconciler.py
"""
laragen - Reconciliation Engine
================================

Drives one generation run's transition of the manifest::

    UNLOADED ──load──▶ LOADED ──diff──▶ DIFFED ──reconcile──▶ RECONCILED ──commit──▶ SAVED

* ``diff`` compares the manifest with the new schema and produces a
  ``ReconciliationPlan`` (required artifacts, cleanup candidates, whether
  the schema changed).  It never touches the disk.
* ``reconcile`` applies the plan: in clean mode, obsolete artifacts are
  deleted; merge mode deletes nothing; preview mode never reconciles.
* ``record`` / ``forget`` keep the manifest in step with generated files.
* ``commit`` writes the manifest and a history entry, exactly once.

Calling an operation out of order raises ``ReconciliationStateError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from laragen.errors import ReconciliationStateError
from laragen.filesystem import ProjectFilesystem
from laragen.manifest import (
    CleanupReport,
    ManifestStore,
    add_generated_file,
    cleanup,
    files_to_cleanup,
    has_schema_changed,
    required_artifacts,
    schema_hash,
    set_schema,
)
from laragen.models import FileRecord, Manifest, Schema

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.reconciler")


# ---------------------------------------------------------------------------
# Run modes
# ---------------------------------------------------------------------------


class RunMode(str, Enum):
    """How a run treats existing files."""

    CLEAN = "clean"
    MERGE = "merge"
    PREVIEW = "preview"


def resolve_mode(
    clean: bool = False,
    merge: bool = False,
    preview: bool = False,
    dry_run: bool = False,
) -> RunMode:
    """
    Collapse mode flags into one mode: preview (or dry-run) beats merge,
    merge beats clean, and no flag means clean.
    """
    if preview or dry_run:
        mode = RunMode.PREVIEW
    elif merge:
        mode = RunMode.MERGE
    else:
        mode = RunMode.CLEAN
    if sum((clean, merge, preview or dry_run)) > 1:
        logger.warning("Several mode flags given; running in %s mode.", mode.value)
    return mode


class EngineState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    DIFFED = "diffed"
    RECONCILED = "reconciled"
    SAVED = "saved"


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class ReconciliationPlan:
    """What a run would keep, regenerate and delete."""

    mode: RunMode
    schema_changed: bool
    previous_hash: Optional[str]
    new_hash: str
    required: List[str] = field(default_factory=list)
    cleanup: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "schema_changed": self.schema_changed,
            "previous_hash": self.previous_hash,
            "new_hash": self.new_hash,
            "required": list(self.required),
            "cleanup": list(self.cleanup),
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ReconciliationEngine:
    """
    Owns the manifest for the duration of one run.

    Usage::

        engine = ReconciliationEngine(ManifestStore(fs), fs, RunMode.CLEAN)
        engine.load()
        plan = engine.diff(schema)
        engine.reconcile()
        ...write files, engine.record(kind, path, metadata)...
        engine.commit()
    """

    def __init__(
        self,
        store: ManifestStore,
        fs: ProjectFilesystem,
        mode: RunMode = RunMode.CLEAN,
    ) -> None:
        self.store: ManifestStore = store
        self.fs: ProjectFilesystem = fs
        self.mode: RunMode = mode
        self.state: EngineState = EngineState.UNLOADED
        self._manifest: Optional[Manifest] = None
        self._schema: Optional[Schema] = None
        self._plan: Optional[ReconciliationPlan] = None

    def __repr__(self) -> str:
        return f"<ReconciliationEngine {self.mode.value} {self.state.value}>"

    # -- Guards -------------------------------------------------------------

    def _require(self, operation: str, *states: EngineState) -> None:
        if self.state not in states:
            raise ReconciliationStateError(operation, self.state.value)

    @property
    def manifest(self) -> Manifest:
        if self._manifest is None:
            raise ReconciliationStateError("access the manifest", self.state.value)
        return self._manifest

    @property
    def schema(self) -> Schema:
        if self._schema is None:
            raise ReconciliationStateError("access the schema", self.state.value)
        return self._schema

    @property
    def plan(self) -> ReconciliationPlan:
        if self._plan is None:
            raise ReconciliationStateError("access the plan", self.state.value)
        return self._plan

    # -- Transitions --------------------------------------------------------

    def load(self) -> Manifest:
        self._require("load", EngineState.UNLOADED)
        self._manifest = self.store.load()
        self.state = EngineState.LOADED
        return self._manifest

    def diff(self, schema: Schema) -> ReconciliationPlan:
        """Compute the plan against *schema*; no side effects."""
        self._require("diff", EngineState.LOADED)
        manifest: Manifest = self.manifest
        self._schema = schema
        self._plan = ReconciliationPlan(
            mode=self.mode,
            schema_changed=has_schema_changed(manifest, schema),
            previous_hash=manifest.schema_hash,
            new_hash=schema_hash(schema.raw),
            required=sorted(required_artifacts(schema)),
            cleanup=files_to_cleanup(manifest, schema),
        )
        self.state = EngineState.DIFFED
        logger.info(
            "Plan: schema %s, %d required, %d to clean up.",
            "changed" if self._plan.schema_changed else "unchanged",
            len(self._plan.required),
            len(self._plan.cleanup),
        )
        return self._plan

    def reconcile(self) -> CleanupReport:
        """Delete obsolete artifacts (clean mode only)."""
        self._require("reconcile", EngineState.DIFFED)
        if self.mode is RunMode.PREVIEW:
            raise ReconciliationStateError("reconcile in preview mode", self.state.value)

        report: CleanupReport
        if self.mode is RunMode.CLEAN and self.plan.cleanup:
            report = cleanup(self.manifest, self.schema, self.fs)
        else:
            report = CleanupReport()
            if self.plan.cleanup:
                logger.info(
                    "Merge mode keeps %d obsolete file(s) on disk.",
                    len(self.plan.cleanup),
                )
        self.state = EngineState.RECONCILED
        return report

    def record(
        self, kind: str, path: str, metadata: Optional[Dict[str, Any]] = None
    ) -> FileRecord:
        self._require("record a file", EngineState.RECONCILED)
        return add_generated_file(self.manifest, kind, path, self.fs, metadata)

    def forget(self, path: str) -> int:
        self._require("forget a file", EngineState.RECONCILED)
        return self.manifest.remove_path(path)

    def commit(self, stamp_schema: bool = True) -> Optional[str]:
        """
        Stamp the schema, save the manifest and append a history entry.

        With *stamp_schema* False (a partial run, or one with failures) the
        manifest is saved under its previous schema hash, so the next run
        sees a change and retries; no history entry is written.

        Returns the history entry path, or None when nothing was stamped.
        """
        self._require("commit", EngineState.RECONCILED)
        manifest: Manifest = self.manifest
        if stamp_schema:
            set_schema(manifest, self.schema)
        self.store.save(manifest)
        self.state = EngineState.SAVED
        if not stamp_schema:
            logger.warning("Manifest saved without stamping the schema; next run retries.")
            return None
        return self.store.save_to_history(manifest)


__all__: List[str] = [
    "RunMode",
    "resolve_mode",
    "EngineState",
    "ReconciliationPlan",
    "ReconciliationEngine",
]

logger.debug("laragen.reconciler loaded — %d public symbols.", len(__all__))
