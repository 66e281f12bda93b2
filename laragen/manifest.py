# File: laragen/manifest.py
"""
laragen - Manifest Store
=========================

Persistent generation state of a project:

* ``.ai-native-manifest.json``, the ``Manifest``: every generated file
  with its content hash, plus the hash and snapshot of the schema that
  produced it.
* ``.ai-native/history/``, one immutable snapshot per successful save,
  the newest ``HISTORY_LIMIT`` kept.

It also derives the set of artifacts a schema requires, which is what
cleanup compares the manifest against.  Migration files carry a run
timestamp in their name, so they are required through glob patterns such
as ``database/migrations/*_create_posts_table.php``.
"""

from __future__ import annotations

import copy
import fnmatch
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from laragen.errors import CorruptManifest, IOFailure
from laragen.filesystem import ProjectFilesystem
from laragen.models import Entity, FileRecord, Manifest, Schema
from laragen.utils import canonical_json, sha256_bytes, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.manifest")

# ---------------------------------------------------------------------------
# Persisted state locations
# ---------------------------------------------------------------------------
MANIFEST_FILENAME: str = ".ai-native-manifest.json"
HISTORY_DIRNAME: str = ".ai-native/history"
HISTORY_LIMIT: int = 10

_HISTORY_TIMESTAMP_FORMAT: str = "%Y-%m-%d_%H-%M-%S-%f"

# ---------------------------------------------------------------------------
# Artifact paths
# ---------------------------------------------------------------------------

# Tables the framework ships; no create-table migration is generated for them
RESERVED_TABLES: FrozenSet[str] = frozenset(
    {"users", "password_resets", "failed_jobs", "personal_access_tokens"}
)

ROUTES_PATH: str = "routes/api.php"
DATABASE_SEEDER_PATH: str = "database/seeders/DatabaseSeeder.php"
AUTH_PROVIDER_PATH: str = "app/Providers/AuthServiceProvider.php"
OBSERVER_PROVIDER_PATH: str = "app/Providers/ObserverServiceProvider.php"
AUTH_CONTROLLER_PATH: str = "app/Http/Controllers/AuthController.php"
MIGRATIONS_DIR: str = "database/migrations"

ALWAYS_REQUIRED: FrozenSet[str] = frozenset(
    {ROUTES_PATH, DATABASE_SEEDER_PATH, AUTH_PROVIDER_PATH, OBSERVER_PROVIDER_PATH}
)


def model_path(entity: Entity) -> str:
    return f"app/Models/{entity.class_name}.php"


def controller_path(entity: Entity) -> str:
    return f"app/Http/Controllers/{entity.class_name}Controller.php"


def factory_path(entity: Entity) -> str:
    return f"database/factories/{entity.class_name}Factory.php"


def seeder_path(entity: Entity) -> str:
    return f"database/seeders/{entity.class_name}Seeder.php"


def policy_path(entity: Entity) -> str:
    return f"app/Policies/{entity.class_name}Policy.php"


def observer_path(entity: Entity) -> str:
    return f"app/Observers/{entity.class_name}Observer.php"


def migration_suffix(table: str) -> str:
    return f"_create_{table}_table.php"


def migration_pattern(table: str) -> str:
    return f"{MIGRATIONS_DIR}/*{migration_suffix(table)}"


MODIFY_USERS_SUFFIX: str = "_modify_users_table.php"
MODIFY_USERS_PATTERN: str = f"{MIGRATIONS_DIR}/*{MODIFY_USERS_SUFFIX}"


def entity_migration_pattern(entity: Entity) -> Optional[str]:
    """Glob of the entity's migration, None for framework tables other than users."""
    if entity.table == "users":
        return MODIFY_USERS_PATTERN
    if entity.table in RESERVED_TABLES:
        return None
    return migration_pattern(entity.table)


# ---------------------------------------------------------------------------
# Hashing & required set
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def schema_hash(raw: Dict[str, Any]) -> str:
    """sha256 of the sorted-key compact JSON of the raw schema document."""
    return sha256_hex(canonical_json(raw))


def has_schema_changed(manifest: Manifest, schema: Schema) -> bool:
    return manifest.schema_hash != schema_hash(schema.raw)


def required_artifacts(schema: Schema) -> FrozenSet[str]:
    """
    Every path (or migration glob) the schema requires.

    Derived from entity and pivot presence and the per-entity feature
    flags, plus the always-required infrastructure files.
    """
    required: set = set(ALWAYS_REQUIRED)

    for entity in schema.entities.values():
        required.add(model_path(entity))
        if entity.has_routes:
            required.add(controller_path(entity))
        pattern = entity_migration_pattern(entity)
        if pattern is not None:
            required.add(pattern)
        if entity.has_factory:
            required.add(factory_path(entity))
        if entity.seeder:
            required.add(seeder_path(entity))
        if entity.has_policies:
            required.add(policy_path(entity))
        if entity.has_observers:
            required.add(observer_path(entity))

    for pivot_name in schema.pivots:
        required.add(migration_pattern(pivot_name))

    if schema.auth_config.enabled:
        required.add(AUTH_CONTROLLER_PATH)

    return frozenset(required)


def is_glob(path: str) -> bool:
    return any(ch in path for ch in "*?[")


def is_required(path: str, required: Iterable[str]) -> bool:
    """Exact member of *required*, or matched by one of its glob entries."""
    patterns = list(required)
    if path in patterns:
        return True
    return any(is_glob(p) and fnmatch.fnmatchcase(path, p) for p in patterns)


def files_to_cleanup(manifest: Manifest, schema: Schema) -> List[str]:
    """Tracked paths the new schema no longer requires, in manifest order."""
    required: FrozenSet[str] = required_artifacts(schema)
    return [p for p in manifest.tracked_paths() if not is_required(p, required)]


# ---------------------------------------------------------------------------
# Manifest mutation
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class CleanupReport:
    """Outcome of a ``cleanup`` pass."""

    deleted: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    removed_records: List[str] = field(default_factory=list)
    failures: List[IOFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


def cleanup(
    manifest: Manifest, schema: Schema, fs: ProjectFilesystem
) -> CleanupReport:
    """
    Delete every obsolete artifact and drop its records.

    Glob entries are expanded against the filesystem first; a match that is
    itself required by *schema* is never deleted.  A missing file is a
    no-op.  When a deletion fails the record is kept so the next run
    retries it.
    """
    required: FrozenSet[str] = required_artifacts(schema)
    report = CleanupReport()

    for path in files_to_cleanup(manifest, schema):
        targets: List[str] = [path]
        failed: bool = False
        if is_glob(path):
            try:
                targets = [m for m in fs.glob(path) if not is_required(m, required)]
            except IOFailure as exc:
                report.failures.append(exc)
                logger.error("%s", exc)
                continue

        for target in targets:
            try:
                if fs.delete(target):
                    report.deleted.append(target)
                    logger.info("Removed obsolete %s", target)
                else:
                    report.missing.append(target)
            except IOFailure as exc:
                failed = True
                report.failures.append(exc)
                logger.error("%s", exc)

        if not failed:
            manifest.remove_path(path)
            report.removed_records.append(path)

    manifest.recount()
    logger.info(
        "Cleanup: %d deleted, %d already absent, %d failure(s).",
        len(report.deleted),
        len(report.missing),
        len(report.failures),
    )
    return report


def add_generated_file(
    manifest: Manifest,
    kind: str,
    path: str,
    fs: ProjectFilesystem,
    metadata: Optional[Dict[str, Any]] = None,
) -> FileRecord:
    """
    Upsert the record of *path* under *kind*, hashing the file on disk.

    A path lives in exactly one bucket; an older record under another kind
    is dropped.
    """
    content_hash: Optional[str] = None
    size_bytes: int = 0
    if fs.exists(path):
        data: bytes = fs.read(path)
        content_hash = sha256_bytes(data)
        size_bytes = len(data)

    record = FileRecord(
        generated_at=_now_iso(),
        content_hash=content_hash,
        size_bytes=size_bytes,
        metadata=dict(metadata or {}),
    )
    for other_kind, bucket in manifest.files.items():
        if other_kind != kind:
            bucket.pop(path, None)
    manifest.upsert(kind, path, record)
    logger.debug("Tracked %s [%s] (%d bytes).", path, kind, size_bytes)
    return record


def set_schema(manifest: Manifest, schema: Schema) -> None:
    import laragen

    manifest.schema_hash = schema_hash(schema.raw)
    manifest.schema_snapshot = copy.deepcopy(schema.raw)
    manifest.generated_at = _now_iso()
    manifest.generator_version = laragen.__version__


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class ManifestStore:
    """
    Reads and writes the manifest and its history under a project root.

    Usage::

        store = ManifestStore(ProjectFilesystem(root))
        manifest = store.load()
        ...
        store.save(manifest)
        store.save_to_history(manifest)
    """

    def __init__(
        self,
        fs: ProjectFilesystem,
        manifest_path: str = MANIFEST_FILENAME,
        history_dir: str = HISTORY_DIRNAME,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.fs: ProjectFilesystem = fs
        self.manifest_path: str = manifest_path
        self.history_dir: str = history_dir
        self.history_limit: int = history_limit

    # -- Manifest -----------------------------------------------------------

    def load(self) -> Manifest:
        """
        Load the manifest, or a fresh one when none exists yet.

        Raises:
            CorruptManifest: the file exists but is not a manifest.
        """
        if not self.fs.exists(self.manifest_path):
            logger.info("No manifest at %s; starting fresh.", self.manifest_path)
            return Manifest()

        raw: bytes = self.fs.read(self.manifest_path)
        try:
            data: Any = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptManifest(self.manifest_path, str(exc)) from exc

        if not isinstance(data, dict):
            raise CorruptManifest(
                self.manifest_path,
                f"expected an object, got {type(data).__name__}",
            )

        try:
            manifest = Manifest.model_validate(data)
        except PydanticValidationError as exc:
            raise CorruptManifest(self.manifest_path, str(exc)) from exc

        manifest.recount()
        logger.info(
            "Loaded manifest: %d tracked file(s), schema %s.",
            manifest.total_file_count,
            (manifest.schema_hash or "none")[:8],
        )
        return manifest

    def serialize(self, manifest: Manifest) -> str:
        return json.dumps(manifest.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"

    def save(self, manifest: Manifest) -> None:
        manifest.recount()
        self.fs.write_text(self.manifest_path, self.serialize(manifest))
        logger.info(
            "Saved manifest (%d file(s)) to %s.",
            manifest.total_file_count,
            self.manifest_path,
        )

    # -- History ------------------------------------------------------------

    def history_files(self) -> List[str]:
        """History entry paths, oldest first."""
        if not self.fs.is_directory(self.history_dir):
            return []
        return sorted(self.fs.glob(f"{self.history_dir}/*.json"))

    def save_to_history(
        self, manifest: Manifest, now: Optional[datetime] = None
    ) -> str:
        """Write an immutable snapshot, prune old ones; returns its path."""
        moment: datetime = now or datetime.now()
        prefix: str = (manifest.schema_hash or "0" * 8)[:8]
        stem: str = f"{moment.strftime(_HISTORY_TIMESTAMP_FORMAT)}_{prefix}"

        self.fs.make_directory(self.history_dir)
        path: str = f"{self.history_dir}/{stem}.json"
        suffix: int = 1
        while self.fs.exists(path):
            path = f"{self.history_dir}/{stem}_{suffix}.json"
            suffix += 1

        payload: Dict[str, Any] = {
            "timestamp": moment.isoformat(),
            "schema_hash": manifest.schema_hash,
            "manifest": manifest.model_dump(mode="json"),
        }
        self.fs.write_text(path, json.dumps(payload, indent=2, sort_keys=True) + "\n")
        logger.debug("History entry written: %s", path)

        self.prune_history()
        return path

    def prune_history(self) -> List[str]:
        """Delete entries beyond ``history_limit``, oldest first."""
        entries: List[str] = self.history_files()
        excess: List[str] = entries[: max(0, len(entries) - self.history_limit)]
        for path in excess:
            self.fs.delete(path)
        if excess:
            logger.info("Pruned %d old history entries.", len(excess))
        return excess

    def history(self) -> List[Dict[str, Any]]:
        """Decoded history entries, newest first; unreadable ones are skipped."""
        entries: List[Dict[str, Any]] = []
        for path in reversed(self.history_files()):
            try:
                entry: Any = json.loads(self.fs.read_text(path))
            except (IOFailure, json.JSONDecodeError) as exc:
                logger.warning("Skipping unreadable history entry %s: %s", path, exc)
                continue
            if isinstance(entry, dict):
                entry["path"] = path
                entries.append(entry)
        return entries


__all__: List[str] = [
    "MANIFEST_FILENAME",
    "HISTORY_DIRNAME",
    "HISTORY_LIMIT",
    "RESERVED_TABLES",
    "ROUTES_PATH",
    "DATABASE_SEEDER_PATH",
    "AUTH_PROVIDER_PATH",
    "OBSERVER_PROVIDER_PATH",
    "AUTH_CONTROLLER_PATH",
    "MIGRATIONS_DIR",
    "ALWAYS_REQUIRED",
    "MODIFY_USERS_SUFFIX",
    "MODIFY_USERS_PATTERN",
    "model_path",
    "controller_path",
    "factory_path",
    "seeder_path",
    "policy_path",
    "observer_path",
    "migration_suffix",
    "migration_pattern",
    "entity_migration_pattern",
    "schema_hash",
    "has_schema_changed",
    "required_artifacts",
    "is_glob",
    "is_required",
    "files_to_cleanup",
    "CleanupReport",
    "cleanup",
    "add_generated_file",
    "set_schema",
    "ManifestStore",
]

logger.debug("laragen.manifest loaded — %d public symbols.", len(__all__))
