"""
tests/test_manifest.py
Unit tests for laragen.manifest.

Tests cover:
- Schema hashing and change detection
- The required-artifact set derived from a schema
- Cleanup: obsolete files removed, required files never touched
- Manifest persistence: fresh load, save/load, corrupt files
- History snapshots and pruning
"""

from __future__ import annotations

import json
import pathlib
from datetime import datetime, timedelta
from typing import Any, Dict

import pytest

from laragen.errors import CorruptManifest
from laragen.filesystem import ProjectFilesystem
from laragen.manifest import (
    AUTH_CONTROLLER_PATH,
    HISTORY_DIRNAME,
    HISTORY_LIMIT,
    MANIFEST_FILENAME,
    ManifestStore,
    add_generated_file,
    cleanup,
    files_to_cleanup,
    has_schema_changed,
    is_required,
    required_artifacts,
    schema_hash,
    set_schema,
)
from laragen.models import Manifest
from laragen.schema import build_schema


def _touch(root: pathlib.Path, relative: str, text: str = "<?php\n") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


# ===========================================================================
# Hashing
# ===========================================================================


class TestSchemaHash:

    def test_key_order_does_not_matter(self) -> None:
        assert schema_hash({"a": 1, "b": {"c": 2, "d": 3}}) == schema_hash(
            {"b": {"d": 3, "c": 2}, "a": 1}
        )

    def test_value_change_changes_hash(self) -> None:
        assert schema_hash({"a": 1}) != schema_hash({"a": 2})

    def test_fresh_manifest_sees_a_change(self, blog_schema) -> None:
        assert has_schema_changed(Manifest(), blog_schema)

    def test_stamped_manifest_sees_no_change(self, blog_schema) -> None:
        manifest = Manifest()
        set_schema(manifest, blog_schema)
        assert not has_schema_changed(manifest, blog_schema)
        assert manifest.schema_snapshot == blog_schema.raw
        assert manifest.generator_version


# ===========================================================================
# Required artifacts
# ===========================================================================


class TestRequiredArtifacts:

    def test_single_entity_without_factory(self) -> None:
        schema = build_schema(
            {
                "meta": {},
                "models": {
                    "User": {
                        "fields": {
                            "name": "string|required",
                            "email": "string|email|unique|required",
                        },
                        "routes": ["list", "create"],
                    }
                },
            }
        )
        required = required_artifacts(schema)
        assert "app/Models/User.php" in required
        assert "app/Http/Controllers/UserController.php" in required
        assert not any("factories" in p for p in required), (
            f"No factory expected without a 'factory' key: {sorted(required)}"
        )

    def test_blog_schema_artifacts(self, blog_schema) -> None:
        required = required_artifacts(blog_schema)
        expected = {
            "app/Models/Post.php",
            "app/Http/Controllers/PostController.php",
            "database/factories/PostFactory.php",
            "database/factories/UserFactory.php",
            "database/seeders/PostSeeder.php",
            "app/Policies/PostPolicy.php",
            "app/Observers/CommentObserver.php",
            "database/migrations/*_create_posts_table.php",
            "database/migrations/*_create_post_tag_table.php",
            "database/migrations/*_modify_users_table.php",
            "routes/api.php",
            "database/seeders/DatabaseSeeder.php",
            AUTH_CONTROLLER_PATH,
        }
        missing = expected - required
        assert not missing, f"Missing required artifacts: {sorted(missing)}"
        assert "database/migrations/*_create_users_table.php" not in required
        assert "app/Http/Controllers/UserController.php" not in required

    def test_auth_controller_only_with_auth(self, minimal_schema_dict: Dict[str, Any]) -> None:
        assert AUTH_CONTROLLER_PATH not in required_artifacts(build_schema(minimal_schema_dict))

    def test_globs_match_concrete_migrations(self, blog_schema) -> None:
        required = required_artifacts(blog_schema)
        assert is_required("database/migrations/2024_01_01_120000_create_posts_table.php", required)
        assert not is_required("database/migrations/2024_01_01_120000_create_tags2_table.php", required)


# ===========================================================================
# Cleanup
# ===========================================================================


class TestCleanup:
    """Obsolete artifacts are removed; required ones are never touched."""

    @pytest.fixture()
    def tracked(self, blog_schema_dict: Dict[str, Any], project_root: pathlib.Path):
        fs = ProjectFilesystem(project_root)
        manifest = Manifest()
        for kind, path in [
            ("models", "app/Models/Post.php"),
            ("models", "app/Models/Tag.php"),
            ("controllers", "app/Http/Controllers/TagController.php"),
            ("migrations", "database/migrations/2024_01_01_120000_create_posts_table.php"),
            ("migrations", "database/migrations/2024_01_01_120001_create_tags_table.php"),
        ]:
            _touch(project_root, path)
            add_generated_file(manifest, kind, path, fs)

        del blog_schema_dict["models"]["Tag"]
        blog_schema_dict["models"]["Post"]["relations"].pop("tags")
        del blog_schema_dict["pivots"]
        return fs, manifest, build_schema(blog_schema_dict)

    def test_files_to_cleanup(self, tracked) -> None:
        _, manifest, schema = tracked
        assert files_to_cleanup(manifest, schema) == [
            "app/Models/Tag.php",
            "app/Http/Controllers/TagController.php",
            "database/migrations/2024_01_01_120001_create_tags_table.php",
        ]

    def test_cleanup_deletes_only_obsolete(self, tracked, project_root: pathlib.Path) -> None:
        fs, manifest, schema = tracked
        report = cleanup(manifest, schema, fs)

        assert report.success
        assert len(report.deleted) == 3
        assert not (project_root / "app/Models/Tag.php").exists()
        assert (project_root / "app/Models/Post.php").exists()
        assert (project_root / "database/migrations/2024_01_01_120000_create_posts_table.php").exists()
        assert manifest.tracked_paths() == [
            "app/Models/Post.php",
            "database/migrations/2024_01_01_120000_create_posts_table.php",
        ]
        assert manifest.total_file_count == 2

    def test_missing_file_is_a_noop(self, tracked, project_root: pathlib.Path) -> None:
        fs, manifest, schema = tracked
        (project_root / "app/Models/Tag.php").unlink()
        report = cleanup(manifest, schema, fs)
        assert report.success
        assert report.missing == ["app/Models/Tag.php"]
        assert manifest.record_for("app/Models/Tag.php") is None

    def test_glob_entry_spares_required_matches(self, tracked, project_root: pathlib.Path) -> None:
        fs, manifest, schema = tracked
        manifest.remove_path("database/migrations/2024_01_01_120001_create_tags_table.php")
        add_generated_file(manifest, "migrations", "database/migrations/*_table.php", fs)

        report = cleanup(manifest, schema, fs)

        assert "database/migrations/2024_01_01_120001_create_tags_table.php" in report.deleted
        assert (project_root / "database/migrations/2024_01_01_120000_create_posts_table.php").exists()

    def test_failed_delete_keeps_record(self, tracked, project_root: pathlib.Path) -> None:
        fs, manifest, schema = tracked
        target = project_root / "app/Models/Tag.php"
        target.unlink()
        target.mkdir()  # unlink() fails on a directory

        report = cleanup(manifest, schema, fs)

        assert not report.success
        assert report.failures[0].path == "app/Models/Tag.php"
        assert manifest.record_for("app/Models/Tag.php") is not None
        assert "app/Models/Tag.php" not in report.removed_records


# ===========================================================================
# Manifest records
# ===========================================================================


class TestAddGeneratedFile:

    def test_record_hashes_content(self, project_root: pathlib.Path) -> None:
        fs = ProjectFilesystem(project_root)
        _touch(project_root, "app/Models/Post.php", "<?php // post\n")
        manifest = Manifest()
        record = add_generated_file(manifest, "models", "app/Models/Post.php", fs, {"entity": "Post"})

        assert record.size_bytes == len("<?php // post\n")
        assert record.content_hash and len(record.content_hash) == 64
        assert record.metadata == {"entity": "Post"}
        assert manifest.total_file_count == 1

    def test_path_lives_in_one_bucket(self, project_root: pathlib.Path) -> None:
        fs = ProjectFilesystem(project_root)
        _touch(project_root, "routes/api.php")
        manifest = Manifest()
        add_generated_file(manifest, "config", "routes/api.php", fs)
        add_generated_file(manifest, "routes", "routes/api.php", fs)

        assert manifest.files["config"] == {}
        assert "routes/api.php" in manifest.files["routes"]
        assert manifest.total_file_count == 1


# ===========================================================================
# Store
# ===========================================================================


class TestManifestStore:

    def test_load_without_file_is_fresh(self, project_root: pathlib.Path) -> None:
        manifest = ManifestStore(ProjectFilesystem(project_root)).load()
        assert manifest.schema_hash is None
        assert manifest.total_file_count == 0
        assert set(manifest.files) >= {"models", "migrations", "routes"}

    def test_save_then_load(self, blog_schema, project_root: pathlib.Path) -> None:
        fs = ProjectFilesystem(project_root)
        store = ManifestStore(fs)
        _touch(project_root, "app/Models/Post.php")
        manifest = Manifest()
        add_generated_file(manifest, "models", "app/Models/Post.php", fs)
        set_schema(manifest, blog_schema)
        store.save(manifest)

        data = json.loads((project_root / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert data["schema_hash"] == schema_hash(blog_schema.raw)

        loaded = store.load()
        assert loaded.schema_hash == manifest.schema_hash
        assert loaded.tracked_paths() == ["app/Models/Post.php"]

    def test_unknown_keys_are_ignored(self, project_root: pathlib.Path) -> None:
        (project_root / MANIFEST_FILENAME).write_text(
            json.dumps({"schema_hash": "abc", "someday": True}), encoding="utf-8"
        )
        assert ManifestStore(ProjectFilesystem(project_root)).load().schema_hash == "abc"

    @pytest.mark.parametrize(
        "content",
        ["{not json", "[1, 2]", json.dumps({"files": {"models": "oops"}})],
    )
    def test_corrupt_manifest(self, project_root: pathlib.Path, content: str) -> None:
        (project_root / MANIFEST_FILENAME).write_text(content, encoding="utf-8")
        with pytest.raises(CorruptManifest) as exc_info:
            ManifestStore(ProjectFilesystem(project_root)).load()
        assert exc_info.value.path == MANIFEST_FILENAME


class TestHistory:

    def test_history_is_bounded(self, blog_schema, project_root: pathlib.Path) -> None:
        store = ManifestStore(ProjectFilesystem(project_root))
        manifest = Manifest()
        set_schema(manifest, blog_schema)
        start = datetime(2024, 1, 1, 12, 0, 0)

        paths = [
            store.save_to_history(manifest, now=start + timedelta(minutes=i))
            for i in range(HISTORY_LIMIT + 3)
        ]

        kept = store.history_files()
        assert len(kept) == HISTORY_LIMIT, f"Expected {HISTORY_LIMIT} entries, got {len(kept)}"
        assert kept == paths[3:], "The oldest entries must be the ones pruned"
        assert all(p.startswith(HISTORY_DIRNAME) for p in kept)

    def test_history_newest_first(self, blog_schema, project_root: pathlib.Path) -> None:
        store = ManifestStore(ProjectFilesystem(project_root))
        manifest = Manifest()
        set_schema(manifest, blog_schema)
        store.save_to_history(manifest, now=datetime(2024, 1, 1, 12, 0, 0))
        store.save_to_history(manifest, now=datetime(2024, 1, 2, 12, 0, 0))

        entries = store.history()
        assert [e["timestamp"] for e in entries] == [
            "2024-01-02T12:00:00",
            "2024-01-01T12:00:00",
        ]
        assert entries[0]["schema_hash"] == manifest.schema_hash

    def test_same_moment_does_not_overwrite(self, project_root: pathlib.Path) -> None:
        store = ManifestStore(ProjectFilesystem(project_root))
        moment = datetime(2024, 1, 1, 12, 0, 0)
        first = store.save_to_history(Manifest(), now=moment)
        second = store.save_to_history(Manifest(), now=moment)
        assert first != second
        assert len(store.history_files()) == 2
