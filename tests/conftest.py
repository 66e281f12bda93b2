"""
tests/conftest.py
Shared fixtures for the laragen test suite.

All fixtures are function-scoped unless noted.
No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import json
import pathlib
from datetime import datetime
from typing import Any, Callable, Dict, List

import pytest

from laragen.filesystem import ProjectFilesystem
from laragen.models import Schema
from laragen.schema import build_schema


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FIXED_MOMENT: datetime = datetime(2024, 1, 1, 12, 0, 0)


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------

_BLOG_SCHEMA: Dict[str, Any] = {
    "meta": {
        "project": "Blog",
        "version": "1.0.0",
        "auth": {"enabled": True, "provider": "sanctum"},
        "app": {"name": "Blog", "env": "local", "debug": True},
        "database": {"connection": "mysql", "database": "blog"},
    },
    "models": {
        "User": {
            "table": "users",
            "fields": {
                "name": "string|required|max:255",
                "email": "string|required|email|unique",
                "password": "string|required",
            },
            "relations": {"posts": "hasMany:Post"},
            "factory": True,
        },
        "Post": {
            "fields": {
                "title": "string|required|max:255",
                "body": "text|nullable",
                "status": "enum:draft,published|default:draft",
                "user_id": "foreign:users",
            },
            "relations": {
                "user": "belongsTo:User",
                "comments": "hasMany:Comment",
                "tags": "belongsToMany:Tag,post_tag",
            },
            "routes": ["list", "show", "create", "update", "delete"],
            "policies": {"update": "role:admin|owner", "delete": "role:admin"},
            "hooks": {"beforeCreate": ["sanitizeInput"]},
            "factory": {"count": 20},
            "seeder": True,
        },
        "Comment": {
            "fields": {
                "body": "text|required",
                "post_id": "foreign:posts",
                "user_id": "foreign:users",
            },
            "relations": {"post": "belongsTo:Post", "user": "belongsTo:User"},
            "routes": ["list", "create"],
            "observers": {"created": "log"},
        },
        "Tag": {
            "fields": {"name": "string|required|unique"},
            "relations": {"posts": "belongsToMany:Post,post_tag"},
            "routes": ["list"],
        },
    },
    "pivots": {
        "post_tag": {
            "fields": {"post_id": "foreign:posts", "tag_id": "foreign:tags"},
            "unique": ["post_id", "tag_id"],
        },
    },
}


@pytest.fixture()
def blog_schema_dict() -> Dict[str, Any]:
    """A four-model blog schema with a pivot; a fresh deep copy per test."""
    return copy.deepcopy(_BLOG_SCHEMA)


@pytest.fixture()
def blog_schema(blog_schema_dict: Dict[str, Any]) -> Schema:
    return build_schema(blog_schema_dict)


@pytest.fixture()
def minimal_schema_dict() -> Dict[str, Any]:
    """Smallest valid schema: one model with one field, nothing else."""
    return {
        "meta": {"project": "Minimal"},
        "models": {
            "Item": {"fields": {"title": "string|required"}},
        },
    }


@pytest.fixture()
def schema_missing_target_dict() -> Dict[str, Any]:
    """A Comment that belongs to a Post that is never declared."""
    return {
        "meta": {"project": "Broken"},
        "models": {
            "Comment": {
                "fields": {"body": "text"},
                "relations": {"post": "belongsTo:Post"},
            },
        },
    }


# ---------------------------------------------------------------------------
# Schema files
# ---------------------------------------------------------------------------


def write_schema_file(path: pathlib.Path, data: Dict[str, Any]) -> pathlib.Path:
    """Dump *data* as JSON to *path* and return it."""
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
    return path


@pytest.fixture()
def write_schema(tmp_path: pathlib.Path) -> Callable[[Dict[str, Any], str], pathlib.Path]:
    """``write_schema(data, name="schema.json")`` writes under tmp_path."""

    def _write(data: Dict[str, Any], name: str = "schema.json") -> pathlib.Path:
        return write_schema_file(tmp_path / name, data)

    return _write


@pytest.fixture()
def blog_schema_path(
    blog_schema_dict: Dict[str, Any], tmp_path: pathlib.Path
) -> pathlib.Path:
    """Write the blog schema to a temporary JSON file and return its path."""
    return write_schema_file(tmp_path / "schema.json", blog_schema_dict)


@pytest.fixture()
def minimal_schema_path(
    minimal_schema_dict: Dict[str, Any], tmp_path: pathlib.Path
) -> pathlib.Path:
    return write_schema_file(tmp_path / "minimal_schema.json", minimal_schema_dict)


# ---------------------------------------------------------------------------
# Project fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """An empty Laravel project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns 2024-01-01 12:00:00."""
    return lambda: FIXED_MOMENT


class RecordingFilesystem(ProjectFilesystem):
    """ProjectFilesystem that remembers every write and delete it performs."""

    def __init__(self, root: pathlib.Path) -> None:
        super().__init__(root)
        self.writes: List[str] = []
        self.deletes: List[str] = []

    def write(self, path: str, data: bytes) -> int:
        self.writes.append(path)
        return super().write(path, data)

    def delete(self, path: str) -> bool:
        self.deletes.append(path)
        return super().delete(path)


@pytest.fixture()
def recording_fs(project_root: pathlib.Path) -> RecordingFilesystem:
    return RecordingFilesystem(project_root)
