"""
tests/test_envconfig.py
Unit tests for laragen.envconfig (meta blocks → .env keys).
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from laragen.envconfig import (
    DEFAULT_SANCTUM_DOMAINS,
    SANCTUM_DOMAINS_KEY,
    flatten_env,
    format_env_value,
    update_env_text,
)
from laragen.schema import build_schema


# ===========================================================================
# Value formatting
# ===========================================================================


class TestFormatEnvValue:

    @pytest.mark.parametrize(
        "value, expected",
        [
            (True, "true"),
            (False, "false"),
            (None, "null"),
            (3306, "3306"),
            ("mysql", "mysql"),
            ("My Blog", '"My Blog"'),
            ('say "hi"', '"say \\"hi\\""'),
            (["a.com", "b.com"], "a.com,b.com"),
        ],
    )
    def test_format(self, value: Any, expected: str) -> None:
        assert format_env_value(value) == expected


# ===========================================================================
# Flattening
# ===========================================================================


class TestFlattenEnv:

    def test_blog_meta(self, blog_schema) -> None:
        values = flatten_env(blog_schema)
        assert values["APP_NAME"] == "Blog"
        assert values["APP_ENV"] == "local"
        assert values["APP_DEBUG"] == "true"
        assert values["DB_CONNECTION"] == "mysql"
        assert values["DB_DATABASE"] == "blog"
        assert "DB_HOST" not in values, "Absent source keys must be left out"

    def test_app_name_falls_back_to_project(self) -> None:
        schema = build_schema({"meta": {"project": "Shop"}, "models": {}})
        assert flatten_env(schema)["APP_NAME"] == "Shop"

    def test_no_meta_means_nothing(self) -> None:
        assert flatten_env(build_schema({"models": {}})) == {}

    def test_sanctum_domains_default(self, blog_schema) -> None:
        values = flatten_env(blog_schema)
        assert values[SANCTUM_DOMAINS_KEY] == ",".join(DEFAULT_SANCTUM_DOMAINS)

    def test_sanctum_domains_from_meta(self) -> None:
        schema = build_schema(
            {
                "meta": {
                    "auth": {"enabled": True, "stateful_domains": ["app.test"]},
                },
                "models": {},
            }
        )
        assert flatten_env(schema)[SANCTUM_DOMAINS_KEY] == "app.test"

    def test_no_sanctum_without_auth(self) -> None:
        schema = build_schema({"meta": {"project": "X"}, "models": {}})
        assert SANCTUM_DOMAINS_KEY not in flatten_env(schema)

    def test_auth_keys_sit_between_queues_and_cors(self) -> None:
        schema = build_schema(
            {
                "meta": {
                    "project": "X",
                    "auth": {"enabled": True, "provider": "sanctum"},
                    "queues": {"default": "redis"},
                    "cors": {"allowed_origins": ["*"]},
                },
                "models": {},
            }
        )
        keys = list(flatten_env(schema))
        assert keys == [
            "APP_NAME",
            "QUEUE_CONNECTION",
            SANCTUM_DOMAINS_KEY,
            "CORS_ALLOWED_ORIGINS",
        ]

    def test_session_provider_has_no_sanctum_domains(self) -> None:
        schema = build_schema(
            {"meta": {"auth": {"enabled": True, "provider": "session"}}, "models": {}}
        )
        assert SANCTUM_DOMAINS_KEY not in flatten_env(schema)


# ===========================================================================
# .env text update
# ===========================================================================


class TestUpdateEnvText:

    def test_replaces_in_place_and_appends(self) -> None:
        text = "# App\nAPP_NAME=Laravel\nAPP_KEY=base64:xyz\n\nDB_CONNECTION=sqlite\n"
        updated = update_env_text(text, {"DB_CONNECTION": "mysql", "APP_NAME": "Blog", "NEW_KEY": "1"})
        assert updated == (
            "# App\nAPP_NAME=Blog\nAPP_KEY=base64:xyz\n\nDB_CONNECTION=mysql\n\nNEW_KEY=1\n"
        )

    def test_untouched_keys_survive(self) -> None:
        text = "APP_KEY=secret\n"
        assert "APP_KEY=secret" in update_env_text(text, {"APP_NAME": "Blog"})

    def test_empty_text(self) -> None:
        values: Dict[str, str] = {"A": "1", "B": "2"}
        assert update_env_text("", values) == "A=1\nB=2\n"

    def test_export_prefix_recognised(self) -> None:
        assert update_env_text("export APP_ENV=production\n", {"APP_ENV": "local"}) == "APP_ENV=local\n"
