# File: laragen/envconfig.py
"""
laragen - Environment Flattening
=================================

Maps the nested ``meta`` configuration blocks of a schema onto flat
``.env`` keys through a fixed table, and updates ``.env`` text in place.

    meta.database.connection  →  DB_CONNECTION
    meta.mail.from_address    →  MAIL_FROM_ADDRESS
    meta.cors.allowed_origins →  CORS_ALLOWED_ORIGINS (lists comma-joined)
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Tuple

from laragen.models import Schema

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.envconfig")

# ---------------------------------------------------------------------------
# Key table: meta block → ((source key, env key), ...)
# ---------------------------------------------------------------------------

ENV_KEY_MAP: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "app": (
        ("name", "APP_NAME"),
        ("env", "APP_ENV"),
        ("debug", "APP_DEBUG"),
        ("url", "APP_URL"),
        ("timezone", "APP_TIMEZONE"),
    ),
    "database": (
        ("connection", "DB_CONNECTION"),
        ("host", "DB_HOST"),
        ("port", "DB_PORT"),
        ("database", "DB_DATABASE"),
        ("username", "DB_USERNAME"),
        ("password", "DB_PASSWORD"),
        ("charset", "DB_CHARSET"),
        ("collation", "DB_COLLATION"),
    ),
    "mail": (
        ("mailer", "MAIL_MAILER"),
        ("host", "MAIL_HOST"),
        ("port", "MAIL_PORT"),
        ("username", "MAIL_USERNAME"),
        ("password", "MAIL_PASSWORD"),
        ("encryption", "MAIL_ENCRYPTION"),
        ("from_address", "MAIL_FROM_ADDRESS"),
        ("from_name", "MAIL_FROM_NAME"),
    ),
    "cache": (
        ("driver", "CACHE_DRIVER"),
        ("default_ttl", "CACHE_DEFAULT_TTL"),
    ),
    "queues": (
        ("default", "QUEUE_CONNECTION"),
        ("retry_after", "QUEUE_RETRY_AFTER"),
    ),
    "cors": (
        ("allowed_origins", "CORS_ALLOWED_ORIGINS"),
        ("allowed_methods", "CORS_ALLOWED_METHODS"),
        ("allowed_headers", "CORS_ALLOWED_HEADERS"),
    ),
}

SANCTUM_DOMAINS_KEY: str = "SANCTUM_STATEFUL_DOMAINS"
DEFAULT_SANCTUM_DOMAINS: Tuple[str, ...] = (
    "localhost",
    "localhost:3000",
    "127.0.0.1",
    "127.0.0.1:8000",
    "::1",
)

_NEEDS_QUOTES_RE: re.Pattern[str] = re.compile(r"[\s#=\"']")
_ENV_LINE_RE: re.Pattern[str] = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=")


def format_env_value(value: Any) -> str:
    """Render one value the way ``.env`` files expect it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        value = ",".join(str(v) for v in value)
    text: str = str(value)
    if _NEEDS_QUOTES_RE.search(text):
        escaped: str = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


# Order in which flatten_env emits keys; "auth" has no key table of its own
ENV_BLOCK_ORDER: Tuple[str, ...] = (
    "app", "database", "mail", "cache", "queues", "auth", "cors",
)


def _auth_env(meta: Any) -> Dict[str, str]:
    if not (meta.auth.enabled and meta.auth.provider == "sanctum"):
        return {}
    domains = meta.auth.stateful_domains or DEFAULT_SANCTUM_DOMAINS
    return {SANCTUM_DOMAINS_KEY: format_env_value(list(domains))}


def flatten_env(schema: Schema) -> Dict[str, str]:
    """
    Flat ``KEY → formatted value`` pairs from the schema's meta blocks, in
    ``ENV_BLOCK_ORDER``.  Keys whose source value is absent are left out,
    except ``APP_NAME`` which falls back to the project name.
    """
    if schema.meta is None:
        return {}

    meta = schema.meta
    blocks: Mapping[str, Mapping[str, Any]] = {
        "app": meta.app,
        "database": meta.database,
        "mail": meta.mail,
        "cache": meta.cache,
        "queues": meta.queues,
        "cors": meta.cors,
    }

    values: Dict[str, str] = {}
    for block in ENV_BLOCK_ORDER:
        if block == "auth":
            values.update(_auth_env(meta))
            continue
        source: Mapping[str, Any] = blocks[block]
        for key, env_key in ENV_KEY_MAP[block]:
            if key in source:
                values[env_key] = format_env_value(source[key])
            elif block == "app" and key == "name":
                values[env_key] = format_env_value(meta.project)

    logger.debug("Flattened %d environment key(s).", len(values))
    return values


def update_env_text(text: str, values: Mapping[str, str]) -> str:
    """
    Set *values* in ``.env`` *text*: existing ``KEY=`` lines are replaced in
    place, missing keys appended in the given order.
    """
    lines: List[str] = text.splitlines()
    remaining: Dict[str, str] = dict(values)

    for index, line in enumerate(lines):
        match = _ENV_LINE_RE.match(line.strip())
        if match is None:
            continue
        key: str = match.group(1)
        if key in remaining:
            lines[index] = f"{key}={remaining.pop(key)}"

    if remaining:
        if lines and lines[-1].strip():
            lines.append("")
        lines.extend(f"{key}={value}" for key, value in remaining.items())

    return "\n".join(lines) + "\n"


__all__: List[str] = [
    "ENV_KEY_MAP",
    "ENV_BLOCK_ORDER",
    "SANCTUM_DOMAINS_KEY",
    "DEFAULT_SANCTUM_DOMAINS",
    "format_env_value",
    "flatten_env",
    "update_env_text",
]

logger.debug("laragen.envconfig loaded — %d public symbols.", len(__all__))
