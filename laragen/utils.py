# File: laragen/utils.py
"""
laragen - Utility Functions & Helpers
======================================
Naming transforms, hashing, file I/O and timing helpers used throughout the
generation pipeline.

Naming follows the target framework's conventions:

- studly-case class names (``BlogPost``, ``BlogPostController``)
- camel-case variables and relation methods (``blogPost``)
- snake-case tables and columns (``blog_posts``)
- plural kebab-case resource segments (``blog-posts``)

All string-conversion functions are decorated with ``@lru_cache`` because
the drivers call them repeatedly for the same entity names.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_STUDLY_SPLIT_RE: re.Pattern[str] = re.compile(r"[-_\s]+")
_LAST_WORD_RE: re.Pattern[str] = re.compile(r"^(.*[-_])?([^-_]+)$")

# Irregular nouns that show up in application schemas
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "medium": "media",
    "criterion": "criteria",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}

_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

# Words that are the same in singular and plural
_UNCOUNTABLE: frozenset = frozenset({
    "equipment", "information", "news", "series", "species", "feedback",
    "metadata", "settings",
})


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("BlogPost")
        'blog_post'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_studly_case(name: str) -> str:
    """
    Convert a name to StudlyCase, keeping the inner casing of each word.

    Examples:
        >>> to_studly_case("blog_post")
        'BlogPost'
        >>> to_studly_case("BlogPost")
        'BlogPost'
        >>> to_studly_case("api-token")
        'ApiToken'
    """
    if not name:
        return ""
    parts: List[str] = [p for p in _STUDLY_SPLIT_RE.split(name) if p]
    return "".join(p[0].upper() + p[1:] for p in parts)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert a name to camelCase.

    Examples:
        >>> to_camel_case("blog_post")
        'blogPost'
        >>> to_camel_case("BlogPost")
        'blogPost'
    """
    studly: str = to_studly_case(name)
    if not studly:
        return ""
    return studly[0].lower() + studly[1:]


def _match_case(template: str, word: str) -> str:
    if template and template[0].isupper():
        return word[0].upper() + word[1:]
    return word


def _pluralize_word(word: str) -> str:
    lower: str = word.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR_PLURALS:
        return _match_case(word, _IRREGULAR_PLURALS[lower])
    if lower in _IRREGULAR_SINGULARS:
        return word
    if lower.endswith("s") and not lower.endswith("ss"):
        return word
    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return word + "es"
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith("fe"):
        return word[:-2] + "ves"
    if lower.endswith("f") and not lower.endswith("ff"):
        return word[:-1] + "ves"
    if lower.endswith("o") and len(word) > 1 and lower[-2] not in "aeiou":
        return word + "es"
    return word + "s"


def _singularize_word(word: str) -> str:
    lower: str = word.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR_SINGULARS:
        return _match_case(word, _IRREGULAR_SINGULARS[lower])
    if lower in _IRREGULAR_PLURALS:
        return word
    if lower.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if lower.endswith("ves"):
        return word[:-3] + "f"
    if lower.endswith("oes") and len(word) > 3:
        return word[:-2]
    if lower.endswith(("ses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return word[:-1]
    return word


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation of the last word of a snake/kebab name.

    Examples:
        >>> to_plural("blog_post")
        'blog_posts'
        >>> to_plural("category")
        'categories'
        >>> to_plural("person")
        'people'
    """
    if not name:
        return ""
    match = _LAST_WORD_RE.match(name)
    if match is None:
        return name
    prefix: str = match.group(1) or ""
    return prefix + _pluralize_word(match.group(2))


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """Naive English singularisation (reverse of ``to_plural``)."""
    if not name:
        return ""
    match = _LAST_WORD_RE.match(name)
    if match is None:
        return name
    prefix: str = match.group(1) or ""
    return prefix + _singularize_word(match.group(2))


# ---------------------------------------------------------------------------
# Framework naming scheme
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def table_name_for(entity_name: str) -> str:
    """Default table name of an entity: snake_plural(name)."""
    return to_plural(to_snake_case(entity_name))


@functools.lru_cache(maxsize=None)
def model_name_for_table(table_name: str) -> str:
    """Best-effort model class for a table name (``blog_posts`` → ``BlogPost``)."""
    return to_studly_case(to_singular(table_name))


@functools.lru_cache(maxsize=None)
def resource_segment(entity_name: str) -> str:
    """Plural kebab-case URL segment for an entity (``BlogPost`` → ``blog-posts``)."""
    return to_plural(to_snake_case(entity_name).replace("_", "-"))


# ---------------------------------------------------------------------------
# Code formatting helpers
# ---------------------------------------------------------------------------


def indent_lines(lines: Sequence[str], level: int = 1, size: int = 4) -> List[str]:
    """Indent a list of lines, returning a new list. Blank lines stay blank."""
    prefix: str = " " * (level * size)
    return [prefix + line if line.strip() else "" for line in lines]


def php_string(value: str) -> str:
    """Single-quoted PHP string literal."""
    escaped: str = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def php_list(items: Sequence[str]) -> str:
    """PHP short array literal of quoted strings."""
    return "[" + ", ".join(php_string(item) for item in items) + "]"


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: bytes, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file first then renames,
    so a crash never leaves a half-written file behind.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)
    byte_count: int = len(content)

    if atomic:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.replace(tmp_path, str(path))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(content)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def sha256_bytes(content: bytes) -> str:
    """Return SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(content).hexdigest()


def canonical_json(data: Any) -> str:
    """Key-sorted, whitespace-free JSON used for content hashing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("cleanup") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_studly_case",
    "to_camel_case",
    "to_plural",
    "to_singular",
    "table_name_for",
    "model_name_for_table",
    "resource_segment",
    "indent_lines",
    "php_string",
    "php_list",
    "ensure_directory",
    "write_file",
    "sha256_hex",
    "sha256_bytes",
    "canonical_json",
    "Timer",
]

logger.debug("laragen.utils loaded — %d public symbols.", len(__all__))
