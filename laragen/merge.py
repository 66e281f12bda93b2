# File: laragen/merge.py
"""
laragen - Marker Section Merging
=================================

Generated code inside hand-edited files (the routes file, the
DatabaseSeeder call list) lives between two marker comments::

    // >>> AI-NATIVE ROUTES START
    ...generated lines...
    // >>> AI-NATIVE ROUTES END

Merging replaces what sits between the markers and leaves the rest of the
file untouched.  When the markers are missing (or broken) the section is
inserted after an anchor, or appended to the end of the file; a merge
never rewrites text outside the section.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.merge")


@dataclass(frozen=True, slots=True)
class SectionMarkers:
    start: str
    end: str


ROUTES_MARKERS: SectionMarkers = SectionMarkers(
    "// >>> AI-NATIVE ROUTES START", "// >>> AI-NATIVE ROUTES END"
)
SEEDERS_MARKERS: SectionMarkers = SectionMarkers(
    "// >>> AI-NATIVE SEEDERS START", "// >>> AI-NATIVE SEEDERS END"
)

# Merge outcomes
REPLACED: str = "replaced"
INSERTED: str = "inserted"
APPENDED: str = "appended"


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    text: str
    action: str


def find_marker_section(
    text: str, markers: SectionMarkers
) -> Optional[Tuple[int, int]]:
    """
    ``(start, end)`` character span of the marked section, from the start
    of the start-marker line to the end of the end-marker line; None when
    either marker is missing or they appear out of order.  The end marker
    pairs with the nearest start marker before it.
    """
    start_at: int = text.find(markers.start)
    if start_at < 0:
        return None
    end_at: int = text.find(markers.end, start_at + len(markers.start))
    if end_at < 0:
        return None
    # a start marker left behind by an earlier append is not part of the section
    start_at = text.rfind(markers.start, 0, end_at)

    line_start: int = text.rfind("\n", 0, start_at) + 1
    line_end: int = text.find("\n", end_at)
    if line_end < 0:
        line_end = len(text)
    return line_start, line_end


def _leading_whitespace(text: str, at: int) -> str:
    match = re.match(r"[ \t]*", text[at:])
    return match.group(0) if match else ""


def wrap_section(
    body: Sequence[str], markers: SectionMarkers, indent: str = ""
) -> str:
    """Marker-delimited block, every line prefixed with *indent*."""
    lines: List[str] = [f"{indent}{markers.start}"]
    lines.extend(f"{indent}{line}" if line else "" for line in body)
    lines.append(f"{indent}{markers.end}")
    return "\n".join(lines)


def replace_marker_section(
    text: str, markers: SectionMarkers, body: Sequence[str]
) -> Optional[str]:
    """
    Replace the marked section, keeping the indentation of its start
    marker.  None when the markers are not found.
    """
    span = find_marker_section(text, markers)
    if span is None:
        return None
    start, end = span
    indent: str = _leading_whitespace(text, start)
    return text[:start] + wrap_section(body, markers, indent) + text[end:]


def append_section(text: str, markers: SectionMarkers, body: Sequence[str]) -> str:
    """Append a marked section at the end of *text*."""
    head: str = text.rstrip("\n")
    separator: str = "\n\n" if head else ""
    return f"{head}{separator}{wrap_section(body, markers)}\n"


def insert_after_anchor(
    text: str,
    markers: SectionMarkers,
    body: Sequence[str],
    anchor: "re.Pattern[str]",
    indent: str = "",
) -> Optional[str]:
    """Insert the section on the line after the first *anchor* match."""
    match = anchor.search(text)
    if match is None:
        return None
    section: str = wrap_section(body, markers, indent)
    if text[match.end() - 1 : match.end()] == "\n":
        insert_at: int = match.end()
    else:
        line_end: int = text.find("\n", match.end())
        if line_end < 0:
            return f"{text}\n{section}\n"
        insert_at = line_end + 1
    return f"{text[:insert_at]}{section}\n{text[insert_at:]}"


def merge_section(
    text: str,
    markers: SectionMarkers,
    body: Sequence[str],
    anchor: Optional["re.Pattern[str]"] = None,
    indent: str = "",
) -> MergeOutcome:
    """
    Merge *body* into *text*: replace the marked section when present,
    else insert after *anchor*, else append.
    """
    replaced = replace_marker_section(text, markers, body)
    if replaced is not None:
        logger.debug("Replaced marked section %s.", markers.start)
        return MergeOutcome(replaced, REPLACED)

    if anchor is not None:
        inserted = insert_after_anchor(text, markers, body, anchor, indent)
        if inserted is not None:
            logger.info("Markers %s not found; inserted after anchor.", markers.start)
            return MergeOutcome(inserted, INSERTED)

    logger.warning("Markers %s not found; appending section.", markers.start)
    return MergeOutcome(append_section(text, markers, body), APPENDED)


__all__: List[str] = [
    "SectionMarkers",
    "ROUTES_MARKERS",
    "SEEDERS_MARKERS",
    "REPLACED",
    "INSERTED",
    "APPENDED",
    "MergeOutcome",
    "find_marker_section",
    "wrap_section",
    "replace_marker_section",
    "append_section",
    "insert_after_anchor",
    "merge_section",
]

logger.debug("laragen.merge loaded — %d public symbols.", len(__all__))
