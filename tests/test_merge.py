"""
tests/test_merge.py
Unit tests for laragen.merge (marker-delimited section merging).
"""

from __future__ import annotations

import re

from laragen.merge import (
    APPENDED,
    INSERTED,
    REPLACED,
    ROUTES_MARKERS,
    SEEDERS_MARKERS,
    find_marker_section,
    merge_section,
    wrap_section,
)


_ROUTES_FILE = """<?php

use Illuminate\\Support\\Facades\\Route;

Route::get('/health', fn () => 'ok');

// >>> AI-NATIVE ROUTES START
Route::apiResource('posts', PostController::class);
// >>> AI-NATIVE ROUTES END

Route::get('/custom', fn () => 'mine');
"""

_SEEDER_FILE = """<?php

class DatabaseSeeder extends Seeder
{
    public function run(): void
    {
        $this->call([
            AdminSeeder::class,
        ]);
    }
}
"""


# ===========================================================================
# Locating and wrapping
# ===========================================================================


class TestMarkers:

    def test_find_section_span(self) -> None:
        span = find_marker_section(_ROUTES_FILE, ROUTES_MARKERS)
        assert span is not None
        start, end = span
        section = _ROUTES_FILE[start:end]
        assert section.startswith(ROUTES_MARKERS.start)
        assert section.endswith(ROUTES_MARKERS.end)

    def test_missing_end_marker(self) -> None:
        text = f"{ROUTES_MARKERS.start}\nRoute::get('/x');\n"
        assert find_marker_section(text, ROUTES_MARKERS) is None

    def test_end_before_start_is_not_a_section(self) -> None:
        text = f"{ROUTES_MARKERS.end}\n{ROUTES_MARKERS.start}\n"
        assert find_marker_section(text, ROUTES_MARKERS) is None

    def test_end_pairs_with_nearest_start(self) -> None:
        text = (
            f"{ROUTES_MARKERS.start}\n"
            "Route::get('/mine', Mine::class);\n"
            f"{ROUTES_MARKERS.start}\n"
            "Route::get('/gen', Gen::class);\n"
            f"{ROUTES_MARKERS.end}\n"
        )
        span = find_marker_section(text, ROUTES_MARKERS)
        assert span is not None
        assert "/mine" not in text[span[0] : span[1]]
        assert text[span[0] : span[1]].startswith(ROUTES_MARKERS.start)

    def test_wrap_section_indents(self) -> None:
        block = wrap_section(["A::class,", "", "B::class,"], SEEDERS_MARKERS, "    ")
        assert block.splitlines() == [
            f"    {SEEDERS_MARKERS.start}",
            "    A::class,",
            "",
            "    B::class,",
            f"    {SEEDERS_MARKERS.end}",
        ]


# ===========================================================================
# Merging
# ===========================================================================


class TestMergeSection:
    """Replace, insert after anchor, or append."""

    def test_replace_keeps_outside_content(self) -> None:
        body = ["Route::apiResource('tags', TagController::class);"]
        outcome = merge_section(_ROUTES_FILE, ROUTES_MARKERS, body)

        assert outcome.action == REPLACED
        assert "Route::get('/health', fn () => 'ok');" in outcome.text
        assert "Route::get('/custom', fn () => 'mine');" in outcome.text
        assert "TagController" in outcome.text
        assert "PostController" not in outcome.text, "Old section content must be replaced"

    def test_replace_is_stable(self) -> None:
        body = ["Route::apiResource('posts', PostController::class);"]
        first = merge_section(_ROUTES_FILE, ROUTES_MARKERS, body).text
        second = merge_section(first, ROUTES_MARKERS, body).text
        assert first == second
        assert first == _ROUTES_FILE

    def test_replace_keeps_marker_indent(self) -> None:
        text = f"    {SEEDERS_MARKERS.start}\n    Old::class,\n    {SEEDERS_MARKERS.end}\n"
        outcome = merge_section(text, SEEDERS_MARKERS, ["New::class,"])
        assert outcome.text == (
            f"    {SEEDERS_MARKERS.start}\n    New::class,\n    {SEEDERS_MARKERS.end}\n"
        )

    def test_insert_after_anchor(self) -> None:
        outcome = merge_section(
            _SEEDER_FILE,
            SEEDERS_MARKERS,
            ["PostSeeder::class,"],
            anchor=re.compile(r"\$this->call\(\["),
            indent=" " * 12,
        )
        assert outcome.action == INSERTED
        lines = outcome.text.splitlines()
        call_at = lines.index("        $this->call([")
        assert lines[call_at + 1] == f"            {SEEDERS_MARKERS.start}"
        assert lines[call_at + 2] == "            PostSeeder::class,"
        assert lines[call_at + 3] == f"            {SEEDERS_MARKERS.end}"
        assert "            AdminSeeder::class," in lines

    def test_append_when_nothing_matches(self) -> None:
        text = "<?php\n\nRoute::get('/x', fn () => 'x');\n"
        outcome = merge_section(
            text, ROUTES_MARKERS, ["Route::get('/y', fn () => 'y');"], anchor=re.compile("nomatch")
        )
        assert outcome.action == APPENDED
        assert outcome.text.startswith(text.rstrip("\n"))
        assert outcome.text.endswith(f"{ROUTES_MARKERS.end}\n")

    def test_append_to_empty_text(self) -> None:
        outcome = merge_section("", ROUTES_MARKERS, ["x"])
        assert outcome.text == f"{ROUTES_MARKERS.start}\nx\n{ROUTES_MARKERS.end}\n"

    def test_broken_markers_survive_two_runs(self) -> None:
        text = f"<?php\n\n{ROUTES_MARKERS.start}\nRoute::get('/mine', Mine::class);\n"

        first = merge_section(text, ROUTES_MARKERS, ["Route::get('/gen', Gen::class);"])
        assert first.action == APPENDED

        second = merge_section(first.text, ROUTES_MARKERS, ["Route::get('/gen2', Gen::class);"])
        assert second.action == REPLACED
        assert "Route::get('/mine', Mine::class);" in second.text, (
            "Lines after a dangling start marker must not be swallowed by the next merge"
        )
        assert "Route::get('/gen2', Gen::class);" in second.text
        assert "/gen'" not in second.text
