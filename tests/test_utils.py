"""
tests/test_utils.py
Unit tests for laragen.utils.

Tests cover:
- Case conversion and pluralisation
- Framework naming (table names, model names, URL segments)
- PHP literal helpers
- Atomic file writes
- Hashing helpers
"""

from __future__ import annotations

import pytest

from laragen.utils import (
    Timer,
    canonical_json,
    indent_lines,
    model_name_for_table,
    php_list,
    php_string,
    resource_segment,
    sha256_bytes,
    sha256_hex,
    table_name_for,
    to_camel_case,
    to_plural,
    to_singular,
    to_snake_case,
    to_studly_case,
    write_file,
)


# ===========================================================================
# Case conversion
# ===========================================================================


class TestCaseConversion:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("BlogPost", "blog_post"),
            ("getHTTPResponse", "get_http_response"),
            ("already_snake", "already_snake"),
            ("", ""),
        ],
    )
    def test_snake_case(self, name: str, expected: str) -> None:
        assert to_snake_case(name) == expected

    def test_studly_case(self) -> None:
        assert to_studly_case("blog_post") == "BlogPost"
        assert to_studly_case("api-token") == "ApiToken"
        assert to_studly_case("BlogPost") == "BlogPost"

    def test_camel_case(self) -> None:
        assert to_camel_case("blog_post") == "blogPost"
        assert to_camel_case("") == ""


# ===========================================================================
# Pluralisation
# ===========================================================================


class TestPluralisation:
    @pytest.mark.parametrize(
        "singular, plural",
        [
            ("post", "posts"),
            ("category", "categories"),
            ("box", "boxes"),
            ("leaf", "leaves"),
            ("hero", "heroes"),
            ("day", "days"),
            ("person", "people"),
            ("status", "statuses"),
        ],
    )
    def test_plural_and_back(self, singular: str, plural: str) -> None:
        assert to_plural(singular) == plural
        assert to_singular(plural) == singular

    def test_only_last_word_changes(self) -> None:
        assert to_plural("blog_post") == "blog_posts"
        assert to_singular("order_items") == "order_item"

    def test_uncountable(self) -> None:
        assert to_plural("news") == "news"
        assert to_singular("settings") == "settings"

    def test_already_plural_is_kept(self) -> None:
        assert to_plural("posts") == "posts"
        assert to_plural("people") == "people"


# ===========================================================================
# Framework naming
# ===========================================================================


class TestFrameworkNaming:
    def test_table_name(self) -> None:
        assert table_name_for("BlogPost") == "blog_posts"
        assert table_name_for("Category") == "categories"

    def test_model_name_for_table(self) -> None:
        assert model_name_for_table("blog_posts") == "BlogPost"
        assert model_name_for_table("people") == "Person"

    def test_resource_segment(self) -> None:
        assert resource_segment("BlogPost") == "blog-posts"
        assert resource_segment("Category") == "categories"
        assert resource_segment("order_item") == "order-items"


# ===========================================================================
# PHP helpers
# ===========================================================================


class TestPhpHelpers:
    def test_php_string_escapes_quotes(self) -> None:
        assert php_string("it's") == "'it\\'s'"
        assert php_string("a\\b") == "'a\\\\b'"

    def test_php_list(self) -> None:
        assert php_list(["index", "show"]) == "['index', 'show']"
        assert php_list([]) == "[]"

    def test_indent_lines_keeps_blank_lines_empty(self) -> None:
        assert indent_lines(["a", "  ", "b"], level=2) == ["        a", "", "        b"]


# ===========================================================================
# File writes
# ===========================================================================


class TestWriteFile:
    def test_creates_parents_and_leaves_no_temp_file(self, tmp_path) -> None:
        target = tmp_path / "app" / "Models" / "Post.php"
        written = write_file(target, b"<?php\n")
        assert written == 6
        assert target.read_bytes() == b"<?php\n"
        assert list(target.parent.iterdir()) == [target]

    def test_overwrites_existing_file(self, tmp_path) -> None:
        target = tmp_path / "routes.php"
        target.write_bytes(b"old")
        write_file(target, b"new")
        assert target.read_bytes() == b"new"

    def test_non_atomic_write(self, tmp_path) -> None:
        target = tmp_path / "plain.txt"
        assert write_file(target, b"abc", atomic=False) == 3
        assert target.read_bytes() == b"abc"

    def test_directory_target_fails_and_cleans_up(self, tmp_path) -> None:
        target = tmp_path / "Post.php"
        target.mkdir()
        with pytest.raises(OSError):
            write_file(target, b"<?php\n")
        assert target.is_dir()
        assert [p.name for p in tmp_path.iterdir()] == ["Post.php"]


# ===========================================================================
# Hashing and timing
# ===========================================================================


class TestHashing:
    def test_sha256_of_empty_string(self) -> None:
        assert sha256_hex("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_bytes_and_text_agree(self) -> None:
        assert sha256_bytes(b"abc") == sha256_hex("abc")

    def test_canonical_json_sorts_keys(self) -> None:
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
        assert canonical_json({"a": 1, "b": 2}) == canonical_json({"b": 2, "a": 1})


class TestTimer:
    def test_measures_elapsed_time(self) -> None:
        with Timer("step") as t:
            pass
        assert t.elapsed >= 0.0
        assert t.end_time >= t.start_time
