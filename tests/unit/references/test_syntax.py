"""Tests for pointer scanning, parsing and formatting."""

from __future__ import annotations

import logging

import pytest

from incontext.errors import PointerParseError
from incontext.references.syntax import (
    ParsedPointer,
    find_all,
    format_pointer,
    parse,
    parse_strict,
)


class TestFindAll:
    def test_finds_pointers_in_order(self) -> None:
        text = "See @core/src/a.py:L3-5 and also web/index.ts:L7 for details."
        matches = list(find_all(text))
        assert [m.text for m in matches] == ["@core/src/a.py:L3-5", "web/index.ts:L7"]

    def test_offsets(self) -> None:
        text = "x = 1  # @core/a.py:L10"
        [match] = find_all(text)
        assert match.start == text.index("@")
        assert match.end == len(text)
        assert text[match.start:match.end] == match.text

    def test_case_insensitive_marker(self) -> None:
        assert [m.text for m in find_all("mod/file.md:l4-6")] == ["mod/file.md:l4-6"]

    def test_parentheses_and_dashes_in_path(self) -> None:
        [match] = find_all("@my-app/pages/(group)/page.tsx:L1")
        assert match.text == "@my-app/pages/(group)/page.tsx:L1"

    def test_marker_without_digits_is_not_a_match(self) -> None:
        assert list(find_all("@core/a.py:L")) == []

    def test_no_slash_is_not_a_match(self) -> None:
        assert list(find_all("file.py:L3")) == []

    def test_empty_text(self) -> None:
        assert list(find_all("")) == []

    def test_is_lazy(self) -> None:
        it = find_all("a/b:L1 c/d:L2")
        assert next(it).text == "a/b:L1"
        assert next(it).text == "c/d:L2"
        with pytest.raises(StopIteration):
            next(it)


class TestParse:
    def test_single_line(self) -> None:
        p = parse("project/target.ts:L30")
        assert p == ParsedPointer("project", "target.ts", 30, 30)
        assert p.is_single_line

    def test_range_with_at(self) -> None:
        p = parse("@core/src/deep/mod.py:L5-9")
        assert p is not None
        assert p.module_name == "core"
        assert p.relative_path == "src/deep/mod.py"
        assert (p.start_line, p.end_line) == (5, 9)
        assert not p.is_single_line

    def test_lowercase_marker(self) -> None:
        p = parse("core/a.md:l2-3")
        assert p is not None
        assert (p.start_line, p.end_line) == (2, 3)

    def test_no_slash_gives_empty_path(self) -> None:
        p = parse("@core:L3")
        assert p == ParsedPointer("core", "", 3, 3)

    @pytest.mark.parametrize("text", [
        "@core/a.py",
        "@core/a.py:L0",
        "@core/a.py:L9-5",
        "@core/a.py:Lx",
        "",
    ])
    def test_malformed_returns_none(self, text: str) -> None:
        assert parse(text) is None

    def test_malformed_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="incontext.references.syntax"):
            assert parse("@core/a.py:L9-5") is None
        assert "end line precedes start line" in caplog.text

    def test_strict_raises_with_reason(self) -> None:
        with pytest.raises(PointerParseError) as exc_info:
            parse_strict("@core/a.py:L0")
        assert exc_info.value.text == "@core/a.py:L0"
        assert "1-based" in exc_info.value.reason

    def test_strict_missing_suffix(self) -> None:
        with pytest.raises(PointerParseError, match="suffix"):
            parse_strict("core/a.py")


class TestFormat:
    def test_round_trip_range(self) -> None:
        p = parse("@m/p:L5-9")
        assert p is not None
        assert p.format() == "@m/p:L5-9"

    def test_round_trip_single(self) -> None:
        p = parse("@m/p:L5")
        assert p is not None
        assert p.format() == "@m/p:L5"

    def test_equal_end_collapses(self) -> None:
        assert format_pointer("m", "src/x.kt", 12, 12) == "@m/src/x.kt:L12"

    def test_end_omitted(self) -> None:
        assert format_pointer("m", "x.kt", 12) == "@m/x.kt:L12"

    def test_range(self) -> None:
        assert format_pointer("m", "x.kt", 1, 40) == "@m/x.kt:L1-40"

    def test_formatted_text_is_found_by_scanner(self) -> None:
        text = f"see {format_pointer('web', 'components/Button.tsx', 3, 8)} here"
        [match] = find_all(text)
        assert parse(match.text) == ParsedPointer("web", "components/Button.tsx", 3, 8)


class TestParsedPointer:
    def test_rejects_zero_start(self) -> None:
        with pytest.raises(ValueError):
            ParsedPointer("m", "p", 0, 1)

    def test_rejects_inverted_range(self) -> None:
        with pytest.raises(ValueError):
            ParsedPointer("m", "p", 5, 4)

    def test_frozen(self) -> None:
        p = ParsedPointer("m", "p", 1, 1)
        with pytest.raises(AttributeError):
            p.start_line = 3  # type: ignore[misc]
