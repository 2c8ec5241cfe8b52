import re

import pytest

from strparse import (
    ConfigurationError,
    ErrorKind,
    digits,
    end_of_input,
    letters,
    literal,
    regex,
    safeword,
    sequence,
    whitespace,
)


def test_literal_match():
    state = literal("ab").run("ab")
    assert not state.is_error
    assert state.index == 2
    assert state.result == "ab"


def test_literal_mismatch():
    state = literal("ab").run("xy")
    assert state.is_error
    assert state.index == 0
    assert state.error_kind is ErrorKind.NO_MATCH
    assert "ab" in state.error
    assert "xy" in state.error


def test_literal_mismatch_preview_is_truncated():
    state = literal("a").run("0123456789abcdef")
    assert "'0123456789'" in state.error
    assert "abcdef" not in state.error


def test_literal_end_of_input():
    state = literal("ab").run("")
    assert state.is_error
    assert state.error_kind is ErrorKind.END_OF_INPUT
    assert "end of input" in state.error


def test_literal_partial_input():
    state = literal("abc").run("ab")
    assert state.is_error
    assert state.error_kind is ErrorKind.NO_MATCH


def test_literal_case_insensitive_returns_pattern():
    state = literal("Select", case_sensitive=False).run("SELECT *")
    assert not state.is_error
    assert state.index == 6
    assert state.result == "Select"


def test_literal_case_sensitive_by_default():
    assert literal("select").run("SELECT").is_error


def test_empty_literal_is_rejected():
    with pytest.raises(ConfigurationError):
        literal("")


def test_regex():
    state = regex(r"[a-z]+[0-9]").run("abc1def")
    assert state.result == "abc1"
    assert state.index == 4


def test_regex_matches_at_cursor_only():
    assert regex(r"[0-9]+").run("ab12").is_error


def test_regex_leading_caret_works_mid_input():
    state = sequence([digits, regex(r"^[a-z]+")]).run("12ab")
    assert state.result == ["12", "ab"]


def test_regex_compiled_pattern_keeps_flags():
    state = regex(re.compile(r"abc", re.IGNORECASE)).run("ABC")
    assert state.result == "ABC"


def test_regex_failure_reports_position():
    state = sequence([digits, regex(r"[a-z]+")]).run("12!")
    assert state.is_error
    assert state.index == 2
    assert "index 2" in state.error


def test_regex_end_of_input():
    state = regex(r"[a-z]*").run("")
    assert state.is_error
    assert state.error_kind is ErrorKind.END_OF_INPUT


@pytest.mark.parametrize(
    "parser, text, expected",
    [
        (letters, "abcXYZ123", "abcXYZ"),
        (digits, "0123abc", "0123"),
        (whitespace, " \t\f\vx", " \t\f\v"),
        (safeword, "my-word_2 rest", "my-word_2"),
    ],
)
def test_character_classes(parser, text, expected):
    state = parser.run(text)
    assert state.result == expected
    assert state.index == len(expected)


@pytest.mark.parametrize(
    "parser, text, name",
    [
        (letters, "123", "letters"),
        (digits, "abc", "digits"),
        (whitespace, "abc", "whitespace"),
        (safeword, "!abc", "safeword"),
    ],
)
def test_character_class_failures(parser, text, name):
    state = parser.run(text)
    assert state.is_error
    assert state.index == 0
    assert state.error.startswith(f"{name}:")


def test_whitespace_excludes_line_breaks():
    assert whitespace.run("\nabc").is_error
    assert whitespace.run("\r\nabc").is_error
    assert whitespace.run("  \nabc").index == 2


def test_end_of_input():
    state = sequence([digits, end_of_input]).run("42")
    assert state.result == ["42", None]

    state = sequence([digits, end_of_input]).run("42x")
    assert state.is_error
    assert state.index == 2
    assert "'x'" in state.error


def test_regex_caret_after_inline_flags_mid_input():
    state = sequence([digits, regex(r"(?i)^abc")]).run("12ABC")
    assert not state.is_error
    assert state.result == ["12", "ABC"]
    assert state.index == 5


def test_regex_caret_in_later_alternative_mid_input():
    state = sequence([digits, regex(r"^a|^b")]).run("12b")
    assert not state.is_error
    assert state.result == ["12", "b"]
    assert state.index == 3


def test_regex_string_start_anchor_mid_input():
    state = sequence([digits, regex(r"\Aab")]).run("12ab")
    assert state.result == ["12", "ab"]


def test_regex_caret_only_matches_at_cursor():
    assert sequence([digits, regex(r"x|^b")]).run("12ab").is_error


def test_regex_negated_class_mid_input():
    state = sequence([digits, regex(r"[^0-9]+")]).run("12ab3")
    assert state.result == ["12", "ab"]
    assert state.index == 4
