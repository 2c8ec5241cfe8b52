import pytest

from strparse import (
    ErrorKind,
    ParseError,
    ParseState,
    literal,
    sequence,
    update_error,
    update_result,
    update_state,
)


def test_initial_state():
    state = ParseState("abc")
    assert state.target == "abc"
    assert state.index == 0
    assert state.result is None
    assert state.error is None
    assert not state.is_error
    assert state.error_kind is None
    assert state


def test_update_state_returns_new_value():
    state = ParseState("abc")
    advanced = update_state(state, 2, "ab")

    assert (advanced.index, advanced.result) == (2, "ab")
    assert advanced.target == "abc"
    assert (state.index, state.result) == (0, None)


def test_update_result_keeps_index():
    state = update_state(ParseState("abc"), 1, "a")
    replaced = update_result(state, ["a"])

    assert replaced.index == 1
    assert replaced.result == ["a"]
    assert state.result == "a"


def test_update_error_leaves_index_and_result():
    state = update_state(ParseState("abc"), 1, "a")
    failed = update_error(state, "nope")

    assert failed.is_error
    assert not failed
    assert failed.error == "nope"
    assert failed.error_kind is ErrorKind.NO_MATCH
    assert (failed.index, failed.result) == (1, "a")
    assert not state.is_error


def test_update_error_kind():
    failed = update_error(ParseState(""), "empty", ErrorKind.END_OF_INPUT)
    assert failed.error_kind is ErrorKind.END_OF_INPUT


def test_remaining_and_at_end():
    state = ParseState("abc", index=1)
    assert state.remaining() == "bc"
    assert not state.at_end()
    assert update_state(state, 3, None).at_end()


def test_line_column():
    assert ParseState("abc").line_column() == (1, 1)
    assert ParseState("ab\ncd", index=4).line_column() == (2, 2)
    assert ParseState("ab\r\ncd", index=4).line_column() == (2, 1)


def test_raise_for_error_passes_success_through():
    state = ParseState("abc")
    assert state.raise_for_error() is state


def test_raise_for_error():
    state = sequence([literal("a\n"), literal("b")]).run("a\nxyz")

    with pytest.raises(ParseError) as info:
        state.raise_for_error()

    assert info.value.pos == 2
    assert info.value.kind is ErrorKind.NO_MATCH
    assert "'b'" in str(info.value)
    assert any("At position 2 (line 2, column 1)" in note for note in info.value.__notes__)
    assert any("xyz\n^" in note for note in info.value.__notes__)


def test_parse_error_far_column_is_windowed():
    src = "x" * 50 + "!"
    error = ParseError(src, 50, "bad")
    note = error.__notes__[0]

    assert "column 51" in note
    assert note.endswith("\n" + " " * 20 + "^")


def test_parse_error_note_agrees_with_line_column():
    state = sequence([literal("ab\ncd\n"), literal("x")]).run("ab\ncd\nefg")
    line, column = state.line_column()

    with pytest.raises(ParseError) as info:
        state.raise_for_error()

    assert (line, column) == (3, 1)
    assert info.value.__notes__ == [f"At position 6 (line {line}, column {column})\nefg\n^"]


def test_parse_error_past_end_has_no_caret():
    error = ParseError("ab", 5, "bad")
    assert error.__notes__ == ["At position 2 (line 1, column 3)"]
