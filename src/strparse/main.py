"""
The implementations of the main classes and combinators.
"""

from __future__ import annotations
from typing import Any, Callable, Final, NamedTuple, Self, Sequence

from collections.abc import Generator
import functools
import logging
import re
import enum

import strparse.const as const


run_log = logging.getLogger("strparse.run")
trace_log = logging.getLogger("strparse.trace")


class ErrorKind(enum.Enum):
    """Why a parse state failed."""
    END_OF_INPUT = enum.auto()
    """No characters remained where a match was attempted."""
    NO_MATCH = enum.auto()
    """A literal, pattern or choice did not match at the current position."""
    EXHAUSTED = enum.auto()
    """A one-or-more combinator collected zero matches."""
    FAILED = enum.auto()
    """Produced on purpose by `fail()`."""


def line_column(src: str, pos: int) -> tuple[int, int]:
    """1-based line and column of `pos` in `src`. Positions past the end are clamped."""
    pos = min(pos, len(src))
    line = src.count("\n", 0, pos) + 1
    column = pos - src.rfind("\n", 0, pos) # works even when rfind returns -1
    return (line, column)

def position_note(src: str, pos: int) -> str:
    """
    Describes `pos` for an error note: the line and column, then the source line with a caret under the position.

    Long lines are cut to a window of 40 characters around the position.
    """
    line, column = line_column(src, pos)
    parts = [f"At position {min(pos, len(src))} (line {line}, column {column})"]
    lines = src.splitlines()
    if line <= len(lines) and column <= len(lines[line-1]):
        text = lines[line-1]
        if column <= 20:
            parts.append(f"{text[:40]}\n{' '*(column-1)}^")
        else:
            parts.append(f"{text[(column-20):(column+20)]}\n{' '*20}^")
    return "\n".join(parts)


class ParseState(NamedTuple):
    """
    The value threaded through every parser.

    Never mutated. Use `update_state()`, `update_result()` and `update_error()` to derive new states.

    ```
    state = parser.run("abc")
    if state.is_error:
        print(state.error, "at", state.index)
    else:
        print(state.result)
    ```
    """
    target: str
    """The string that's being parsed. Fixed for the whole run."""
    index: int = 0
    """The current position."""
    result: Any = None
    """The value produced by the last parser."""
    error: str | None = None
    """The failure message. Only set if `is_error` is true."""
    is_error: bool = False
    error_kind: ErrorKind | None = None
    debug: bool = False
    """Set by `Parser.run(..., debug=True)`. Only affects tracing."""

    def remaining(self) -> str:
        return self.target[self.index:]

    def at_end(self) -> bool:
        """Whether the end of the input has been reached."""
        return self.index >= len(self.target)

    def line_column(self) -> tuple[int, int]:
        """1-based line and column of `index`."""
        return line_column(self.target, self.index)

    def raise_for_error(self) -> Self:
        """Raises a `ParseError` if this state failed. Returns the state otherwise."""
        if self.is_error:
            raise ParseError(self.target, self.index, self.error, self.error_kind)
        return self

    def __bool__(self) -> bool:
        """Whether the state is a success."""
        return not self.is_error


def update_state(state: ParseState, index: int, result: Any) -> ParseState:
    """Advances to `index` and sets the result."""
    return state._replace(index=index, result=result)

def update_result(state: ParseState, result: Any) -> ParseState:
    """Sets the result, keeping the position."""
    return state._replace(result=result)

def update_error(state: ParseState, msg: str, kind: ErrorKind = ErrorKind.NO_MATCH) -> ParseState:
    """Marks the state as failed. The index and result are left untouched."""
    return state._replace(is_error=True, error=msg, error_kind=kind)


class ParseError(Exception):
    """
    Raised by the strict helpers (`Parser.parse()` and `ParseState.raise_for_error()`).

    Plain `Parser.run()` never raises this. Failures are returned as states instead.
    """

    def __init__(self, src: str, pos: int, msg: str | None = None, kind: ErrorKind | None = None) -> None:
        """
        `src`: The string that was being parsed.
        `pos`: The position of the failure.
        `msg`: The reason for the failure.
        `kind`: The kind of the failure.
        """
        if msg is None:
            super().__init__()
        else:
            super().__init__(msg)
        self.src: str = src
        self.pos: int = pos
        self.kind: ErrorKind | None = kind
        self.add_note(position_note(src, pos))

class ConfigurationError(Exception):
    """
    Raised when a parser is misused by the grammar author.

    This is a bug in the calling code, not a parse failure, so it's never returned as a state.
    """


Transformer = Callable[[ParseState], ParseState]


class Parser:
    """
    Wraps a function from `ParseState` to `ParseState`.

    Parsers are immutable and hold no state, so the same parser can be run any number of times, from any thread.

    ```
    number = digits.map(int)
    pair = sequence([number, literal(","), number]).map(lambda r: (r[0], r[2]))

    state = pair.run("4,2")
    state.result    # (4, 2)
    ```
    """
    def __init__(self, transformer: Transformer, name: str | None = None) -> None:
        self.transformer: Final[Transformer] = transformer
        """The wrapped state transformer."""
        self.name: Final[str] = name if name is not None else getattr(transformer, "__name__", "parser")

    def __call__(self, state: ParseState) -> ParseState:
        """Applies the transformer to the state. Same as `Parser.transformer(state)`."""
        return self.transformer(state)

    def __repr__(self) -> str:
        return f"<Parser {self.name}>"

    def run(self, target: str, debug: bool = False) -> ParseState:
        """
        Runs the parser on `target`, starting from index 0.

        Returns the final state, whether it succeeded or not.

        `debug`: Logs the initial and final states, and enables `debug_parser()` tracing. Never affects the result.
        """
        state = ParseState(target, debug=debug)
        if debug:
            run_log.info("%s: start %r", self.name, state)
        final = self.transformer(state)
        if debug:
            run_log.info("%s: end %r", self.name, final)
        return final

    def parse(self, target: str) -> Any:
        """
        Runs the parser on `target` and returns the result.

        Raises a `ParseError` if the parser failed.
        """
        return self.run(target).raise_for_error().result

    def map(self, fn: Callable[[Any], Any]) -> Parser:
        """
        Transforms the result using the given function.

        Failures are passed through unchanged.
        """
        def transform(state: ParseState) -> ParseState:
            next_state = self.transformer(state)
            if next_state.is_error:
                return next_state
            return update_result(next_state, fn(next_state.result))
        return Parser(transform, f"{self.name}.map")

    def chain(self, fn: Callable[[Any], Parser]) -> Parser:
        """
        Chooses the next parser according to this parser's result.

        `fn` receives the result and returns the parser to continue with.

        ```
        # A tag followed by a payload that depends on the tag.
        tagged = letters.chain(lambda tag: digits if tag == "int" else letters)
        ```
        """
        def transform(state: ParseState) -> ParseState:
            next_state = self.transformer(state)
            if next_state.is_error:
                return next_state
            next_parser = fn(next_state.result)
            return next_parser.transformer(next_state)
        return Parser(transform, f"{self.name}.chain")

    def error_map(self, fn: Callable[[str | None, int], str]) -> Parser:
        """
        Like `map()`, but only runs if the parser failed. Replaces the error message.

        `fn` receives the error message and the index of the failure.

        Never turns a failure into a success.
        """
        def transform(state: ParseState) -> ParseState:
            next_state = self.transformer(state)
            if not next_state.is_error:
                return next_state
            return next_state._replace(error=fn(next_state.error, next_state.index))
        return Parser(transform, f"{self.name}.error_map")


# primitives

def literal(s: str, case_sensitive: bool = True) -> Parser:
    """
    Matches the string `s`.

    The result is `s` itself, even when `case_sensitive` is false and the input used a different case.
    """
    if not s:
        raise ConfigurationError("literal: At least one character required.")
    expected = s if case_sensitive else s.lower()
    length = len(s)

    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        target, index = state.target, state.index
        if index >= len(target):
            return update_error(state, f"literal: Tried to match {s!r}, but got unexpected end of input.", ErrorKind.END_OF_INPUT)
        actual = target[index:index+length]
        if (actual if case_sensitive else actual.lower()) == expected:
            return update_state(state, index + length, s)
        return update_error(
            state,
            f"literal: Tried to match {s!r}, but got {target[index:index+const.PREVIEW_LENGTH]!r}",
        )
    return Parser(transform, f"literal({s!r})")

def _compile(pattern: str | re.Pattern, flags: int | re.RegexFlag = 0) -> re.Pattern:
    if isinstance(pattern, re.Pattern):
        if not flags:
            return pattern
        flags |= pattern.flags
        pattern = pattern.pattern
    return re.compile(pattern, flags)

def _anchors_at_start(pattern: str) -> bool:
    """
    Whether the pattern uses `^` or `\\A` outside a character class.

    `Pattern.match(s, pos)` never matches those past position 0, so such patterns are matched against the remaining input instead.
    """
    in_class = False
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "\\":
            if not in_class and pattern[i+1:i+2] == "A":
                return True
            i += 2
            continue
        if in_class:
            if c == "]":
                in_class = False
        elif c == "[":
            in_class = True
            # a ] right after [ or [^ is a literal
            if pattern[i+1:i+2] == "^":
                i += 1
            if pattern[i+1:i+2] == "]":
                i += 1
        elif c == "^":
            return True
        i += 1
    return False

def _pattern_parser(name: str, compiled: re.Pattern, failure: str) -> Parser:
    sliced = _anchors_at_start(compiled.pattern)

    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        index = state.index
        if index >= len(state.target):
            return update_error(state, f"{name}: Got unexpected end of input.", ErrorKind.END_OF_INPUT)
        if sliced:
            m = compiled.match(state.target[index:])
            offset = index
        else:
            m = compiled.match(state.target, index)
            offset = 0
        if m is not None:
            return update_state(state, offset + m.end(), m.group(0))
        return update_error(state, f"{name}: Could not match {failure} at index {index}")
    return Parser(transform, name)

def regex(pattern: str | re.Pattern, flags: int | re.RegexFlag = 0) -> Parser:
    """
    Matches the regex at the current position. The result is the matched text.

    `^` and `\\A` match at the current position, as if the input started there.
    """
    compiled = _compile(pattern, flags)
    return _pattern_parser("regex", compiled, f"/{compiled.pattern}/")

letters: Final[Parser] = _pattern_parser("letters", const.LETTERS, "letters")
"""Matches one or more ASCII letters."""
digits: Final[Parser] = _pattern_parser("digits", const.DIGITS, "digits")
"""Matches one or more decimal digits."""
whitespace: Final[Parser] = _pattern_parser("whitespace", const.WHITESPACE, "whitespace")
"""Matches one or more whitespaces, except line breaks."""
safeword: Final[Parser] = _pattern_parser("safeword", const.SAFEWORD, "a safe word")
"""Matches one or more of `[A-Za-z0-9_-]`."""

def _end_of_input(state: ParseState) -> ParseState:
    if state.is_error:
        return state
    if state.index < len(state.target):
        return update_error(
            state,
            f"end_of_input: Expected end of input, but got {state.target[state.index:state.index+const.PREVIEW_LENGTH]!r}",
        )
    return update_result(state, None)

end_of_input: Final[Parser] = Parser(_end_of_input, "end_of_input")
"""Succeeds with `None` only if no input remains. Consumes nothing."""


# structural combinators

def sequence(parsers: Sequence[Parser]) -> Parser:
    """
    All the given parsers must match in order. The result is the list of their results.

    Stops at the first failure and returns it as-is.
    """
    parsers = tuple(parsers)

    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        results: list[Any] = []
        next_state = state
        for parser in parsers:
            next_state = parser.transformer(next_state)
            if next_state.is_error:
                return next_state
            results.append(next_state.result)
        return update_result(next_state, results)
    return Parser(transform, "sequence")

def choice(parsers: Sequence[Parser]) -> Parser:
    """
    Attempts to match any of the parsers, in order, until one matches.

    Every attempt starts from the same state. If none match, fails at the starting index.
    """
    parsers = tuple(parsers)
    if not parsers:
        raise ConfigurationError("choice: At least one parser required.")

    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        for parser in parsers:
            next_state = parser.transformer(state)
            if not next_state.is_error:
                return next_state
        return update_error(state, f"choice: Unable to match with any parser at index {state.index}")
    return Parser(transform, "choice")

def _collect(parser: Parser, state: ParseState) -> tuple[ParseState, list[Any]]:
    results: list[Any] = []
    while True:
        next_state = parser.transformer(state)
        if next_state.is_error:
            return state, results
        results.append(next_state.result)
        if next_state.index == state.index:
            # zero-width match, repeating it would never end
            return next_state, results
        state = next_state

def many(parser: Parser) -> Parser:
    """
    Repeatedly matches the parser until it fails. The result is the list of results.

    Never fails. A zero-width match is collected once, then the loop stops.
    """
    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        next_state, results = _collect(parser, state)
        return update_result(next_state, results)
    return Parser(transform, f"many({parser.name})")

def many1(parser: Parser) -> Parser:
    """
    Like `many()`, but fails if the parser didn't match at least once.
    """
    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        next_state, results = _collect(parser, state)
        if not results:
            return update_error(
                state,
                f"many1: Unable to match any input using parser @ index {state.index}",
                ErrorKind.EXHAUSTED,
            )
        return update_result(next_state, results)
    return Parser(transform, f"many1({parser.name})")

def _collect_separated(separator: Parser, value: Parser, state: ParseState) -> tuple[ParseState, list[Any]]:
    results: list[Any] = []
    while True:
        value_state = value.transformer(state)
        if value_state.is_error:
            return state, results
        results.append(value_state.result)
        separator_state = separator.transformer(value_state)
        if separator_state.is_error or separator_state.index == state.index:
            return value_state, results
        state = separator_state

def sep_by(separator: Parser) -> Callable[[Parser], Parser]:
    """
    Matches values separated by `separator`. The result is the list of values.

    Never fails. A trailing separator is consumed, the failed value attempt after it is not.

    ```
    numbers = sep_by(literal(","))(digits)
    ```
    """
    def factory(value: Parser) -> Parser:
        def transform(state: ParseState) -> ParseState:
            if state.is_error:
                return state
            next_state, results = _collect_separated(separator, value, state)
            return update_result(next_state, results)
        return Parser(transform, f"sep_by({value.name})")
    return factory

def sep_by1(separator: Parser) -> Callable[[Parser], Parser]:
    """
    Like `sep_by()`, but fails if no value matched.
    """
    def factory(value: Parser) -> Parser:
        def transform(state: ParseState) -> ParseState:
            if state.is_error:
                return state
            next_state, results = _collect_separated(separator, value, state)
            if not results:
                return update_error(
                    state,
                    f"sep_by1: Unable to capture any results at index {state.index}",
                    ErrorKind.EXHAUSTED,
                )
            return update_result(next_state, results)
        return Parser(transform, f"sep_by1({value.name})")
    return factory

def optional(parser: Parser) -> Parser:
    """
    Matches 0 or 1 instances of the parser. Never fails.

    If the parser didn't match, nothing is consumed and the result is `None`.
    """
    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        next_state = parser.transformer(state)
        if not next_state.is_error:
            return next_state
        return update_result(state, None)
    return Parser(transform, f"optional({parser.name})")

def between(left: Parser, right: Parser) -> Callable[[Parser], Parser]:
    """
    Matches content located between two parsers. The result is the content's result.

    ```
    parenthesized = between(literal("("), literal(")"))
    parenthesized(digits).run("(42)").result    # "42"
    ```
    """
    def factory(content: Parser) -> Parser:
        return sequence([left, content, right]).map(lambda results: results[1])
    return factory


# escape hatches

def lazy(thunk: Callable[[], Parser]) -> Parser:
    """
    Defers creating the parser until it's first used. Used for recursive grammars.

    ```
    parens = lazy(lambda: optional(between(literal("("), literal(")"))(parens)))
    ```
    """
    @functools.cache
    def resolve() -> Parser:
        return thunk()

    def transform(state: ParseState) -> ParseState:
        return resolve().transformer(state)
    return Parser(transform, "lazy")

def fail(msg: str) -> Parser:
    """A parser that immediately fails with the given message."""
    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        return update_error(state, msg, ErrorKind.FAILED)
    return Parser(transform, "fail")

def succeed(value: Any) -> Parser:
    """A parser that immediately succeeds with the given value, consuming nothing."""
    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        return update_result(state, value)
    return Parser(transform, "succeed")

ContextualSteps = Generator[Parser, Any, Any]

def contextual(generator_fn: Callable[[], ContextualSteps]) -> Parser:
    """
    Writes chained parsers as straight-line code.

    The generator yields parsers and receives their results. Its return value becomes the result.
    Any failing step fails the whole parser.

    Can be used as a decorator:
    ```
    @contextual
    def var_declaration():
        declaration_type = yield choice([literal("VAR "), literal("GLOBAL_VAR ")])
        name = yield letters
        type_ = yield choice([literal(" INT "), literal(" STRING ")])
        if type_ == " INT ":
            data = yield digits
        else:
            data = yield between(literal('"'), literal('"'))(letters)
        return {"name": name, "type": type_, "data": data, "declaration_type": declaration_type}
    ```

    Raises a `ConfigurationError` while parsing if a yielded value isn't a `Parser`.
    """
    def transform(state: ParseState) -> ParseState:
        if state.is_error:
            return state
        steps = generator_fn()
        if not isinstance(steps, Generator):
            raise ConfigurationError(f"contextual: {generator_fn!r} must be a generator function.")
        sent: Any = None
        try:
            while True:
                try:
                    step = steps.send(sent)
                except StopIteration as stop:
                    return update_result(state, stop.value)
                if not isinstance(step, Parser):
                    raise ConfigurationError(f"contextual: Yielded values must always be parsers, got {step!r}")
                state = step.transformer(state)
                if state.is_error:
                    return state
                sent = state.result
        finally:
            steps.close()
    return Parser(transform, getattr(generator_fn, "__name__", "contextual"))


# debugging

def debug_parser(parser: Parser, label: str | None = None) -> Parser:
    """
    Logs the state before and after the parser runs.

    Logs at INFO when the run was started with `debug=True`, otherwise at DEBUG.
    """
    name = label if label is not None else parser.name

    def transform(state: ParseState) -> ParseState:
        level = logging.INFO if state.debug else logging.DEBUG
        tl = trace_log
        if tl.isEnabledFor(level):
            tl.log(level, "%s: before %r", name, state)
        next_state = parser.transformer(state)
        if tl.isEnabledFor(level):
            tl.log(level, "%s: after %r", name, next_state)
        return next_state
    return Parser(transform, f"debug({name})")
