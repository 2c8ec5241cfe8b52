"""
General purpose parsers, built only from the public combinators.

Also meant to be read as examples of how to assemble grammars.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import re

from strparse import *

# quoted string

GENERAL_ESCAPES: dict[str, str] = {
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
}

unicode_digits: Parser = regex(r"[0-9a-fA-F]{4}").error_map(
    lambda error, index: f"Expected 4 hexadecimal characters after unicode escape sequence at index {index}."
).map(lambda code: chr(int(code, base=16)))
"""The part of a unicode escape after the `u`. Result: the escaped character."""

unicode_escape: Parser = sequence([literal("u"), unicode_digits]).map(lambda results: results[1])
"""Result: the escaped character."""

GENERAL_ADVANCED_ESCAPES: dict[str, Parser] = {
    'u': unicode_digits,
}

def quoted_string(
    *,
    quotes: Sequence[str] = ('"', "'"),
    escape: str = '\\',
    custom_escapes: Mapping[str, str] = GENERAL_ESCAPES,
    advanced_escapes: Mapping[str, Parser] = GENERAL_ADVANCED_ESCAPES,
) -> Parser:
    """
    Result: the unescaped contents of the string.

    The string must be closed with the same quote it was opened with.

    `custom_escapes`: Maps the character after `escape` to its replacement.
    `advanced_escapes`: Maps the character after `escape` to the parser for the rest of the sequence. Once the character is seen, that parser must match.

    Unknown escapes produce the escaped character itself.
    """
    @contextual
    def escaped():
        char = yield regex(r".", re.DOTALL).error_map(
            lambda error, index: f"Expected a character to escape after `{escape}` at index {index}."
        )
        if char in custom_escapes:
            return custom_escapes[char]
        if char in advanced_escapes:
            return (yield advanced_escapes[char])
        return char

    @contextual
    def quoted():
        quote = yield choice([literal(q) for q in quotes])
        plain = optional(regex(f"[^{re.escape(quote)}{re.escape(escape)}]+"))
        chunks: list[str] = []
        while True:
            if (text := (yield plain)) is not None:
                chunks.append(text)
            if (yield optional(literal(escape))) is None:
                break
            chunks.append((yield escaped))
        yield literal(quote).error_map(lambda error, index: f"Expected closing quote `{quote}` at index {index}.")
        return "".join(chunks)

    return quoted

def _digit_run(chars: frozenset[str]) -> Parser:
    return regex("[" + "".join(sorted(chars)) + "]+")

@contextual
def integer_number():
    """
    Result: `int`

    The base is interpreted from the prefix.
    - `0b`: Binary
    - `0o`: Octal
    - `0x`: Hexadecimal
    """
    sign = yield optional(literal("-"))
    prefix = yield optional(choice([literal("0b"), literal("0o"), literal("0x", case_sensitive=False)]))
    if prefix == "0b":
        body = yield _digit_run(const.BINARY).error_map(lambda error, index: "Expected a binary digit after 0b.")
        base = 2
    elif prefix == "0o":
        body = yield _digit_run(const.OCTAL).error_map(lambda error, index: "Expected an octal digit after 0o.")
        base = 8
    elif prefix == "0x":
        body = yield _digit_run(const.HEXADECIMAL).error_map(lambda error, index: "Expected a hexadecimal digit after 0x.")
        base = 16
    else:
        body = yield _digit_run(const.DECIMAL)
        base = 10
    value = int(body, base=base)
    return -value if sign is not None else value

float_number: Parser = regex(
    r"-?(?:[0-9]+(?:\.[0-9]+(?:[eE][-+]?[0-9]+)?|\.?[eE][-+]?[0-9]+)|\.[0-9]+(?:[eE][-+]?[0-9]+)?)"
).map(float)
"""
Result: `float`

A decimal point or an exponent is required. `1.` is not accepted, `1.0`, `.5` and `1e3` are.
"""

def lexeme(parser: Parser) -> Parser:
    """Matches the parser, skipping whitespace (except line breaks) around it."""
    return between(optional(whitespace), optional(whitespace))(parser)
