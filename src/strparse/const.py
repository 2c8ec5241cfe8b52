"""
General use constants.
"""

from __future__ import annotations
from typing import Final

import re

PREVIEW_LENGTH: Final[int] = 10
"""How many characters of the input are shown in mismatch messages."""

LETTERS: Final[re.Pattern[str]] = re.compile(r"[A-Za-z]+")
DIGITS: Final[re.Pattern[str]] = re.compile(r"[0-9]+")
WHITESPACE: Final[re.Pattern[str]] = re.compile(r"[ \t\f\v]+")
SAFEWORD: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_-]+")

BINARY: Final[frozenset[str]] = frozenset({"0", "1"})
OCTAL: Final[frozenset[str]] = frozenset({"0", "1", "2", "3", "4", "5", "6", "7"})
DECIMAL: Final[frozenset[str]] = frozenset({"0", "1", "2", "3", "4", "5", "6", "7", "8", "9"})
HEXADECIMAL: Final[frozenset[str]] = DECIMAL | {"a", "b", "c", "d", "e", "f", "A", "B", "C", "D", "E", "F"}
