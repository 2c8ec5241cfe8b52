"""
Library to build string parsers by composing small parsers.

See the objects for more explanations.

See the `strparse.general` module for general purpose parsers you can use as examples.

Defining parsers:
```
number = digits.map(int)
numbers = between(literal("["), literal("]"))(sep_by(literal(","))(number))

@contextual
def assignment():
    name = yield letters
    yield literal("=")
    value = yield number
    return (name, value)
```

Using parsers:
```
state = numbers.run("[1,2,3]")

if state.is_error:
    ... # `state.error` and `state.index` describe the failure
else:
    ... # `state.result` is [1, 2, 3]

numbers.parse("[1,2,3]")    # same, but raises a `ParseError` on failure
```
"""

import strparse.const as const
import strparse.main
from strparse.main import (
    ErrorKind,
    ParseState,
    ParseError,
    ConfigurationError,
    Parser,
    update_state,
    update_result,
    update_error,
    line_column,
    position_note,
    literal,
    regex,
    letters,
    digits,
    whitespace,
    safeword,
    end_of_input,
    sequence,
    choice,
    many,
    many1,
    sep_by,
    sep_by1,
    optional,
    between,
    lazy,
    fail,
    succeed,
    contextual,
    debug_parser,
)
import strparse.general as general
