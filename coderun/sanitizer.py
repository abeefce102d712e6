"""Allow-list validation for program input.

The program input ends up inside a double-quoted ``echo`` in the generated
shell script, so this pattern is the only thing standing between client
text and the shell. Accepted text is a sequence of Latin-script words,
numbers and decimals (``3.14``, ``2,5``) separated by whitespace.

A decimal ``N+[.,]N+`` is written here as a single digit pair ``N[.,]N``
surrounded by ordinary digits. Both forms accept the same strings, but
this one has no nested quantifiers and cannot backtrack catastrophically.
"""

import regex

_WHITESPACE = r"\t\n\f\r "

PROGRAM_INPUT_PATTERN = regex.compile(
    rf"(?:\p{{N}}[.,]\p{{N}}|[\p{{Latin}}\p{{N}}{_WHITESPACE}])*"
)


def validate_program_input(text: str) -> bool:
    """Return True when the whole of ``text`` is made of allowed tokens."""
    return PROGRAM_INPUT_PATTERN.fullmatch(text) is not None
