"""
Portal Placeholder Parameters

Tokenizes the text between a placeholder's braces into typed parameters.

    {greeting}                     -> [definition]
    {greeting, "World"}            -> [definition, string]
    {link, <a href="/x">, "!!"}    -> [definition, element, string]

The first parameter must be a definition present in the active definition
map. If it isn't, the whole placeholder resolves to the fallback text. Any
later parameter that fails validation is kept as an INVALID token so the
positions of the parameters after it are preserved.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

FALLBACK = "null"
DELIMITER = ","

# Element tags may not open with whitespace or a closing slash
_BAD_ELEMENT = re.compile(r"<[\s/]")
_LEADING_DELIMITER = re.compile(r"^\s*,")


class ParamKind(Enum):
    """Parameter kinds, in the order their opening bounds are tried."""
    STRING = "string"
    ELEMENT = "element"
    DEFINITION = "definition"
    INVALID = "invalid"


class ParserState(Enum):
    """Tokenizer state while walking the parameter text."""
    SEEK_START = "seek_start"
    ACCUMULATING = "accumulating"
    SEEK_DELIMITER = "seek_delimiter"


# (opening, closing) bounds for each kind; definitions have none
BOUNDS: dict[ParamKind, tuple[str, str]] = {
    ParamKind.STRING: ('"', '"'),
    ParamKind.ELEMENT: ("<", ">"),
    ParamKind.DEFINITION: ("", ""),
}


@dataclass(frozen=True)
class Param:
    """A single parsed placeholder parameter."""

    kind: ParamKind
    value: str = ""


INVALID_PARAM = Param(ParamKind.INVALID)


def _kind_for(char: str) -> ParamKind:
    """Pick the parameter kind opened by this character."""
    for kind, (opening, _) in BOUNDS.items():
        if opening in char:
            return kind
    return ParamKind.DEFINITION


def _validate(kind: ParamKind | None, value: str, first: bool, defs: Mapping) -> Param | None:
    """Check a closed token and return it with its bounds stripped, or None."""
    if kind is None or (first and kind is not ParamKind.DEFINITION):
        return None
    if not value:
        return None

    opening, closing = BOUNDS[kind]
    if not value.startswith(opening) or not value.endswith(closing):
        return None

    if kind is ParamKind.ELEMENT and _BAD_ELEMENT.search(value):
        return None
    if kind is ParamKind.DEFINITION:
        if value not in defs:
            return None
        return Param(kind, value)

    return Param(kind, value[len(opening):len(value) - len(closing)])


def parse_parameters(raw: str, defs: Mapping) -> list[Param] | None:
    """Split a placeholder body into parameters.

    Returns None when the placeholder as a whole must fall back, which
    happens when the first parameter is missing or invalid.
    """
    if not raw or _LEADING_DELIMITER.match(raw) or not defs:
        return None

    params: list[Param] = []
    state = ParserState.SEEK_START
    kind: ParamKind | None = None
    value = ""
    last = len(raw) - 1

    for i, char in enumerate(raw):
        close = False

        if state is ParserState.ACCUMULATING:
            if kind is not ParamKind.STRING and char == DELIMITER:
                close = True
            else:
                value += char
                if kind is ParamKind.STRING and char == BOUNDS[ParamKind.STRING][1]:
                    state = ParserState.SEEK_DELIMITER
        else:
            if char.isspace():
                continue
            if state is ParserState.SEEK_START:
                if char == DELIMITER:
                    # Expected a parameter, found a delimiter
                    params.append(INVALID_PARAM)
                else:
                    kind = _kind_for(char)
                    value = char
                    state = ParserState.ACCUMULATING
                continue
            if char != DELIMITER:
                # Expected a delimiter, found more text
                params.append(INVALID_PARAM)
            else:
                close = True

        if close or i == last:
            param = _validate(kind, value, not params, defs)
            if param is None:
                if not params:
                    return None
                params.append(INVALID_PARAM)
            else:
                params.append(param)

            kind = None
            value = ""
            state = ParserState.SEEK_START

    if not params or params[0].kind is not ParamKind.DEFINITION:
        return None
    return params
