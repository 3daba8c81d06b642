"""
Portal Template Renderer

Fills HTML templates with text definitions. A placeholder is a `{...}` span;
when it is the first thing on its line, the newline and tabs in front of it
are captured so multi-line values keep the surrounding indentation and empty
values take their whole line with them.

Inside a definition's text, `$N` refers to placeholder parameter N and
`$N{inner}` applies parameter N to `inner` (wrapping it in element tags).

Rendering never raises: anything that cannot be resolved becomes the literal
text "null".
"""

import re
from dataclasses import dataclass
from typing import Mapping

from portal.templating.params import FALLBACK, Param, ParamKind, parse_parameters

PLACEHOLDER = re.compile(r"(?:(^|\n)(\t*))?\{(.*?)\}", re.DOTALL)

# Plain references first so they can appear inside function references
_PLAIN_REF = re.compile(r"\$(\d+)(?!\{)")
_FUNCTION_REF = re.compile(r"\$(\d+)\{(.*?)\}")
_TAG_PARTS = re.compile(r"(\S+)(.*)")
_LINE_START = re.compile(r"^", re.MULTILINE)


@dataclass(frozen=True)
class Slice:
    """A span of the original text and what replaces it."""

    start: int
    end: int
    value: str


def stringify(value) -> str:
    """Render a definition value as text; numbers are allowed."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value if isinstance(value, str) else str(value)


def _open_tag(tag: str) -> tuple[str, str] | None:
    match = _TAG_PARTS.fullmatch(tag)
    if match is None:
        return None
    return match.group(1), match.group(2)


def _apply_param(params: list[Param], index: str, defs: Mapping, inner: str | None = None) -> str:
    """Resolve a `$N` or `$N{inner}` reference against the parsed parameters."""
    i = int(index)
    if i >= len(params):
        return FALLBACK

    param = params[i]
    if param.kind is ParamKind.DEFINITION:
        return stringify(defs[param.value])
    if param.kind is ParamKind.STRING:
        return param.value
    if param.kind is ParamKind.ELEMENT:
        if inner is None:
            parts = _open_tag(param.value)
            if parts:
                name, attrs = parts
                return f"<{name}{attrs}>"
        else:
            # Nested tags are applied innermost first
            wrapped = inner
            for tag in reversed(param.value.split("><")):
                parts = _open_tag(tag)
                if parts:
                    name, attrs = parts
                    wrapped = f"<{name}{attrs}>{wrapped}</{name}>"
            if wrapped != inner:
                return wrapped
    return FALLBACK


def build_string(raw: str, defs: Mapping) -> str:
    """Resolve a placeholder body into its substitution value."""
    params = parse_parameters(raw, defs)
    if params is None:
        return FALLBACK

    text = stringify(defs[params[0].value])
    if len(params) > 1:
        text = _PLAIN_REF.sub(lambda m: _apply_param(params, m.group(1), defs), text)
        text = _FUNCTION_REF.sub(lambda m: _apply_param(params, m.group(1), defs, m.group(2)), text)

    return text


def replace_slices(text: str, slices: list[Slice]) -> str:
    """Replace non-overlapping spans of text, in ascending position order."""
    parts: list[str] = []
    cursor = 0
    for piece in sorted(slices, key=lambda s: s.start):
        parts.append(text[cursor:piece.start])
        parts.append(piece.value)
        cursor = piece.end
    parts.append(text[cursor:])
    return "".join(parts)


def render(template: str, defs: Mapping) -> str:
    """Fill every placeholder in the template with its resolved definition."""
    slices: list[Slice] = []
    for match in PLACEHOLDER.finditer(template):
        value = build_string(match.group(3), defs)
        newline = match.group(1) or ""
        tabs = match.group(2) or ""
        formatted = newline + _LINE_START.sub(tabs, value) if value else ""
        slices.append(Slice(match.start(), match.end(), formatted))

    return replace_slices(template, slices)
