"""Portal Templating Package."""

from portal.templating.params import FALLBACK, Param, ParamKind, parse_parameters
from portal.templating.renderer import build_string, render, replace_slices

__all__ = ["FALLBACK", "Param", "ParamKind", "parse_parameters", "build_string", "render", "replace_slices"]
