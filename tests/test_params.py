"""Tests for placeholder parameter parsing."""

from portal.templating.params import FALLBACK, Param, ParamKind, parse_parameters

DEFS = {"greeting": "Hi $1", "name": "Dan", "link": "Click $1{here}"}


# =========================================================================
# Early exits
# =========================================================================


def test_empty_raw_is_none():
    assert parse_parameters("", DEFS) is None


def test_leading_delimiter_is_none():
    assert parse_parameters("  ,greeting", DEFS) is None


def test_empty_defs_is_none():
    assert parse_parameters("greeting", {}) is None


def test_fallback_text():
    assert FALLBACK == "null"


# =========================================================================
# Token kinds
# =========================================================================


def test_single_definition():
    assert parse_parameters("greeting", DEFS) == [Param(ParamKind.DEFINITION, "greeting")]


def test_string_bounds_are_stripped():
    params = parse_parameters('greeting, "World"', DEFS)
    assert params == [
        Param(ParamKind.DEFINITION, "greeting"),
        Param(ParamKind.STRING, "World"),
    ]


def test_string_absorbs_commas():
    params = parse_parameters('greeting,"a, b, c"', DEFS)
    assert params[1] == Param(ParamKind.STRING, "a, b, c")


def test_element_keeps_attributes():
    params = parse_parameters('link,<a href="/x">', DEFS)
    assert params[1] == Param(ParamKind.ELEMENT, 'a href="/x"')


def test_definition_parameter():
    params = parse_parameters("greeting,name", DEFS)
    assert params[1] == Param(ParamKind.DEFINITION, "name")


def test_mixed_parameters_in_order():
    params = parse_parameters('greeting, <b>, "two", name', DEFS)
    assert [p.kind for p in params] == [
        ParamKind.DEFINITION, ParamKind.ELEMENT, ParamKind.STRING, ParamKind.DEFINITION,
    ]


# =========================================================================
# Validation
# =========================================================================


def test_unknown_first_definition_aborts():
    assert parse_parameters("missing", DEFS) is None


def test_first_parameter_must_be_definition():
    assert parse_parameters('"greeting"', DEFS) is None
    assert parse_parameters("<b>", DEFS) is None


def test_later_failure_keeps_position():
    params = parse_parameters('greeting,missing,"x"', DEFS)
    assert params == [
        Param(ParamKind.DEFINITION, "greeting"),
        Param(ParamKind.INVALID),
        Param(ParamKind.STRING, "x"),
    ]


def test_element_with_space_after_bracket_is_invalid():
    params = parse_parameters("link,< a>", DEFS)
    assert params[1].kind is ParamKind.INVALID


def test_closing_tag_element_is_invalid():
    params = parse_parameters("link,</a>", DEFS)
    assert params[1].kind is ParamKind.INVALID


def test_unterminated_string_is_invalid():
    params = parse_parameters('greeting,"abc', DEFS)
    assert params[1].kind is ParamKind.INVALID


def test_doubled_delimiter_records_invalid():
    params = parse_parameters('greeting,,"x"', DEFS)
    assert params == [
        Param(ParamKind.DEFINITION, "greeting"),
        Param(ParamKind.INVALID),
        Param(ParamKind.STRING, "x"),
    ]
