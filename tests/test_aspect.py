import pytest

from smartcrop import AspectRatio, ParseError, ValidationError, parse_aspect_ratio, resolve_target_size
from smartcrop.aspect import fit_ratio, to_dimension


@pytest.mark.parametrize("text, expected", [
    ("16:9", (16, 9)),
    ("32:18", (16, 9)),
    ("1:1", (1, 1)),
    ("1.5:1", (3, 2)),
    (" 4 : 3 ", (4, 3)),
    ("1.5", (3, 2)),
    ("21:9", (7, 3)),
])
def test_parse_aspect_ratio_normalizes(text, expected):
    ratio = parse_aspect_ratio(text)
    assert (ratio.width, ratio.height) == expected


@pytest.mark.parametrize("text", ["invalid", "", "   ", "0:1", "1:0", "-1:2", "16:-9", "1:2:3", "a:b", ":9", "16:",
                                  "inf:1", "nan:1", "1:0/0", "3/2:1", "16:9/1", "1_000:1", "3/2"])
def test_parse_aspect_ratio_rejects_malformed(text):
    with pytest.raises(ParseError):
        parse_aspect_ratio(text)


def test_parse_aspect_ratio_rejects_non_string():
    with pytest.raises(ParseError):
        parse_aspect_ratio(None)
    with pytest.raises(ParseError):
        parse_aspect_ratio(16)


def test_parse_error_names_the_constraint():
    with pytest.raises(ParseError, match="aspect ratio must be positive"):
        parse_aspect_ratio("0:1")
    with pytest.raises(ParseError, match="must be numeric"):
        parse_aspect_ratio("invalid:1")


def test_aspect_ratio_str_and_value():
    ratio = AspectRatio.of(16, 9)
    assert str(ratio) == "16:9"
    assert ratio.value == pytest.approx(16 / 9)


@pytest.mark.parametrize("ratio, size, expected", [
    ("1:1", (800, 600), (600, 600)),
    ("16:9", (800, 600), (800, 450)),
    ("9:16", (1200, 400), (225, 400)),
    ("4:3", (800, 600), (800, 600)),
    ("1:1", (400, 1200), (400, 400)),
    ("21:9", (1000, 1000), (1000, 429)),
])
def test_fit_ratio_largest_window(ratio, size, expected):
    assert fit_ratio(parse_aspect_ratio(ratio), *size) == expected


def test_fit_ratio_never_returns_empty_window():
    width, height = fit_ratio(AspectRatio.of(100, 1), 50, 50)
    assert width == 50
    assert height == 1


def test_resolve_aspect_ratio_wins_over_dimensions():
    assert resolve_target_size(parse_aspect_ratio("1:1"), 100, 50, 800, 600) == (600, 600)


def test_resolve_explicit_size_that_fits_is_exact():
    assert resolve_target_size(None, 400, 300, 800, 600) == (400, 300)


def test_resolve_explicit_size_too_large_keeps_ratio():
    assert resolve_target_size(None, 1000, 500, 800, 600) == (800, 400)
    assert resolve_target_size(None, 2000, 2000, 800, 600) == (600, 600)


def test_resolve_single_dimension_uses_source_for_the_other():
    assert resolve_target_size(None, 400, None, 800, 600) == (400, 600)
    assert resolve_target_size(None, None, 300, 800, 600) == (800, 300)
    assert resolve_target_size(None, 5000, None, 800, 600) == (800, 600)


def test_resolve_nothing_is_full_frame():
    assert resolve_target_size(None, None, None, 800, 600) == (800, 600)


@pytest.mark.parametrize("value", [0, -5, "100", True, float("nan"), float("inf"), 10 ** 400, -10 ** 400])
def test_to_dimension_rejects_bad_values(value):
    with pytest.raises(ValidationError):
        to_dimension(value, "width")


def test_to_dimension_rounds_floats():
    assert to_dimension(299.6, "width") == 300
    assert to_dimension(None, "width") is None


def test_fraction_and_underscore_components_are_not_numeric():
    with pytest.raises(ParseError, match="must be numeric"):
        parse_aspect_ratio("3/2:1")
    with pytest.raises(ParseError, match="must be numeric"):
        parse_aspect_ratio("1_000:1")
