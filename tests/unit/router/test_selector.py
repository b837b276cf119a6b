"""
Unit tests for per-sink exclusion selectors.
"""

from metrics_relay.router import RegexSelector, build_selector, is_excluded, selector_token


def test_selector_token_is_second_field():
    assert selector_token("1// foo{a=b} 5") == "foo{a=b}"
    assert selector_token("a   b\tc") == "b"
    assert selector_token("single") is None
    assert selector_token("") is None


def test_no_selector_forwards_everything():
    assert not is_excluded("1// foo 5", None)
    assert build_selector(None) is None


def test_matching_token_is_excluded():
    """Selector is a blacklist: matching lines are dropped for that sink."""
    sel = RegexSelector("^foo$")
    assert is_excluded("1// foo 5", sel)
    assert not is_excluded("1// bar 5", sel)
    assert not is_excluded("1// foobar 5", sel)


def test_regex_uses_search_semantics():
    sel = RegexSelector("cpu")
    assert sel.matches("os.cpu{core=0}")
    assert is_excluded("1// os.cpu{core=0} 3", sel)


def test_line_without_second_token_is_forwarded():
    assert not is_excluded("lonely", RegexSelector(".*"))


def test_build_selector_compiles_pattern():
    sel = build_selector("^go_")
    assert isinstance(sel, RegexSelector)
    assert sel.matches("go_goroutines{}")
    assert "^go_" in repr(sel)
