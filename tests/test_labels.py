import pytest

from parquetgw.labels import (
    Label,
    Matcher,
    MatcherList,
    MatchType,
    labels_from_map,
    parse_metric_selector,
    parse_metric_selectors,
)


def test_parse_selector_with_name_and_labels():
    matchers = parse_metric_selector('up{job="api", env!="dev"}')
    assert matchers == [
        Matcher(MatchType.EQUAL, "job", "api"),
        Matcher(MatchType.NOT_EQUAL, "env", "dev"),
        Matcher(MatchType.EQUAL, "__name__", "up"),
    ]


def test_parse_selector_regex_operators():
    matchers = parse_metric_selector('{job=~"ap.*", env!~"dev|test",}')
    assert [m.type for m in matchers] == [MatchType.REGEX, MatchType.NOT_REGEX]
    assert matchers[0].matches("api")
    assert not matchers[1].matches("dev")
    assert matchers[1].matches("prod")


def test_regex_is_fully_anchored():
    matcher = Matcher(MatchType.REGEX, "job", "ap")
    assert not matcher.matches("api")
    assert matcher.matches("ap")


def test_quoted_metric_name_in_braces():
    matchers = parse_metric_selector('{"up", job="api"}')
    assert Matcher(MatchType.EQUAL, "__name__", "up") in matchers


def test_escapes_and_raw_strings():
    matchers = parse_metric_selector('{a="x\\"y", b=`r\\n`}')
    assert matchers[0].value == 'x"y'
    assert matchers[1].value == "r\\n"


@pytest.mark.parametrize(
    "text",
    [
        "{}",
        '{a=""}',
        '{a=~".*"}',
        '{a="b"',
        '{a b}',
        'up{__name__="x"}',
        '{a=~"("}',
        "",
        'up{a="b"} extra',
    ],
)
def test_invalid_selectors(text):
    with pytest.raises(ValueError):
        parse_metric_selector(text)


def test_parse_metric_selectors():
    sets = parse_metric_selectors(["up", 'down{x="y"}'])
    assert len(sets) == 2
    assert sets[0] == [Matcher(MatchType.EQUAL, "__name__", "up")]
    assert sets[1][-1].value == "down"


def test_labels_from_map_sorted():
    labels = labels_from_map({"zone": "a", "cluster": "b"})
    assert labels == (Label("cluster", "b"), Label("zone", "a"))


def test_matcher_list_add_and_str():
    matchers = MatcherList()
    matchers.add('{job="api"}')
    matchers.add("up")
    assert len(matchers) == 2
    assert str(matchers) == f"{matchers[0]},{matchers[1]},"
    assert str(matchers[0]) == 'job="api"'


def test_matcher_list_add_rejects_bad_selector():
    matchers = MatcherList()
    with pytest.raises(ValueError):
        matchers.add("{")
    assert list(matchers) == []