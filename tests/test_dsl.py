from datetime import datetime

import pytest

from opsplugs.es.dsl import (
    QueryBuilder,
    build_or_query,
    build_query,
    process_escaped_chars,
)
from opsplugs.es.tokenizer import QuerySyntaxError, Token, tokenize


def test_process_escaped_chars_resolves_all_escapes():
    assert process_escaped_chars('a\\"b\\\'c\\:d\\=e\\,f') == "a\"b'c:d=e,f"


def test_process_escaped_chars_leaves_plain_text():
    assert process_escaped_chars("plain text") == "plain text"


def test_build_query_empty_raises():
    with pytest.raises(QuerySyntaxError):
        build_query([])


def test_star_matches_all():
    assert build_query(tokenize("*")) == {"match_all": {}}


def test_single_value_is_phrase_over_all_fields():
    assert build_query(tokenize("error")) == {
        "multi_match": {"query": "error", "type": "phrase", "fields": ["*"]}
    }


def test_quoted_value_is_unquoted():
    result = build_query(tokenize('"disk full"'))
    assert result["multi_match"]["query"] == "disk full"


def test_field_colon_gives_match_phrase():
    assert build_query(tokenize("level:error")) == {"match_phrase": {"level": "error"}}


def test_field_not_equal_gives_must_not():
    assert build_query(tokenize("level!=error")) == {
        "bool": {"must_not": [{"match_phrase": {"level": "error"}}]}
    }


def test_field_star_gives_exists():
    assert build_query([Token("field", "host"), Token("operator", ":"), Token("value", "*")]) == {
        "exists": {"field": "host"}
    }


def test_field_not_equal_star_gives_must_not_exists():
    result = build_query(
        [Token("field", "host"), Token("operator", "!="), Token("value", "*")]
    )
    assert result == {"bool": {"must_not": [{"exists": {"field": "host"}}]}}


def test_quoted_field_value():
    assert build_query(tokenize('msg:"disk full"')) == {"match_phrase": {"msg": "disk full"}}


def test_escaped_colon_in_field_value():
    assert build_query(tokenize("msg:a\\:b")) == {"match_phrase": {"msg": "a:b"}}


def test_and_combines_into_must():
    result = build_query(tokenize("a and b"))
    assert result == {
        "bool": {
            "must": [
                {"multi_match": {"query": "a", "type": "phrase", "fields": ["*"]}},
                {"multi_match": {"query": "b", "type": "phrase", "fields": ["*"]}},
            ]
        }
    }


def test_not_value_goes_to_must_not():
    result = build_query(tokenize("not a"))
    assert list(result["bool"]) == ["must_not"]
    assert result["bool"]["must_not"][0]["multi_match"]["query"] == "a"


def test_not_field_goes_to_must_not():
    result = build_query(tokenize("not level:error"))
    assert result == {"bool": {"must_not": [{"match_phrase": {"level": "error"}}]}}


def test_not_star_leaves_empty_bool():
    assert build_query(tokenize("not *")) == {"bool": {}}


def test_or_builds_should_with_minimum_match():
    result = build_query(tokenize("a or level:error"))
    assert result["bool"]["minimum_should_match"] == 1
    assert result["bool"]["should"] == [
        {"multi_match": {"query": "a", "type": "phrase", "fields": ["*"]}},
        {"match_phrase": {"level": "error"}},
    ]


def test_or_part_with_several_tokens_is_built_recursively():
    result = build_query(tokenize("a and b or c"))
    should = result["bool"]["should"]
    assert len(should) == 2
    assert len(should[0]["bool"]["must"]) == 2
    assert should[1]["multi_match"]["query"] == "c"


def test_group_with_or_inside_and():
    result = build_query(tokenize("(a or b) and c"))
    must = result["bool"]["must"]
    assert len(must) == 2
    assert [c["multi_match"]["query"] for c in must[0]["bool"]["should"]] == ["a", "b"]
    assert must[1]["multi_match"]["query"] == "c"


def test_single_group_unwraps():
    assert build_query(tokenize("(level:error)")) == build_query(tokenize("level:error"))


def test_empty_group_raises():
    with pytest.raises(QuerySyntaxError):
        build_query(tokenize("()"))


def test_or_query_with_only_separators_has_no_clauses():
    result = build_or_query([Token("logic", "or")])
    assert result["bool"]["should"] is None
    assert result["bool"]["minimum_should_match"] == 1


def test_parse_keyword_empty_builds_time_range_only():
    qb = QueryBuilder(index="logs")
    qb.parse_keyword("")
    assert qb.time_field == "@timestamp"
    assert qb.query == {
        "bool": {"must": [{"range": {"@timestamp": {"gte": "", "lte": ""}}}]}
    }


def test_parse_keyword_combines_query_with_range():
    qb = QueryBuilder(time_field="ts", time_format="epoch_second")
    qb.parse_keyword("level:error")
    must = qb.query["bool"]["must"]
    assert must[0] == {"match_phrase": {"level": "error"}}
    assert list(must[1]["range"]) == ["ts"]


def test_parse_keyword_unbalanced_bracket_raises():
    qb = QueryBuilder()
    with pytest.raises(QuerySyntaxError):
        qb.parse_keyword("(a and b")


def test_parse_keyword_blank_keyword_raises():
    with pytest.raises(QuerySyntaxError):
        QueryBuilder().parse_keyword("   ")


def test_format_defaults_to_iso8601():
    qb = QueryBuilder(start_time="2025-03-10 00:00:00")
    start, end = qb.format_time_values()
    assert qb.time_format == "iso8601"
    assert start == "2025-03-09T16:00:00Z"
    assert end == ""


def test_epoch_millis_value():
    qb = QueryBuilder(start_time="2025-03-10 00:00:00", time_format="epoch_millis")
    assert qb.format_time_values()[0] == "1741536000000"


def test_epoch_millis_is_thousand_times_epoch_second():
    times = dict(start_time="2025-03-10 00:00:00", end_time="2025-03-11 00:00:00")
    millis = QueryBuilder(time_format="epoch_millis", **times).format_time_values()
    seconds = QueryBuilder(time_format="epoch_second", **times).format_time_values()
    assert [int(m) for m in millis] == [int(s) * 1000 for s in seconds]
    assert int(seconds[1]) - int(seconds[0]) == 24 * 3600


def test_iso8601_round_trips_to_same_instant():
    qb = QueryBuilder(end_time="2025-03-11 00:00:00", time_format="iso8601")
    iso = qb.format_time_values()[1]
    seconds = QueryBuilder(end_time="2025-03-11 00:00:00", time_format="epoch_second")
    parsed = datetime.strptime(iso, "%Y-%m-%dT%H:%M:%S%z")
    assert int(parsed.timestamp()) == int(seconds.format_time_values()[1])


def test_unparseable_time_passes_through():
    qb = QueryBuilder(start_time="now-1h", end_time="now", time_format="epoch_millis")
    assert qb.format_time_values() == ("now-1h", "now")


def test_unknown_format_returns_raw_values():
    qb = QueryBuilder(start_time="2025-03-10 00:00:00", time_format="custom")
    assert qb.format_time_values() == ("2025-03-10 00:00:00", "")


def test_build_time_range_query_uses_formatted_values():
    qb = QueryBuilder(
        start_time="2025-03-10 00:00:00",
        end_time="2025-03-11 00:00:00",
        time_format="epoch_second",
    )
    qb.build_time_range_query()
    bounds = qb.query["bool"]["must"][0]["range"]["@timestamp"]
    assert (bounds["gte"], bounds["lte"]) == qb.format_time_values()