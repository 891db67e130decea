"""Turn tokenized keyword expressions into Elasticsearch query DSL."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any

from opsplugs.es.tokenizer import QuerySyntaxError, Token, tokenize

_ESCAPES = (("\\\"", "\""), ("\\'", "'"), ("\\:", ":"), ("\\=", "="), ("\\,", ","))
_QUOTES = ('"', "'")
_LOCAL_LAYOUT = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _shanghai() -> tzinfo:
    try:
        from zoneinfo import ZoneInfo

        return ZoneInfo("Asia/Shanghai")
    except Exception:
        return timezone(timedelta(hours=8), "CST")


_SHANGHAI = _shanghai()


def process_escaped_chars(text: str) -> str:
    """Resolve the backslash escapes allowed in keyword values."""
    for escaped, plain in _ESCAPES:
        text = text.replace(escaped, plain)
    return text


def _is_quoted(value: str) -> bool:
    return any(value.startswith(q) and value.endswith(q) for q in _QUOTES)


def _unquote(value: str) -> str:
    return value[1:-1] if _is_quoted(value) else value


def _phrase_query(value: str) -> dict:
    return {
        "multi_match": {
            "query": _unquote(value),
            "type": "phrase",
            "fields": ["*"],
        }
    }


def _must_not(clause: dict) -> dict:
    return {"bool": {"must_not": [clause]}}


def _field_clause(field_name: str, operator: str, value: str) -> dict | None:
    """Clause for field/operator/value, or None for an unknown operator."""
    if value == "*":
        exists = {"exists": {"field": field_name}}
        if operator in (":", "="):
            return exists
        if operator == "!=":
            return _must_not(exists)
    if operator in (":", "="):
        return {"match_phrase": {field_name: _unquote(value)}}
    if operator == "!=":
        return _must_not({"match_phrase": {field_name: _unquote(value)}})
    return None


def _is_or(token: Token) -> bool:
    return token.type == "logic" and token.value.lower() == "or"


def build_query(tokens: list[Token]) -> dict:
    """Build a query clause from tokens; raises QuerySyntaxError when there are none."""
    if not tokens:
        raise QuerySyntaxError("空的查询标记")

    if len(tokens) == 1:
        only = tokens[0]
        if only.type == "value" and only.value == "*":
            return {"match_all": {}}
        if only.type == "group":
            return build_query(only.sub_tokens)
        if only.type == "value":
            return _phrase_query(process_escaped_chars(only.value))

    if len(tokens) == 3 and tokens[0].type == "field":
        clause = _field_clause(
            tokens[0].value, tokens[1].value, process_escaped_chars(tokens[2].value)
        )
        if clause is not None:
            return clause

    if any(_is_or(token) for token in tokens):
        return build_or_query(tokens)

    sections: dict[str, list[Any]] = {"must": [], "should": [], "must_not": []}
    current: list[Any] = []
    operator = "must"
    negate = False

    i = 0
    while i < len(tokens):
        token = tokens[i]

        if token.type == "logic":
            if current:
                sections["must_not" if negate else operator].extend(current)
                negate = False
                current = []
            operator = "should" if _is_or(token) else "must"

        elif token.type == "operator":
            if token.value in ("not", "!"):
                negate = True

        elif token.type == "field":
            if i + 2 < len(tokens) and (
                tokens[i + 1].type == "operator" or tokens[i + 1].value in (":", "=", "!=")
            ):
                clause = _field_clause(
                    token.value, tokens[i + 1].value, process_escaped_chars(tokens[i + 2].value)
                )
                if negate:
                    sections["must_not"].append(clause)
                    negate = False
                else:
                    current.append(clause)
                i += 2

        elif token.type == "group":
            clause = build_query(token.sub_tokens)
            if negate:
                sections["must_not"].append(clause)
                negate = False
            else:
                current.append(clause)

        elif token.type == "value":
            value = process_escaped_chars(token.value)
            if value == "*":
                if not negate:
                    current.append({"match_all": {}})
                negate = False
            elif negate:
                sections["must_not"].append(_phrase_query(value))
                negate = False
            else:
                current.append(_phrase_query(value))

        i += 1

    if current:
        sections["must_not" if negate else operator].extend(current)

    return {"bool": {name: clauses for name, clauses in sections.items() if clauses}}


def _split_on_or(tokens: list[Token]) -> list[list[Token]]:
    parts: list[list[Token]] = []
    part: list[Token] = []
    for token in tokens:
        if _is_or(token):
            if part:
                parts.append(part)
                part = []
        else:
            part.append(token)
    if part:
        parts.append(part)
    return parts


def build_or_query(tokens: list[Token]) -> dict:
    """Build a should-query from tokens separated by OR."""
    should: list[dict] = []
    for part in _split_on_or(tokens):
        if len(part) == 1 and part[0].type == "group":
            clause = build_query(part[0].sub_tokens)
        elif len(part) == 1 and part[0].type == "value":
            clause = _phrase_query(process_escaped_chars(part[0].value))
        elif len(part) == 3 and part[0].type == "field":
            clause = _field_clause(
                part[0].value, part[1].value, process_escaped_chars(part[2].value)
            )
        else:
            clause = build_query(part)
        if clause is not None:
            should.append(clause)

    return {"bool": {"should": should or None, "minimum_should_match": 1}}


def _parse_local(text: str) -> datetime | None:
    if not _LOCAL_LAYOUT.fullmatch(text):
        return None
    try:
        naive = datetime.strptime(text, "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None
    return naive.replace(tzinfo=_SHANGHAI)


def _epoch_seconds(moment: datetime) -> int:
    return (moment - _EPOCH) // timedelta(seconds=1)


_FORMATTERS = {
    "iso8601": lambda moment: moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    "epoch_millis": lambda moment: str(_epoch_seconds(moment) * 1000),
    "epoch_second": lambda moment: str(_epoch_seconds(moment)),
}


@dataclass
class QueryBuilder:
    """Collects search parameters and produces the query part of a search body."""

    index: str = ""
    start_time: str = ""
    end_time: str = ""
    time_field: str = ""
    time_format: str = ""
    size: int = 0
    query: dict | None = None

    def format_time_values(self) -> tuple[str, str]:
        """Convert start and end from Shanghai local time into the configured format."""
        if not self.time_format:
            self.time_format = "iso8601"
        formatter = _FORMATTERS.get(self.time_format)
        if formatter is None:
            return self.start_time, self.end_time

        def convert(text: str) -> str:
            if not text:
                return ""
            moment = _parse_local(text)
            return text if moment is None else formatter(moment)

        return convert(self.start_time), convert(self.end_time)

    def _time_range(self, start: str, end: str) -> dict:
        return {"range": {self.time_field: {"gte": start, "lte": end}}}

    def build_time_range_query(self) -> None:
        """Set the query to the time range alone."""
        if not self.time_field:
            self.time_field = "@timestamp"
        start, end = self.format_time_values()
        self.query = {"bool": {"must": [self._time_range(start, end)]}}

    def parse_keyword(self, keyword: str) -> None:
        """Set the query from a keyword expression combined with the time range."""
        if not self.time_field:
            self.time_field = "@timestamp"
        start, end = self.format_time_values()

        if not keyword:
            self.build_time_range_query()
            return

        clause = build_query(tokenize(keyword))
        self.query = {"bool": {"must": [clause, self._time_range(start, end)]}}