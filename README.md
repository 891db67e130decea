# opsplugs

Four small JSON-over-HTTP services for day-to-day operations work. Each one
runs on its own, started by its own command, and is served by a threaded HTTP
server from the standard library (`opsplugs.web.Router`).

| Command          | What it does                                          | Default port |
|------------------|-------------------------------------------------------|--------------|
| `opsplugs-es`    | Search, scroll and browse Elasticsearch indices       | 8081         |
| `opsplugs-cron`  | Run local shell scripts on request, report by callback | 8081        |
| `opsplugs-eip`   | Report this host's public IP address                  | 8070         |
| `opsplugs-nacos` | Read, list and search Nacos configurations            | 8080         |

Every command takes `--port`; `opsplugs-es` and `opsplugs-nacos` also take
`--config` (default `config/config.yml`).

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Elasticsearch service

```
opsplugs-es --config config/config.yml --port 8081
```

The YAML file is optional; a missing file is ignored, a malformed one stops
the command. Its sections are `elasticsearch` (`host`, `username`,
`password`, `timeout`), `log` (`level`) and `limit` (`max_size`).
Environment variables override the file:

- `ES_HOST` (default `http://localhost:9200`)
- `ES_USERNAME` (default `elastic`)
- `ES_PASSWORD` (default empty; basic auth is sent only when both user name and password are set)
- `LOG_LEVEL` — `info` or `error` (anything else means `info`); info goes to stdout, errors to stderr
- `LIMIT_MAX_SIZE` — the largest number of hits returned (default 1000, never more than 3000)

Endpoints:

- `POST /api/elfk/search` — body with `index` (required), `start_time` and
  `end_time` (`YYYY-MM-DD HH:MM:SS`, Asia/Shanghai time, sent to
  Elasticsearch as epoch milliseconds), `time_field` (default `@timestamp`),
  `keyword` and `sort_order` (`asc` or `desc`, default `desc`). The number of
  hits is always the configured maximum. The answer holds `query_time`,
  `timed_out`, `total_hits`, `actual_hits` and `hits`.
- `GET /api/elfk/indices?index=<pattern>` — the newest ten matching index
  names (sorted by name) and the field types of the last of them.
- `POST /api/elfk/scroll` — `action` is `init`, `continue` or `clear`.
  `init` needs `index` and takes `start_time`, `end_time`, `time_field`,
  `keyword`, or else a raw `query`; also `size` (default 1000, capped by the
  limit), `scroll_time` (default `1m`), `sort` and `_source`. `continue` and
  `clear` need `scroll_id`. When `continue` returns no hits the scroll
  context is cleared and `scroll_id` comes back empty.
- `POST /api/elfk/context` — `index`, `doc_id`, `before`, `after`,
  `sort_field` (default `@timestamp`) and optional `_source`: the document
  with up to `before` documents sorted just before it and `after` just after
  it, both lists in ascending order.
- `GET /health` — plain `OK`.

Answers use `{"code": ..., "message": ..., "data": ...}`; on errors the HTTP
status equals `code`.

### Keyword syntax

- plain words and quoted phrases: `timeout`, `"connection refused"`
- field queries: `level:error`, `host="web-1"`, `status!=200`
- existence: `trace_id:*`, `trace_id!=*`
- logic: `and`, `or`, `not`, with parentheses for grouping
- `*` on its own matches everything
- `\"`, `\'`, `\:`, `\=` and `\,` escape those characters in values

The same syntax is available from Python:

```python
from opsplugs.es.tokenizer import tokenize
from opsplugs.es.dsl import QueryBuilder, build_query

query = build_query(tokenize('level:error and not "health check"'))

builder = QueryBuilder(start_time="2025-03-10 00:00:00", end_time="2025-03-11 00:00:00",
                       time_format="epoch_millis")
builder.parse_keyword("level:error")
builder.query  # the keyword clause combined with the time range
```

Unbalanced parentheses raise `opsplugs.es.tokenizer.QuerySyntaxError`.

## Script runner

```
opsplugs-cron --port 8081
```

`POST /api/task/execute` with `job_id` (non-zero), `task_name`, `task_key`
and `callback_url`. The request is accepted at once with
`{"code": 0, "msg": ..., "data": {...}}`; the script
`/data/script/<task_key>.sh` then runs with `bash` in the background. When it
ends, a JSON result with `exec_status` (1 success, 2 failure), `result`,
`error_msg`, `exec_log` (stdout followed by stderr), `start_time`, `end_time`
and `duration` in seconds is posted to `callback_url`. Task keys containing
`..`, `/` or `\` are rejected. `GET /health` answers `{"status": "ok"}`.

## Public IP service

```
opsplugs-eip --port 8070
```

`GET /api/ip` asks `ident.me`, `ipv4.icanhazip.com` and `myip.ipip.net` at
the same time and returns `{"ip": "..."}` from one that answered. If none
did, the envelope carries code 500 with HTTP status 200.

## Nacos service

```
opsplugs-nacos --config config/config.yml --port 8080
```

Settings come from the YAML file (`host`, `port`, `namespace`, `username`,
`password`, `contextPath`) and then from `NACOS_HOST`, `NACOS_PORT`,
`NACOS_NAMESPACE`, `NACOS_USERNAME`, `NACOS_PASSWORD` and
`NACOS_CONTEXT_PATH`. Defaults: `127.0.0.1:8848`, namespace `public`,
context path `/nacos`.

- `GET /api/config/get?dataId=...&group=...` (group defaults to `DEFAULT_GROUP`)
- `GET /api/config/list?pageNo=1&pageSize=10`
- `GET /api/config/search?dataId=...&group=...&pageNo=1&pageSize=10` (fuzzy match)

Answers use `{"code": 0, "msg": "success", "data": ...}`; failures answer
HTTP 500 with code 500, other methods than GET answer 405.
`opsplugs.nacos.client.NacosClient` can also be used directly.

## What it does not do

The services have no authentication of their own and no TLS. The script
runner only runs scripts when asked: it keeps no schedule, sets no time limit
on a script and stores no history beyond the callback. None of the services
write anything to disk.