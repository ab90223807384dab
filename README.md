# tsj

A small toolkit for building HTTP services on Flask. It gives you:

- a **runner** that starts a service in phases (infrastructure, database
  migration, startup, run, subscribers) and tears it down through shutdown
  hooks on `SIGINT`, `SIGTERM` or `request_shutdown()`;
- **handler wrappers** that bind and validate a pydantic request model, call
  your function and answer with JSON;
- **middleware** for request IDs, bearer-token authentication, "last online"
  tracking, request logging and JSON error bodies;
- a **logger** configured from the environment (console or JSON output), whose
  level can be changed at run time;
- **configuration** read from environment variables, with required values and
  defaults;
- **Redis stream** publishing and consuming;
- a small outbound **HTTP client** that forwards the request ID and turns error
  responses into `ApiError`.

Install with `pip install .`, or `pip install .[test]` to run the tests with
`pytest`.

## Modules

| Module | What it holds |
| --- | --- |
| `tsj.runner` | `Runner`, its `add_*_hook` methods, `request_shutdown`, `run`, and the `new_*_hook_option` helpers |
| `tsj.options` | `build_rest_server_option`, `build_monitor_server_option`, `default_monitor_hook`, `build_subscribe_hook` |
| `tsj.hooks` | `redis_hook`, `mongo_hook` |
| `tsj.handlers` | `wrapper`, `wrapper_any`, `wrapper_sse`, `call`, `call_any`, `call_sse`, `rest_log_field_extractor` |
| `tsj.middleware` | `error_handler`, `firebase_auth`, `update_last_online`, `request_id`, `request_logger`, `AuthProvider`, `LastOnlineProvider` |
| `tsj.context` | `RequestContext`, `current_context` |
| `tsj.responses` | `Result`, `Pagination`, `PaginationReq` |
| `tsj.validation` | `RestValidator`, `default_rest_validator` |
| `tsj.errors` | `HTTPError`, `ApiError`, `bad_request`, `internal_server_error` |
| `tsj.logger` | `Config`, `LogConfig`, `Logger`, `get_logger`, `get_logger_with_config`, `get_default_log_config` |
| `tsj.envconfig` | `EnvError`, `parse_duration`, `env_str`, `env_int`, `env_bool`, `env_duration` |
| `tsj.http_client` | `get`, `post`, `put`, `patch` |
| `tsj.event` | `EventSchema`, `unpack_event`, `consume`, the `Publisher` and `Subscriber` protocols |
| `tsj.streams` | `Message`, `StreamPublisher`, `StreamSubscriber`, `MessagePublisher`, `MessageSubscriber`, `MultiSubscriber`, `new_publisher`, `new_subscriber` |
| `tsj.redisconf` | `Config`, `PubConfig`, `SubConfig`, `new_redis` |
| `tsj.mongo` | `Config`, `connect` |
| `tsj.postgres` | `Config`, `LogLevel` |
| `tsj.firebase` | `Config`, `content_type`, `extension` |
| `tsj.server` | `Server`, `ServerConfig`, `RestServerConfig`, `MonitorServerConfig` |
| `tsj.infra` | `Infra`, holding the shared Redis and MongoDB clients |
| `tsj.pagination` | `page`, `limit`, `offset`, `DEFAULT_PAGE_ITEMS` |

## Running a service

A service is a `Runner` with hooks. A hook is a callable that takes the runner.
Hooks run in registration order within each phase; an exception from any of
them stops the run and propagates.

```python
from tsj.hooks import redis_hook
from tsj.options import (
    build_monitor_server_option,
    build_rest_server_option,
    default_monitor_hook,
)
from tsj.runner import Runner, new_infra_hook_option


def routes(runner, app, root):
    ...  # register views on the Flask app or the root Blueprint


runner = Runner(
    new_infra_hook_option("redis", redis_hook),
    build_monitor_server_option(default_monitor_hook),
    build_rest_server_option(routes),
)
runner.run()
```

`run()` blocks until the process receives `SIGINT` or `SIGTERM`, or until
`request_shutdown()` is called, then runs the shutdown hooks in order. Signal
handlers are only installed when `run()` is called from the main thread; there,
`SIGUSR2` (where the platform has it) logs a stack dump of every thread.

The REST server built by `build_rest_server_option` renders `ApiError` and
`HTTPError` as JSON, logs every request, enforces `REST_BODY_LIMIT`, answers
CORS requests when `REST_ENABLE_CORS` is true, and counts requests. The
monitor server answers `{"status":"ok"}` on its status path;
`default_monitor_hook` adds the request counts and durations, in the Prometheus
text format, on its metric path.

`redis_hook` and `mongo_hook` connect from the environment, store the client on
`runner.infra` and register a shutdown hook that closes it. Reading a client
that was never set, with `Infra.redis()` or `Infra.mongo()`, raises
`LookupError`.

## Handlers

```python
from pydantic import BaseModel

from tsj.handlers import wrapper
from tsj.responses import Result


class Hello(BaseModel):
    name: str


def hello(ctx, req: Hello) -> Result:
    return Result(data=f"hello {req.name}")


app.add_url_rule("/hello", view_func=wrapper(Hello, hello), methods=["POST"])
```

The view merges path arguments, query arguments (for `GET`, `DELETE` and
`HEAD`) and the JSON body, then validates them against the model. A request
that cannot be bound is answered with status 400 and code `-40001`; one that
fails validation with status 400 and code `-40002`. `wrapper_any` renders any
JSON value; `wrapper_sse` returns whatever response the handler builds.

## Errors

`ApiError` carries an HTTP status, a message and a custom numeric code.

```python
from tsj.errors import bad_request

err = bad_request(ValueError("name is required"))
err.to_dict()
# {"code": -40011, "message": "name is required"}
```

`internal_server_error` does the same with status 500 and code `-50011`.

## Outbound HTTP

`tsj.http_client.get`, `post`, `put` and `patch` send JSON with
`Content-Type: application/json` and the given `X-Request-Id`, and return the
decoded JSON body. A status outside 200–399 raises `ApiError` built from the
response body.

## Redis streams

`MessagePublisher.publish_message` trims the stream to `max_stream_entries`,
then appends each text as a message with a fresh UUID. `MessageSubscriber.start`
reads the topic (through a consumer group when one is configured), passes each
payload to the consume function, acknowledges it, and logs consume errors
without stopping. `MultiSubscriber` runs one such subscriber per topic on a
background thread, and `close()` raises one `RuntimeError` listing every
subscriber that failed to close.

## Pagination helpers

```python
from tsj.pagination import limit, offset, page

page(0)        # 1
limit(0)       # 50, the default page size
offset(3, 20)  # 40
```

## Environment variables

| Variable | Default | Used by |
| --- | --- | --- |
| `LOG_MODE` | `development` | logger (`production` switches to JSON without caller) |
| `LOG_LEVEL` | `DEBUG` | logger (an unknown level is reported and `info` is used) |
| `LOG_ENCODING` | `console` | logger, in development mode |
| `REST_SERVER_HOST` | required | REST server |
| `REST_SERVER_PORT` | `8080` | REST server |
| `REST_SERVER_READ_TIMEOUT` | required | REST server |
| `REST_SERVER_WRITE_TIMEOUT` | required | REST server |
| `REST_ENABLE_CORS` | `false` | REST server |
| `REST_BODY_LIMIT` | `8K` | REST server |
| `MONITOR_SERVER_HOST` | required | monitor server |
| `MONITOR_SERVER_PORT` | required | monitor server |
| `MONITOR_SERVER_METRIC_PATH` | `/metric` | monitor server |
| `MONITOR_SERVER_STATUS_PATH` | `/status` | monitor server |
| `REDIS_HOST`, `REDIS_PORT`, `REDIS_DB`, `REDIS_TTL` | required | Redis |
| `REDIS_PASSWORD` | empty | Redis |
| `REDIS_USE_TLS` | must be set, not empty | Redis |
| `REDIS_MAX_IDLE_CONNS`, `REDIS_MIN_IDLE_CONNS` | required | Redis (read, not applied to the pool) |
| `REDIS_PUB_SUB_LOGGER_DEBUG`, `REDIS_PUB_SUB_LOGGER_TRACE` | must be set, not empty | stream publisher and subscriber settings |
| `REDIS_MAX_STREAM_ENTRIES` | `200` | stream publisher |
| `REDIS_PUB_SUB_CONSUMER_GROUP_ID` | must be set, not empty | stream subscriber |
| `MONGO_URI`, `MONGO_MAX_POOL_SIZE`, `MONGO_MIN_POOL_SIZE` | required | MongoDB |
| `POSTGRES_URL`, `POSTGRES_MAX_CONNECTION`, `POSTGRES_MIN_CONNECTION`, `POSTGRES_MAX_IDLE_TIME` | required | PostgreSQL settings |
| `POSTGRES_LOG_LEVEL` | `ERROR` | PostgreSQL settings |
| `FIREBASE_CREDENTIALS_FILE`, `FIREBASE_DATABASE_URL`, `FIREBASE_STORAGE_BUCKET` | required | Firebase settings |

Durations are written like `5s`, `1m30s` or `250ms`. A missing required or
malformed variable raises `EnvError` from `tsj.envconfig`.

## What the package does not do

- It has no command-line program; services are started from your own code with
  `Runner.run()`.
- `tsj.postgres` only reads PostgreSQL settings. There is no connection pool,
  no PostgreSQL hook on the runner and no database migration step.
- `tsj.firebase` only reads Firebase settings and inspects uploaded file part
  headers. There is no Firebase client and no file upload; `firebase_auth`
  takes any object that provides `verify_id_token_and_check_revoked`.
- `Infra` holds only Redis and MongoDB clients.