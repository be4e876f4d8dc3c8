# cablerelay

`cablerelay` is a library of the server-side pieces of a real-time relay that
speaks the Action Cable protocol. It contains these modules:

- `cablerelay.subscriptions`: `SubscriptionState` records which channels a
  session is subscribed to and which streams belong to each channel. It is
  thread-safe.
- `cablerelay.disconnect_queue`: `DisconnectQueue` calls
  `node.disconnect_now(session)` for queued sessions at a limited rate
  (`DisconnectQueueConfig.rate` calls per second). `shutdown()` makes the
  remaining calls one by one and raises `DisconnectTimeoutError` if it runs out
  of time. `NoopDisconnectQueue` discards sessions and only counts them.
- `cablerelay.controller`: the abstract `Controller` interface (`start`,
  `shutdown`, `authenticate`, `subscribe`, `unsubscribe`, `perform`,
  `disconnect`) and the `NodeConfig` settings.
- `cablerelay.router`: `RouterController` sends channel commands to a handler
  chosen by the channel name in the identifier and uses a default controller
  for everything else.
- `cablerelay.pubsub` and `cablerelay.redis_pubsub`: take in broadcasts over
  HTTP (`HTTPSubscriber`) or from a Redis channel, optionally through Redis
  Sentinel (`RedisSubscriber`). `new_subscriber` builds one from an adapter
  name.
- `cablerelay.server`: `HTTPServer`, which routes exact paths to handlers,
  together with `for_port`, `SSLConfig` and `health_handler`.
- `cablerelay.ws` and `cablerelay.ws_handler`: close codes (`CloseCode`,
  `is_close_error`), frame types (`FrameType`, `SentFrame`), `WSConfig`, origin
  checks (`check_origin`), header and cookie extraction
  (`DefaultHeadersExtractor`, `parse_cookies`) and connection ids
  (`fetch_uid`, `new_request_info`).
- Utilities: `MessageVerifier` checks signed stream names, `GoPool` is a
  bounded worker-thread pool, `ChannelPool` is a connection pool,
  `FixedSizeBarrier` and `RPCConfig` limit and configure RPC calls,
  `ResAggregate` collects latency statistics, `init_logger` and `LogHandler`
  set up logging, and `osutils` and `version` hold small helpers.

## Verifying signed stream names

```python
from cablerelay.message_verifier import MessageVerifier, InvalidMessageError

verifier = MessageVerifier("secret")

try:
    stream = verifier.verified(signed_name)
except InvalidMessageError:
    stream = None
```

`verified` returns the decoded string payload when its HMAC-SHA256 hex digest
matches the key. Otherwise it raises `InvalidMessageError`.

## Routing channels

```python
from cablerelay.router import RouterController, extract_channel

router = RouterController(default_controller)
router.route("ChatChannel", chat_controller)

extract_channel('{"channel":"ChatChannel","id":"42"}')  # "ChatChannel"

result = router.subscribe(sid, env, identifiers, '{"channel":"ChatChannel","id":"42"}')
```

Registering the same channel twice raises `RouteExistsError`. When a routed
handler returns `None`, the call goes on to the default controller.
`authenticate`, `disconnect`, `start` and `shutdown` always go to the default
controller.

## Receiving broadcasts over HTTP

```python
import queue
from cablerelay.pubsub import HTTPConfig, HTTPSubscriber

subscriber = HTTPSubscriber(node, HTTPConfig(port=8090, path="/_broadcast", secret="secret"))

status = subscriber.handle("POST", {"Authorization": "Bearer secret"}, body)

errors = queue.Queue()
subscriber.start(errors)   # serves on the shared HTTPServer for the port
```

`handle` returns `201` after it has passed the body to `node.handle_pubsub`.
It returns `422` for any method other than POST, and `401` when a secret is
configured and the Authorization header does not match it.

## Receiving broadcasts from Redis

```python
import queue
from cablerelay.redis_pubsub import RedisConfig, RedisSubscriber

errors = queue.Queue()
subscriber = RedisSubscriber(node, RedisConfig(url="redis://localhost:6379/5"))
subscriber.start(errors)
```

Every message on the channel is passed to `node.handle_pubsub`. When the
connection fails, the subscriber reconnects with a growing delay
(`next_retry`). After `MAX_RECONNECT_ATTEMPTS` attempts it puts an error on
the queue and stops.

## Collecting latency statistics

```python
from cablerelay.stats import ResAggregate, round_to_ms

agg = ResAggregate()
for sample in samples:          # datetime.timedelta values
    agg.add(sample)

agg.count(), agg.min(), agg.max(), agg.percentile(95)
```

`percentile` accepts values from 1 to 99 and raises `ValueError` for anything
else.

## Logging

```python
import logging
from cablerelay.logsetup import init_logger

init_logger("text", "info")
logging.getLogger("app").info("started", extra={"fields": {"context": "node"}})
```

The `text` format writes compact lines and colours them when stdout is a
terminal. The `json` format writes one JSON object per record. An unknown
level or format raises `ValueError`.

## What this package does not do

- It has no command-line program. Nothing is installed to run.
- It does not accept or speak WebSocket connections itself. `cablerelay.ws`
  defines frame types and close codes, and `cablerelay.ws_handler` inspects
  request headers, but the handshake, the sessions and the fan-out of
  broadcasts to clients must come from elsewhere.
- It contains no RPC client. `RPCConfig` and `FixedSizeBarrier` only hold
  settings and limit concurrency. Controllers that call an application backend
  have to be supplied as `Controller` implementations.
- Broadcast intake is limited to the HTTP and Redis adapters.