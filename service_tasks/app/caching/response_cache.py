"""
Cache-aside response cache for read endpoints.

Read handlers are wrapped with ``cached(scope, ttl)``: a GET whose key is
present is answered from the store without running the handler, otherwise the
handler runs and a successful body is stored in the background. Mutating
handlers are wrapped with ``invalidates(*scopes)``, which drops every key under
the given scopes once the mutation succeeds.

Caching is best effort. Store errors are logged and counted, then treated as
a miss (reads) or a no-op (writes and invalidation). A reader racing an
in-flight write can repopulate a stale entry after invalidation has run; that
entry lives at most one TTL.
"""

import functools
import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTasks

from shared.logging import get_logger
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CACHE_HEADER = "X-Cache"
CACHEABLE_METHODS = frozenset({"GET"})

Endpoint = Callable[..., Awaitable[Any]]


def _request_param_name(func: Endpoint) -> str:
    for name, param in inspect.signature(func).parameters.items():
        if param.annotation is Request or param.annotation == "Request":
            return name
    raise TypeError(f"{func.__qualname__} must declare a Request parameter to be cached")


def _as_response(result: Any) -> Response:
    """Render a handler result the way FastAPI would for a JSON route."""
    if isinstance(result, Response):
        return result
    return JSONResponse(content=jsonable_encoder(result))


class ResponseCache:
    """Read-through cache of JSON response bodies, grouped by scope."""

    def __init__(self, store: CacheStore, *, metrics: Optional["MetricsCollector"] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("tasks.cache")

    @staticmethod
    def scope_prefix(scope: str) -> str:
        """Prefix shared by every key of a scope."""
        return f"{scope}:"

    def build_key(self, scope: str, request: Request) -> str:
        """Key for a request: scope plus full path including the query string."""
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        return f"{self.scope_prefix(scope)}{path}"

    async def lookup(self, scope: str, key: str) -> Optional[bytes]:
        """Return the cached body, or None on a miss or store failure."""
        try:
            body = await self.store.get(key)
        except Exception as exc:
            self.logger.error("Cache fetch error", key=key, error=str(exc))
            self._record("cache_requests_total", scope, "error")
            return None

        if body is None:
            self.logger.debug("Cache miss", key=key)
            self._record("cache_requests_total", scope, "miss")
            return None

        self.logger.debug("Cache hit", key=key)
        self._record("cache_requests_total", scope, "hit")
        return body

    async def store_body(self, key: str, body: bytes, ttl_seconds: int) -> bool:
        """Store a response body; failures are logged, never raised."""
        try:
            await self.store.set(key, body, ttl_seconds)
        except Exception as exc:
            self.logger.error("Cache set error", key=key, error=str(exc))
            return False

        self.logger.debug("Cached response", key=key, ttl=ttl_seconds)
        return True

    async def invalidate(self, *scopes: str) -> int:
        """Remove every entry under the given scopes; never raises."""
        removed = 0
        for scope in scopes:
            prefix = self.scope_prefix(scope)
            try:
                count = await self.store.delete_prefix(prefix)
            except Exception as exc:
                # Entries left behind expire within one TTL
                self.logger.error("Cache invalidation error", scope=scope, error=str(exc))
                self._record("cache_invalidations_total", scope, "error")
                continue

            removed += count
            self._record("cache_invalidations_total", scope, "ok")
            self.logger.info("Invalidated cache scope", scope=scope, keys_count=count)
        return removed

    def cached(self, scope: str, ttl_seconds: int) -> Callable[[Endpoint], Endpoint]:
        """Serve GET responses of the decorated endpoint from the cache."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        def decorator(func: Endpoint) -> Endpoint:
            request_param = _request_param_name(func)

            @functools.wraps(func)
            async def wrapper(*args, **kwargs):
                request: Request = kwargs[request_param]
                if request.method not in CACHEABLE_METHODS:
                    self._record("cache_requests_total", scope, "bypass")
                    return await func(*args, **kwargs)

                key = self.build_key(scope, request)
                body = await self.lookup(scope, key)
                if body is not None:
                    return Response(
                        content=body,
                        status_code=200,
                        media_type="application/json",
                        headers={CACHE_HEADER: "HIT"},
                    )

                response = _as_response(await func(*args, **kwargs))
                response.headers[CACHE_HEADER] = "MISS"
                rendered = getattr(response, "body", None)
                if 200 <= response.status_code < 300 and isinstance(rendered, (bytes, bytearray)):
                    # Populate after the response is sent
                    tasks = BackgroundTasks()
                    if response.background is not None:
                        tasks.add_task(response.background)
                    tasks.add_task(self.store_body, key, bytes(rendered), ttl_seconds)
                    response.background = tasks
                return response

            return wrapper

        return decorator

    def invalidates(self, *scopes: str) -> Callable[[Endpoint], Endpoint]:
        """Invalidate ``scopes`` after the decorated endpoint succeeds."""
        if not scopes:
            raise ValueError("at least one scope is required")

        def decorator(func: Endpoint) -> Endpoint:
            @functools.wraps(func)
            async def wrapper(*args, **kwargs):
                result = await func(*args, **kwargs)
                if getattr(result, "status_code", 200) < 400:
                    await self.invalidate(*scopes)
                return result

            return wrapper

        return decorator

    def _record(self, metric: str, scope: str, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric, scope=scope, result=result)
