import asyncio
import functools
import time
from typing import Callable, Optional

from starlette.routing import Match

from twentyonepoints.core.container import get_container
from twentyonepoints.core.metrics_core import MetricsStorage

HTTP_REQUESTS_TOTAL = "http_requests_total"
HTTP_REQUEST_DURATION = "http_request_duration_seconds"
TIMED_CALLS_TOTAL = "timed_calls_total"
TIMED_DURATION = "timed_duration_seconds"


def register_default_metrics(storage: MetricsStorage):
    storage.counter(HTTP_REQUESTS_TOTAL, "Total HTTP requests")
    storage.histogram(HTTP_REQUEST_DURATION, "HTTP request duration")
    storage.counter(TIMED_CALLS_TOTAL, "Total calls of @Timed methods")
    storage.histogram(TIMED_DURATION, "Duration of @Timed methods")


def record_timed_call(
    storage: MetricsStorage, name: str, duration_sec: float, error: bool = False
):
    if not storage.enabled:
        return
    status = "failure" if error else "success"
    storage.counter(TIMED_CALLS_TOTAL).inc({"method": name, "status": status})
    storage.histogram(TIMED_DURATION).observe(duration_sec, {"method": name})


def Timed(name: Optional[str] = None):
    """
    Record call count and duration of a method.

    The metric is labelled with ``name`` or, by default, the method's
    module-qualified name. Works for both sync and async callables; the
    storage is looked up at call time so the decorator can be applied at
    import.

    Example:
        @GetMapping("/users/{id}")
        @Timed()
        async def get_user(self, id: int = PathVariable()):
            ...
    """

    def decorator(method: Callable):
        metric_name = name or f"{method.__module__}.{method.__qualname__}"

        if asyncio.iscoroutinefunction(method):

            @functools.wraps(method)
            async def async_wrapper(*args, **kwargs):
                storage = get_container().get(MetricsStorage)
                start_time = time.perf_counter()
                error_occurred = False
                try:
                    return await method(*args, **kwargs)
                except Exception:
                    error_occurred = True
                    raise
                finally:
                    record_timed_call(
                        storage,
                        metric_name,
                        time.perf_counter() - start_time,
                        error_occurred,
                    )

            async_wrapper.__timed_name__ = metric_name
            return async_wrapper

        @functools.wraps(method)
        def sync_wrapper(*args, **kwargs):
            storage = get_container().get(MetricsStorage)
            start_time = time.perf_counter()
            error_occurred = False
            try:
                return method(*args, **kwargs)
            except Exception:
                error_occurred = True
                raise
            finally:
                record_timed_call(
                    storage, metric_name, time.perf_counter() - start_time, error_occurred
                )

        sync_wrapper.__timed_name__ = metric_name
        return sync_wrapper

    return decorator


def route_template(scope) -> str:
    """The matched route's path template, or the raw path when none matched."""
    router = scope.get("router")
    for route in getattr(router, "routes", []):
        match, _ = route.matches(scope)
        if match == Match.FULL:
            return route.path
    return scope.get("path", "/")


class RequestMetricsMiddleware:
    """ASGI middleware counting requests and their duration per route."""

    def __init__(self, app, storage: MetricsStorage):
        self.app = app
        self.storage = storage

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not self.storage.enabled:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "UNKNOWN")
        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            path = route_template(scope)
            duration_sec = time.perf_counter() - start_time
            self.storage.counter(HTTP_REQUESTS_TOTAL).inc(
                {"method": method, "path": path, "status": str(status_code)}
            )
            self.storage.histogram(HTTP_REQUEST_DURATION).observe(
                duration_sec, {"method": method, "path": path}
            )
