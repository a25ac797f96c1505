from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil

from twentyonepoints.core.instrumentation import (
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_TOTAL,
    TIMED_CALLS_TOTAL,
    TIMED_DURATION,
)
from twentyonepoints.core.metrics_core import MetricsStorage


def process_metrics(process: Optional[psutil.Process] = None) -> Dict[str, Any]:
    """Memory and CPU figures for the current process."""
    process = process or psutil.Process()
    mem_info = process.memory_info()
    return {
        "memory_rss_bytes": mem_info.rss,
        "memory_vms_bytes": mem_info.vms,
        "cpu_percent": process.cpu_percent(interval=None),
        "threads": process.num_threads(),
    }


def format_json(
    storage: MetricsStorage, process: Optional[psutil.Process] = None
) -> Dict[str, Any]:
    """
    Nested JSON view of the registry.

    ``timers`` lists every ``@Timed`` method with its call count, failures
    and mean/max duration in milliseconds; ``http`` aggregates requests by
    route and status.
    """
    if not storage.enabled:
        return {"enabled": False, "timestamp": datetime.now(timezone.utc).isoformat()}

    return {
        "enabled": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "timers": _timers(storage),
        "http": _http(storage),
        "process": process_metrics(process),
    }


def _timers(storage: MetricsStorage) -> Dict[str, Any]:
    histogram = storage.histograms.get(TIMED_DURATION)
    calls = storage.counters.get(TIMED_CALLS_TOTAL)
    if histogram is None:
        return {}

    timers = {}
    for snapshot in sorted(histogram.snapshots(), key=lambda s: s.labels["method"]):
        method = snapshot.labels["method"]
        failures = calls.get({"method": method, "status": "failure"}) if calls else 0
        timers[method] = {
            "count": snapshot.count,
            "failures": int(failures),
            "mean_ms": round(snapshot.mean * 1000, 3),
            "max_ms": round(snapshot.max * 1000, 3),
        }
    return timers


def _http(storage: MetricsStorage) -> Dict[str, Any]:
    requests = storage.counters.get(HTTP_REQUESTS_TOTAL)
    durations = storage.histograms.get(HTTP_REQUEST_DURATION)
    if requests is None:
        return {"total_requests": 0, "routes": []}

    by_route: Dict[tuple, Dict[str, Any]] = {}
    for labels, value in requests.samples():
        key = (labels["method"], labels["path"])
        entry = by_route.setdefault(
            key,
            {"method": key[0], "path": key[1], "requests": 0, "statuses": {}},
        )
        entry["requests"] += int(value)
        entry["statuses"][labels["status"]] = int(value)

    routes: List[Dict[str, Any]] = []
    for (method, path), entry in sorted(by_route.items()):
        if durations is not None:
            snapshot = durations.snapshot({"method": method, "path": path})
            entry["mean_ms"] = round(snapshot.mean * 1000, 3)
            entry["max_ms"] = round(snapshot.max * 1000, 3)
        routes.append(entry)

    return {"total_requests": int(requests.total()), "routes": routes}


def _format_labels(labels: Dict[str, str]) -> str:
    if not labels:
        return ""
    pairs = ",".join(
        f'{name}="{_escape(value)}"' for name, value in sorted(labels.items())
    )
    return "{" + pairs + "}"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_prometheus(storage: MetricsStorage) -> str:
    """Render the registry in the Prometheus text exposition format."""
    if not storage.enabled:
        return ""

    lines: List[str] = []

    for name, counter in sorted(storage.counters.items()):
        if counter.help_text:
            lines.append(f"# HELP {name} {counter.help_text}")
        lines.append(f"# TYPE {name} counter")
        for labels, value in sorted(counter.samples(), key=lambda s: sorted(s[0].items())):
            lines.append(f"{name}{_format_labels(labels)} {value}")

    for name, histogram in sorted(storage.histograms.items()):
        if histogram.help_text:
            lines.append(f"# HELP {name} {histogram.help_text}")
        lines.append(f"# TYPE {name} histogram")
        for snapshot in histogram.snapshots():
            for upper_bound, count in snapshot.buckets:
                bucket_labels = dict(snapshot.labels, le=str(upper_bound))
                lines.append(f"{name}_bucket{_format_labels(bucket_labels)} {count}")
            inf_labels = dict(snapshot.labels, le="+Inf")
            lines.append(f"{name}_bucket{_format_labels(inf_labels)} {snapshot.count}")
            lines.append(f"{name}_sum{_format_labels(snapshot.labels)} {snapshot.total}")
            lines.append(f"{name}_count{_format_labels(snapshot.labels)} {snapshot.count}")

    return "\n".join(lines) + "\n"
