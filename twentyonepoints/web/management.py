import ipaddress
from typing import List, Optional

from starlette.requests import Request
from starlette.responses import PlainTextResponse

from twentyonepoints.config.properties import ConfigurationProperties
from twentyonepoints.core.logging import get_logger
from twentyonepoints.core.metrics_core import MetricsStorage
from twentyonepoints.core.metrics_formatters import format_json, format_prometheus
from twentyonepoints.version import get_version
from twentyonepoints.web.mappings import GetMapping, RestController
from twentyonepoints.web.response import ResponseEntity

logger = get_logger(__name__)


def is_ip_allowed(client_ip: Optional[str], allowed_ips: List[str]) -> bool:
    """
    Match a client address against plain IPs and CIDR ranges.

    An empty allowlist admits everyone. Addresses seen here are whatever
    the ASGI server reports, so behind a proxy they are the proxy's.
    """
    if not allowed_ips:
        return True
    if not client_ip:
        return False

    try:
        client_addr = ipaddress.ip_address(client_ip)
    except ValueError:
        return client_ip in allowed_ips

    for allowed in allowed_ips:
        if "/" in allowed:
            if client_addr in ipaddress.ip_network(allowed, strict=False):
                return True
        elif client_ip == allowed:
            return True
    return False


def create_management_controller(config: ConfigurationProperties):
    """
    Build the management controller.

    Exposes:
    - /management/info           application name, version and profile
    - {metrics.path}             nested JSON metrics, when metrics are enabled
    - {metrics.path}/prometheus  Prometheus text format, when metrics are enabled
    """
    metrics_enabled = config.get_bool("metrics.enabled")
    metrics_path = config.get("metrics.path", "/management/metrics")
    allowed_ips = config.get_list("metrics.allowed_ips")
    application_name = config.get("application.name")
    profile = config.profile

    @RestController()
    class ManagementController:
        def __init__(self, metrics_storage: MetricsStorage):
            self._storage = metrics_storage

        def _check_ip_allowed(self, request: Request) -> bool:
            client_ip = request.client.host if request.client else None
            if is_ip_allowed(client_ip, allowed_ips):
                return True
            logger.warning(f"Management access denied for IP: {client_ip}")
            return False

        @GetMapping("/management/info")
        async def get_info(self, request: Request):
            if not self._check_ip_allowed(request):
                return ResponseEntity.not_found({"error": "Not found"})
            return {
                "name": application_name,
                "version": get_version(),
                "activeProfiles": [profile] if profile else [],
            }

        if metrics_enabled:

            @GetMapping(metrics_path)
            async def get_metrics(self, request: Request):
                if not self._check_ip_allowed(request):
                    return ResponseEntity.not_found({"error": "Not found"})
                return format_json(self._storage)

            @GetMapping(f"{metrics_path}/prometheus")
            async def get_prometheus_metrics(self, request: Request):
                if not self._check_ip_allowed(request):
                    return ResponseEntity.not_found({"error": "Not found"})
                content = format_prometheus(self._storage)
                return PlainTextResponse(content, media_type="text/plain; version=0.0.4")

    return ManagementController
