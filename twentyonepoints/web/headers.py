"""
Alert and pagination headers read by the generated client.

Alert headers tell the UI which translated message to show after a
mutation; pagination headers carry the total count and RFC 5988 links.
"""

from typing import Dict
from urllib.parse import quote

from twentyonepoints.data.pagination import Page

DEFAULT_APPLICATION_NAME = "twentyOnePointsApp"


class HeaderUtil:
    def __init__(self, application_name: str = DEFAULT_APPLICATION_NAME):
        self.application_name = application_name

    @property
    def alert_header(self) -> str:
        return f"X-{self.application_name}-alert"

    @property
    def error_header(self) -> str:
        return f"X-{self.application_name}-error"

    @property
    def params_header(self) -> str:
        return f"X-{self.application_name}-params"

    def alert(self, message: str, param: str) -> Dict[str, str]:
        return {self.alert_header: message, self.params_header: param}

    def entity_creation_alert(self, entity_name: str, param: str) -> Dict[str, str]:
        return self.alert(f"{self.application_name}.{entity_name}.created", param)

    def entity_update_alert(self, entity_name: str, param: str) -> Dict[str, str]:
        return self.alert(f"{self.application_name}.{entity_name}.updated", param)

    def entity_deletion_alert(self, entity_name: str, param: str) -> Dict[str, str]:
        return self.alert(f"{self.application_name}.{entity_name}.deleted", param)

    def failure_alert(self, entity_name: str, error_key: str) -> Dict[str, str]:
        return {self.error_header: f"error.{error_key}", self.params_header: entity_name}


def _page_uri(base_url: str, page: int, size: int) -> str:
    return f"{base_url}?page={page}&size={size}"


def _link_header(page: Page, build_uri) -> str:
    links = []
    if page.number + 1 < page.total_pages:
        links.append(f'<{build_uri(page.number + 1)}>; rel="next"')
    if page.number > 0:
        links.append(f'<{build_uri(page.number - 1)}>; rel="prev"')
    last_page = page.total_pages - 1 if page.total_pages > 0 else 0
    links.append(f'<{build_uri(last_page)}>; rel="last"')
    links.append(f'<{build_uri(0)}>; rel="first"')
    return ",".join(links)


def generate_pagination_headers(page: Page, base_url: str) -> Dict[str, str]:
    """``X-Total-Count`` plus next/prev/last/first links for ``base_url``."""
    size = page.size

    def build_uri(number: int) -> str:
        return _page_uri(base_url, number, size)

    return {
        "X-Total-Count": str(page.total_elements),
        "Link": _link_header(page, build_uri),
    }


def generate_search_pagination_headers(
    query: str, page: Page, base_url: str
) -> Dict[str, str]:
    """Like ``generate_pagination_headers`` with the query kept in every link."""
    size = page.size
    escaped_query = quote(query, safe="")

    def build_uri(number: int) -> str:
        return f"{_page_uri(base_url, number, size)}&query={escaped_query}"

    return {
        "X-Total-Count": str(page.total_elements),
        "Link": _link_header(page, build_uri),
    }
