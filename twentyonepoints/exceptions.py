"""
Exception hierarchy for the TwentyOnePoints service.

Request-level problems (bad ids, unparsable bodies, invalid pagination or
search syntax) map to HTTP 400 in the route builder. Everything else
propagates and is rendered as a generic 500.
"""

from typing import Optional

PROBLEM_WITH_MESSAGE_TYPE = "http://www.jhipster.tech/problem/problem-with-message"


class TwentyOnePointsException(Exception):
    """Base class for all service exceptions."""

    pass


class RequestValidationException(TwentyOnePointsException):
    """Raised when a request cannot be bound to handler parameters."""

    pass


class InvalidPageRequestException(RequestValidationException):
    """Raised for malformed page, size or sort parameters."""

    pass


class PropertyReferenceException(RequestValidationException):
    """Raised when a sort or query references a property the entity lacks."""

    def __init__(self, entity_name: str, property_name: str):
        self.entity_name = entity_name
        self.property_name = property_name
        super().__init__(
            f"No property '{property_name}' found for type '{entity_name}'"
        )


class SearchQueryException(RequestValidationException):
    """Raised when a search query string cannot be parsed."""

    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f"Failed to parse query [{query}]: {reason}")


class BadRequestAlertException(TwentyOnePointsException):
    """
    A 400 carrying a structured alert for the client.

    Rendered as an application/problem+json body naming the entity and a
    machine-readable error key, together with failure alert headers.
    """

    def __init__(
        self,
        default_message: str,
        entity_name: str,
        error_key: str,
        problem_type: Optional[str] = None,
    ):
        super().__init__(default_message)
        self.default_message = default_message
        self.entity_name = entity_name
        self.error_key = error_key
        self.problem_type = problem_type or PROBLEM_WITH_MESSAGE_TYPE

    def to_problem(self) -> dict:
        return {
            "type": self.problem_type,
            "title": self.default_message,
            "status": 400,
            "message": f"error.{self.error_key}",
            "params": self.entity_name,
            "entityName": self.entity_name,
            "errorKey": self.error_key,
        }


class DataAccessException(TwentyOnePointsException):
    """Raised when the persistence layer is unavailable or misconfigured."""

    pass


class EntityDefinitionException(TwentyOnePointsException):
    """Raised when an @Entity class cannot be mapped to a table."""

    pass


class DependencyResolutionException(TwentyOnePointsException):
    """Raised when the container cannot build a component."""

    pass
