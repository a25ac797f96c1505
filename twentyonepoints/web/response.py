from typing import Any, Dict, Optional


class ResponseEntity:
    """
    A handler result carrying body, status and headers.

    Mirrors Spring's ResponseEntity:

        return ResponseEntity.created(user, headers={"Location": f"/api/users/{user.id}"})
    """

    def __init__(
        self,
        body: Any = None,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.body = body
        self.status = status
        self.headers: Dict[str, str] = dict(headers) if headers else {}

    def __repr__(self):
        return f"ResponseEntity(status={self.status}, headers={self.headers!r})"

    @classmethod
    def ok(cls, body: Any = None, headers: Optional[Dict[str, str]] = None):
        return cls(body, 200, headers)

    @classmethod
    def created(cls, body: Any = None, headers: Optional[Dict[str, str]] = None):
        return cls(body, 201, headers)

    @classmethod
    def not_found(cls, body: Any = None, headers: Optional[Dict[str, str]] = None):
        return cls(body, 404, headers)

    @classmethod
    def wrap_or_not_found(cls, value: Any, headers: Optional[Dict[str, str]] = None):
        """200 with ``value`` as body, or an empty 404 when it is None."""
        if value is None:
            return cls(None, 404)
        return cls(value, 200, headers)
