from twentyonepoints.domain.user import User

__all__ = ["User"]
