from twentyonepoints.service.user_service import UserService

__all__ = ["UserService"]
