from twentyonepoints.web.rest.user_resource import UserResource

__all__ = ["UserResource"]
