from twentyonepoints.repositories.user_repository import UserRepository
from twentyonepoints.repositories.user_search_repository import UserSearchRepository

__all__ = ["UserRepository", "UserSearchRepository"]
