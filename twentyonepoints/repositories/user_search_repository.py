from twentyonepoints.domain import User
from twentyonepoints.search import SearchRepository


@SearchRepository(entity=User)
class UserSearchRepository:
    """Search index mirror of the User table."""

    pass
