from typing import Optional

from twentyonepoints.core.decorators import Service
from twentyonepoints.core.logging import get_logger
from twentyonepoints.domain import User
from twentyonepoints.repositories import UserRepository, UserSearchRepository

logger = get_logger(__name__)


@Service()
class UserService:
    """
    Writes users to the store of record, then to the search index.

    If the index write fails, the store write is undone before the error
    propagates, so the index never holds a user the store lacks and the
    store never holds a change the index missed.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        user_search_repository: UserSearchRepository,
    ):
        self.user_repository = user_repository
        self.user_search_repository = user_search_repository

    async def save(self, user: User) -> User:
        previous: Optional[User] = None
        if user.id is not None:
            previous = await self.user_repository.find_by_id(user.id)

        result = await self.user_repository.save(user)
        try:
            await self.user_search_repository.save(result)
        except Exception:
            logger.error(f"Indexing User {result.id} failed, reverting store write")
            if previous is None:
                await self.user_repository.delete_by_id(result.id)
            else:
                await self.user_repository.restore(previous)
            raise
        return result

    async def delete(self, user_id: int) -> bool:
        previous = await self.user_repository.find_by_id(user_id)
        deleted = await self.user_repository.delete_by_id(user_id)
        try:
            await self.user_search_repository.delete_by_id(user_id)
        except Exception:
            logger.error(f"Removing User {user_id} from the index failed, restoring it")
            if previous is not None:
                await self.user_repository.restore(previous)
            raise
        return deleted
