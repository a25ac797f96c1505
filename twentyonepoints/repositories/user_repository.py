from twentyonepoints.data import CrudRepository
from twentyonepoints.domain import User


@CrudRepository(entity=User)
class UserRepository:
    """
    Repository for User entities.

    All CRUD and paging methods are generated by @CrudRepository.
    """

    pass
