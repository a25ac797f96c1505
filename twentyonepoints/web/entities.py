from twentyonepoints.repositories import UserRepository, UserSearchRepository
from twentyonepoints.web.entity_module import EntityFeature, EntityModule
from twentyonepoints.web.rest import UserResource

TwentyOnePointsEntityModule = EntityModule(
    EntityFeature(
        name="user",
        controller=UserResource,
        repository=UserRepository,
        search_repository=UserSearchRepository,
    ),
)
