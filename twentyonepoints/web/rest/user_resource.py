from typing import Optional

from twentyonepoints.config.properties import get_config
from twentyonepoints.core.instrumentation import Timed
from twentyonepoints.core.logging import get_logger
from twentyonepoints.data.pagination import Pageable
from twentyonepoints.domain import User
from twentyonepoints.exceptions import BadRequestAlertException
from twentyonepoints.repositories import UserRepository, UserSearchRepository
from twentyonepoints.service import UserService
from twentyonepoints.web.headers import (
    HeaderUtil,
    generate_pagination_headers,
    generate_search_pagination_headers,
)
from twentyonepoints.web.mappings import (
    DeleteMapping,
    GetMapping,
    PostMapping,
    PutMapping,
    RestController,
)
from twentyonepoints.web.params import PathVariable, QueryParam, RequestBody
from twentyonepoints.web.response import ResponseEntity

logger = get_logger(__name__)

ENTITY_NAME = "user"

API_ROOT = "/api"


@RestController(API_ROOT)
class UserResource:
    """REST controller for managing User."""

    def __init__(
        self,
        user_repository: UserRepository,
        user_search_repository: UserSearchRepository,
        user_service: UserService,
        header_util: Optional[HeaderUtil] = None,
    ):
        self.user_repository = user_repository
        self.user_search_repository = user_search_repository
        self.user_service = user_service
        self.header_util = header_util or HeaderUtil(
            get_config().get("application.name", "twentyOnePointsApp")
        )

    @PostMapping("/users")
    @Timed()
    async def create_user(self, user: User = RequestBody()) -> ResponseEntity:
        """
        POST /users : Create a new user.

        Returns 201 with the new user and its Location, or 400 if the
        user already has an id.
        """
        logger.debug(f"REST request to save User : {user}")
        if user.id is not None:
            raise BadRequestAlertException(
                "A new user cannot already have an ID", ENTITY_NAME, "idexists"
            )
        result = await self.user_service.save(user)
        return ResponseEntity.created(
            result,
            headers={
                "Location": f"{API_ROOT}/users/{result.id}",
                **self.header_util.entity_creation_alert(ENTITY_NAME, str(result.id)),
            },
        )

    @PutMapping("/users")
    @Timed()
    async def update_user(self, user: User = RequestBody()) -> ResponseEntity:
        """
        PUT /users : Update an existing user.

        A user without an id is created instead, exactly as by POST.
        """
        logger.debug(f"REST request to update User : {user}")
        if user.id is None:
            return await self.create_user(user)
        result = await self.user_service.save(user)
        return ResponseEntity.ok(
            result,
            headers=self.header_util.entity_update_alert(ENTITY_NAME, str(user.id)),
        )

    @GetMapping("/users")
    @Timed()
    async def get_all_users(self, pageable: Pageable) -> ResponseEntity:
        """GET /users : one page of users, with pagination headers."""
        logger.debug("REST request to get a page of Users")
        page = await self.user_repository.find_all(pageable)
        headers = generate_pagination_headers(page, f"{API_ROOT}/users")
        return ResponseEntity.ok(page.content, headers=headers)

    @GetMapping("/users/{id}")
    @Timed()
    async def get_user(self, id: int = PathVariable()) -> ResponseEntity:
        """GET /users/:id : the user, or 404 with an empty body."""
        logger.debug(f"REST request to get User : {id}")
        user = await self.user_repository.find_by_id(id)
        return ResponseEntity.wrap_or_not_found(user)

    @DeleteMapping("/users/{id}")
    @Timed()
    async def delete_user(self, id: int = PathVariable()) -> ResponseEntity:
        """DELETE /users/:id : remove the user from the store and the index."""
        logger.debug(f"REST request to delete User : {id}")
        deleted = await self.user_service.delete(id)
        if not deleted:
            logger.debug(f"User {id} was not stored, nothing deleted")
        return ResponseEntity.ok(
            headers=self.header_util.entity_deletion_alert(ENTITY_NAME, str(id))
        )

    @GetMapping("/_search/users")
    @Timed()
    async def search_users(
        self, pageable: Pageable, query: str = QueryParam()
    ) -> ResponseEntity:
        """GET /_search/users?query=:query : one page of matching users."""
        logger.debug(f"REST request to search for a page of Users for query {query}")
        page = await self.user_search_repository.search(query, pageable)
        headers = generate_search_pagination_headers(
            query, page, f"{API_ROOT}/_search/users"
        )
        return ResponseEntity.ok(page.content, headers=headers)
