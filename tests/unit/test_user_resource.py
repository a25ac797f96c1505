"""
Tests for the /api/users and /api/_search/users endpoints.
"""

import pytest

from twentyonepoints.core.container import get_container
from twentyonepoints.repositories import UserSearchRepository

ALERT = "X-twentyOnePointsApp-alert"
PARAMS = "X-twentyOnePointsApp-params"
ERROR = "X-twentyOnePointsApp-error"


def create_user(client, **fields):
    response = client.post("/api/users", json=fields)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def search_repository():
    return get_container().get(UserSearchRepository)


class TestCreateUser:
    """POST /api/users"""

    def test_create(self, client):
        response = client.post(
            "/api/users",
            json={"login": "jdoe", "firstName": "John", "email": "jdoe@example.com"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["id"] is not None
        assert body["login"] == "jdoe"
        assert body["firstName"] == "John"
        assert body["createdDate"] is not None
        assert response.headers["Location"] == f"/api/users/{body['id']}"
        assert response.headers[ALERT] == "twentyOnePointsApp.user.created"
        assert response.headers[PARAMS] == str(body["id"])

    def test_create_indexes_user(self, client):
        body = create_user(client, login="jdoe")

        search = client.get("/api/_search/users", params={"query": "jdoe"}).json()

        assert [u["id"] for u in search] == [body["id"]]

    def test_create_with_id_rejected(self, client):
        response = client.post("/api/users", json={"id": 5, "login": "jdoe"})

        assert response.status_code == 400
        assert response.headers["content-type"] == "application/problem+json"
        assert response.headers[ERROR] == "error.idexists"
        assert response.headers[PARAMS] == "user"
        assert response.json()["message"] == "error.idexists"
        assert response.json()["title"] == "A new user cannot already have an ID"

    def test_create_with_id_writes_nothing(self, client):
        client.post("/api/users", json={"id": 5, "login": "jdoe"})

        assert client.get("/api/users/5").status_code == 404
        assert client.get("/api/users").headers["X-Total-Count"] == "0"
        assert client.get("/api/_search/users?query=*").json() == []

    def test_invalid_body(self, client):
        response = client.post("/api/users", json={"login": "jdoe", "activated": "maybe"})
        assert response.status_code == 400

    def test_client_timestamps_ignored(self, client):
        body = create_user(client, login="jdoe", createdDate="2000-01-01T00:00:00Z")
        assert not body["createdDate"].startswith("2000")


class TestUpdateUser:
    """PUT /api/users"""

    def test_update(self, client):
        created = create_user(client, login="jdoe", firstName="John")

        response = client.put(
            "/api/users", json={"id": created["id"], "login": "jdoe", "firstName": "Johnny"}
        )

        assert response.status_code == 200
        assert response.json()["firstName"] == "Johnny"
        assert response.headers[ALERT] == "twentyOnePointsApp.user.updated"
        assert response.headers[PARAMS] == str(created["id"])
        assert client.get(f"/api/users/{created['id']}").json()["firstName"] == "Johnny"

    def test_update_reindexes(self, client):
        created = create_user(client, login="jdoe")
        client.put("/api/users", json={"id": created["id"], "login": "renamed"})

        assert client.get("/api/_search/users?query=jdoe").json() == []
        hits = client.get("/api/_search/users?query=renamed").json()
        assert [u["id"] for u in hits] == [created["id"]]

    def test_update_without_id_creates(self, client):
        response = client.put("/api/users", json={"login": "newbie"})

        assert response.status_code == 201
        body = response.json()
        assert response.headers["Location"] == f"/api/users/{body['id']}"
        assert response.headers[ALERT] == "twentyOnePointsApp.user.created"

    def test_update_unknown_id_inserts(self, client):
        response = client.put("/api/users", json={"id": 500, "login": "ghost"})

        assert response.status_code == 200
        assert client.get("/api/users/500").json()["login"] == "ghost"

    def test_failed_indexing_returns_500_and_keeps_store(
        self, client, search_repository, monkeypatch
    ):
        created = create_user(client, login="jdoe")

        async def failing(entity):
            raise RuntimeError("index down")

        monkeypatch.setattr(search_repository, "save", failing)
        response = client.put("/api/users", json={"id": created["id"], "login": "changed"})

        assert response.status_code == 500
        assert client.get(f"/api/users/{created['id']}").json()["login"] == "jdoe"


class TestGetUsers:
    """GET /api/users and /api/users/{id}"""

    def test_get_user(self, client):
        created = create_user(client, login="jdoe", authorities=["ROLE_USER"])

        response = client.get(f"/api/users/{created['id']}")

        assert response.status_code == 200
        assert response.json()["login"] == "jdoe"
        assert response.json()["authorities"] == ["ROLE_USER"]

    def test_get_user_equals_created(self, client):
        created = create_user(
            client,
            login="jdoe",
            firstName="John",
            lastName="Doe",
            email="jdoe@example.com",
            activated=True,
            langKey="en",
            authorities=["ROLE_USER", "ROLE_ADMIN"],
        )

        assert client.get(f"/api/users/{created['id']}").json() == created

    def test_get_missing_user(self, client):
        response = client.get("/api/users/9999")

        assert response.status_code == 404
        assert response.content == b""

    def test_get_non_numeric_id(self, client):
        assert client.get("/api/users/abc").status_code == 400

    def test_list_with_pagination_headers(self, client):
        for i in range(5):
            create_user(client, login=f"user{i}")

        response = client.get("/api/users?page=1&size=2")

        assert response.status_code == 200
        assert [u["login"] for u in response.json()] == ["user2", "user3"]
        assert response.headers["X-Total-Count"] == "5"
        link = response.headers["Link"]
        assert '</api/users?page=2&size=2>; rel="next"' in link
        assert '</api/users?page=0&size=2>; rel="prev"' in link
        assert '</api/users?page=2&size=2>; rel="last"' in link
        assert '</api/users?page=0&size=2>; rel="first"' in link

    def test_list_default_page(self, client):
        create_user(client, login="jdoe")

        response = client.get("/api/users")

        assert len(response.json()) == 1
        assert 'rel="next"' not in response.headers["Link"]
        assert '</api/users?page=0&size=20>; rel="first"' in response.headers["Link"]

    def test_list_sorted(self, client):
        create_user(client, login="b")
        create_user(client, login="c")
        create_user(client, login="a")

        response = client.get("/api/users?sort=login,desc")

        assert [u["login"] for u in response.json()] == ["c", "b", "a"]

    def test_list_empty(self, client):
        response = client.get("/api/users")

        assert response.json() == []
        assert response.headers["X-Total-Count"] == "0"

    def test_list_unknown_sort_property(self, client):
        assert client.get("/api/users?sort=password").status_code == 400

    def test_list_invalid_page(self, client):
        assert client.get("/api/users?page=-1").status_code == 400


class TestDeleteUser:
    """DELETE /api/users/{id}"""

    def test_delete(self, client):
        created = create_user(client, login="jdoe")

        response = client.delete(f"/api/users/{created['id']}")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers[ALERT] == "twentyOnePointsApp.user.deleted"
        assert response.headers[PARAMS] == str(created["id"])
        assert client.get(f"/api/users/{created['id']}").status_code == 404
        assert client.get("/api/_search/users?query=jdoe").json() == []

    def test_delete_absent_user_is_ok(self, client):
        create_user(client, login="jdoe")

        response = client.delete("/api/users/424242")

        assert response.status_code == 200
        assert client.get("/api/users").headers["X-Total-Count"] == "1"


class TestSearchUsers:
    """GET /api/_search/users"""

    def test_search(self, client):
        jdoe = create_user(client, login="jdoe", firstName="John", lastName="Doe")
        create_user(client, login="jane", firstName="Jane", lastName="Roe")

        response = client.get("/api/_search/users", params={"query": "lastName:doe"})

        assert response.status_code == 200
        assert [u["id"] for u in response.json()] == [jdoe["id"]]
        assert response.headers["X-Total-Count"] == "1"

    def test_search_links_keep_query(self, client):
        for i in range(3):
            create_user(client, login=f"user{i}", lastName="Smith")

        response = client.get("/api/_search/users?query=smith&page=0&size=2")

        assert len(response.json()) == 2
        assert response.headers["X-Total-Count"] == "3"
        assert (
            '</api/_search/users?page=1&size=2&query=smith>; rel="next"'
            in response.headers["Link"]
        )

    def test_search_boolean_query(self, client):
        create_user(client, login="admin", activated=True)
        create_user(client, login="guest", activated=False)

        hits = client.get("/api/_search/users", params={"query": "activated:true"}).json()

        assert [u["login"] for u in hits] == ["admin"]

    def test_search_no_hits(self, client):
        create_user(client, login="jdoe")

        response = client.get("/api/_search/users?query=nobody")

        assert response.json() == []
        assert response.headers["X-Total-Count"] == "0"

    def test_search_requires_query(self, client):
        assert client.get("/api/_search/users").status_code == 400

    def test_blank_query(self, client):
        assert client.get("/api/_search/users?query=").status_code == 400

    def test_malformed_query(self, client):
        response = client.get("/api/_search/users", params={"query": "login:(jdoe"})

        assert response.status_code == 400
        assert "Failed to parse query" in response.json()["error"]


class TestOutOfRangeNumbers:
    """Numbers a 64-bit SQL integer cannot hold are bad requests."""

    HUGE = 99999999999999999999999

    def test_get(self, client):
        assert client.get(f"/api/users/{self.HUGE}").status_code == 400

    def test_delete(self, client):
        assert client.delete(f"/api/users/{self.HUGE}").status_code == 400

    def test_put(self, client):
        response = client.put("/api/users", json={"id": self.HUGE, "login": "jdoe"})
        assert response.status_code == 400

    def test_page(self, client):
        assert client.get(f"/api/users?page={self.HUGE}").status_code == 400

    def test_search_page(self, client):
        response = client.get(f"/api/_search/users?query=jdoe&page={self.HUGE}")
        assert response.status_code == 400

    def test_largest_id_is_not_found(self, client):
        assert client.get(f"/api/users/{2**63 - 1}").status_code == 404
