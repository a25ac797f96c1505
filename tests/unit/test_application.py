"""
Tests for application assembly, startup and the command line.
"""

from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

from twentyonepoints.application import create_app, main, reindex_entity_module, run
from twentyonepoints.config.properties import ConfigurationProperties, get_config
from twentyonepoints.core.container import get_container
from twentyonepoints.core.metrics_core import MetricsStorage
from twentyonepoints.data import get_database_adapter
from twentyonepoints.domain import User
from twentyonepoints.exceptions import DataAccessException
from twentyonepoints.repositories import UserRepository, UserSearchRepository
from twentyonepoints.web.entities import TwentyOnePointsEntityModule


def route_paths(app):
    return {route.path for route in app.routes}


class TestCreateApp:
    """Tests for building the Starlette application."""

    def test_user_routes_registered(self, app):
        paths = route_paths(app)
        assert {"/api/users", "/api/users/{id}", "/api/_search/users"} <= paths

    def test_management_routes_registered(self, app):
        paths = route_paths(app)
        assert "/management/metrics" in paths
        assert "/management/metrics/prometheus" in paths
        assert "/management/info" in paths

    def test_management_routes_absent_when_metrics_disabled(self, app_factory):
        app = app_factory(**{"metrics.enabled": False})
        paths = route_paths(app)
        assert "/management/metrics" not in paths
        assert "/management/metrics/prometheus" not in paths
        assert "/management/info" in paths
        assert not get_container().get(MetricsStorage).enabled

    def test_info_served_when_metrics_disabled(self, app_factory):
        with TestClient(app_factory(**{"metrics.enabled": False})) as client:
            response = client.get("/management/info")
            assert response.status_code == 200
            assert response.json()["name"] == "twentyOnePointsApp"
            assert client.get("/management/metrics").status_code == 404

    def test_custom_metrics_path(self, app_factory):
        app = app_factory(**{"metrics.path": "/admin/metrics"})
        assert "/admin/metrics" in route_paths(app)

    def test_given_config_becomes_global(self):
        config = ConfigurationProperties(overrides={"logging.level": "WARNING"})
        create_app(config)
        assert get_config() is config

    def test_trailing_slash_routes_optional(self, app_factory):
        app = app_factory(**{"server.ignore_trailing_slash": False})
        assert "/api/users/" not in route_paths(app)


class TestLifespan:
    """Tests for startup and shutdown."""

    def test_database_connected_while_running(self, app):
        with TestClient(app):
            assert get_database_adapter() is not None

        with pytest.raises(DataAccessException):
            get_database_adapter()

    def test_fresh_database_per_startup(self, app):
        with TestClient(app) as client:
            client.post("/api/users", json={"login": "jdoe"})
            assert client.get("/api/users").headers["X-Total-Count"] == "1"

        with TestClient(app) as client:
            assert client.get("/api/users").headers["X-Total-Count"] == "0"

    def test_info_endpoint(self, client):
        response = client.get("/management/info")

        assert response.status_code == 200
        assert response.json()["name"] == "twentyOnePointsApp"
        assert response.json()["activeProfiles"] == []

    def test_metrics_endpoint_reports_requests(self, client):
        client.get("/api/users")
        client.get("/api/users/1")

        metrics = client.get("/management/metrics").json()

        assert metrics["enabled"] is True
        paths = {route["path"] for route in metrics["http"]["routes"]}
        assert "/api/users/{id}" in paths
        timer_names = list(metrics["timers"])
        assert any(name.endswith("UserResource.get_user") for name in timer_names)

    def test_prometheus_endpoint(self, client):
        client.get("/api/users")

        response = client.get("/management/metrics/prometheus")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "http_requests_total" in response.text


class TestReindexOnStartup:
    @pytest.mark.asyncio
    async def test_reindex_entity_module(self, database):
        container = get_container()
        repository = container.get(UserRepository)
        for login in ("a", "b", "c"):
            await repository.save(User(login=login))

        assert await reindex_entity_module(TwentyOnePointsEntityModule) == 3
        assert await container.get(UserSearchRepository).count() == 3


class TestMain:
    def test_arguments_passed_to_run(self):
        with patch("twentyonepoints.application.run") as run:
            main(["--host", "0.0.0.0", "--port", "9000"])
        run.assert_called_once_with(host="0.0.0.0", port=9000)

    def test_profile_argument(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch("twentyonepoints.application.run"):
            main(["--profile", "dev"])
        assert get_config().profile == "dev"

    def test_run_starts_uvicorn(self):
        with patch("twentyonepoints.application.uvicorn.run") as uvicorn_run:
            run(port=9100)

        _, kwargs = uvicorn_run.call_args
        assert kwargs["port"] == 9100
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["log_level"] == "info"
