"""
Application assembly and startup.

``create_app`` wires configuration, logging, the database, the search
engine, metrics and every controller of the entity module into one
Starlette application. ``main`` serves it with uvicorn.
"""

import argparse
import contextlib
from typing import Optional

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware

from twentyonepoints.config.properties import (
    ConfigurationProperties,
    get_config,
    log_config_sources,
    set_config,
)
from twentyonepoints.core.container import get_container
from twentyonepoints.core.instrumentation import (
    RequestMetricsMiddleware,
    register_default_metrics,
)
from twentyonepoints.core.logging import configure_logging, get_logger
from twentyonepoints.core.metrics_core import MetricsStorage
from twentyonepoints.data import initialize_database, set_database_adapter
from twentyonepoints.search import SearchEngine, reindex, set_search_engine
from twentyonepoints.version import get_version
from twentyonepoints.web.entity_module import EntityModule
from twentyonepoints.web.headers import HeaderUtil
from twentyonepoints.web.management import create_management_controller
from twentyonepoints.web.parameter_binder import ParameterBinder
from twentyonepoints.web.route_builder import RouteBuilder

logger = get_logger(__name__)


async def reindex_entity_module(entity_module: EntityModule) -> int:
    """Copy every stored entity of each searchable feature into its index."""
    container = get_container()
    total = 0
    for feature in entity_module.searchable_features:
        total += await reindex(
            container.get(feature.repository),
            container.get(feature.search_repository),
        )
    return total


def create_app(
    config: Optional[ConfigurationProperties] = None,
    entity_module: Optional[EntityModule] = None,
) -> Starlette:
    """
    Build the ASGI application.

    The database and search index are brought up in the lifespan, so
    they exist once the server (or a ``TestClient`` used as a context
    manager) has started.
    """
    if config is None:
        config = get_config()
    else:
        set_config(config)

    if entity_module is None:
        from twentyonepoints.web.entities import TwentyOnePointsEntityModule

        entity_module = TwentyOnePointsEntityModule

    configure_logging(
        level=config.get("logging.level", "INFO"),
        fmt=config.get("logging.format"),
        colored=config.get_bool("logging.colored", True),
    )

    container = get_container()
    storage = container.get(MetricsStorage)
    register_default_metrics(storage)
    if config.get_bool("metrics.enabled"):
        storage.enable()
    else:
        storage.disable()

    controllers = list(entity_module.controllers)
    controllers.append(create_management_controller(config))

    route_builder = RouteBuilder(
        controllers,
        parameter_binder=ParameterBinder(
            default_page_size=config.get_int("pagination.default_size", 20),
            max_page_size=config.get_int("pagination.max_size", 2000),
        ),
        header_util=HeaderUtil(config.get("application.name")),
        ignore_trailing_slash=config.get_bool("server.ignore_trailing_slash", True),
        debug_mode=config.get_bool("server.debug"),
    )
    routes = route_builder.build_routes()

    @contextlib.asynccontextmanager
    async def lifespan(app):
        application_name = config.get("application.name")
        logger.info(f"Starting {application_name} {get_version()}")
        log_config_sources(config, logger)

        set_search_engine(SearchEngine())
        database_adapter = await initialize_database(config)
        if database_adapter is not None and config.get_bool(
            "search.reindex_on_startup", True
        ):
            await reindex_entity_module(entity_module)

        logger.info(f"{application_name} started with {len(routes)} routes")
        try:
            yield
        finally:
            if database_adapter is not None:
                await database_adapter.disconnect()
                set_database_adapter(None)
            logger.info(f"{application_name} stopped")

    return Starlette(
        debug=config.get_bool("server.debug"),
        routes=routes,
        middleware=[Middleware(RequestMetricsMiddleware, storage=storage)],
        lifespan=lifespan,
    )


def run(host: Optional[str] = None, port: Optional[int] = None):
    config = get_config()
    host = host or config.get("server.host", "127.0.0.1")
    port = port or config.get_int("server.port", 8080)

    app = create_app(config)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=config.get("logging.level", "INFO").lower(),
        access_log=config.get_bool("server.access_log"),
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="twentyonepoints", description="Serve the TwentyOnePoints user API."
    )
    parser.add_argument("--host", help="Interface to bind (default: server.host)")
    parser.add_argument("--port", type=int, help="Port to bind (default: server.port)")
    parser.add_argument("--profile", help="Configuration profile to activate")
    args = parser.parse_args(argv)

    if args.profile:
        set_config(ConfigurationProperties(profile=args.profile))

    run(host=args.host, port=args.port)
