from enum import Enum


class Scope(str, Enum):
    SINGLETON = "singleton"
    PROTOTYPE = "prototype"


class StereotypeType(str, Enum):
    COMPONENT = "component"
    SERVICE = "service"
    REPOSITORY = "repository"
    SEARCH_REPOSITORY = "search_repository"
    CONTROLLER = "controller"


class DatabaseAdapter(str, Enum):
    SQLALCHEMY = "sqlalchemy"
