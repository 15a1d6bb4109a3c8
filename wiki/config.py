from dataclasses import dataclass, field
from typing import Self

import yaml

from wiki.errors import ConfigError

DEFAULT_DATABASE_URL = "sqlite:///wiki.db"
DEFAULT_MAX_POOL_SIZE = 30
DEFAULT_SERVICE_ADDRESS = "wikidb.queue"


@dataclass
class DatabaseConfig:
    """
    The connection pool configuration.

    `user`, `password` and `driver` override the matching parts of `url` when set.
    """

    url: str = DEFAULT_DATABASE_URL
    user: str | None = None
    password: str | None = None
    driver: str | None = None
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE
    queries_file: str | None = None

    @staticmethod
    def from_dict(data: dict) -> Self:
        """
        Load the database configuration from a dictionary.
        """
        config = DatabaseConfig(**data)
        if config.max_pool_size < 1:
            raise ConfigError(
                f"database.max_pool_size must be at least 1, got {config.max_pool_size}"
            )
        return config


@dataclass
class ServiceConfig:
    """
    Where the page store registers on the bus.
    """

    address: str = DEFAULT_SERVICE_ADDRESS

    @staticmethod
    def from_dict(data: dict) -> Self:
        return ServiceConfig(**data)


@dataclass
class BusConfig:
    """
    The bus transport. `local` is in-process, `http` talks to a remote store.
    """

    type: str = "local"
    base_url: str = "http://localhost:8000"
    timeout: float | None = None

    @staticmethod
    def from_dict(data: dict) -> Self:
        return BusConfig(**data)


@dataclass
class ServerConfig:
    """
    The server configuration.
    """

    port: int = 8000
    host: str = "0.0.0.0"

    @staticmethod
    def from_dict(data: dict) -> Self:
        """
        Load the server configuration from a dictionary.
        """
        return ServerConfig(**data)


@dataclass
class Config:
    """
    The configuration for the wiki page store.
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    bus: BusConfig = field(default_factory=BusConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    debug: bool = False

    @staticmethod
    def read(path: str) -> Self:
        """
        Read the configuration from a file.
        """
        with open(path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
            return Config.from_dict(data or {})

    @staticmethod
    def from_dict(data: dict) -> Self:
        """
        Load the configuration from a dictionary.
        """
        try:
            return Config(
                debug=data.get("debug", False),
                database=DatabaseConfig.from_dict(data.get("database") or {}),
                service=ServiceConfig.from_dict(data.get("service") or {}),
                bus=BusConfig.from_dict(data.get("bus") or {}),
                server=ServerConfig.from_dict(data.get("server") or {}),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
