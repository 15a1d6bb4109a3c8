"""
Statement resource for the page store.
"""

import enum
import logging
from pathlib import Path

import yaml

from wiki.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_QUERIES_FILE = Path(__file__).parent / "queries.yaml"


class SqlQuery(enum.Enum):
    """
    The statements the page store needs, by their key in the resource.
    """

    CREATE_PAGES_TABLE = "create-pages-table"
    ALL_PAGES = "all-pages"
    GET_PAGE_BY_ID = "get-page-by-id"
    GET_PAGE_BY_NAME = "get-page-by-name"
    CREATE_PAGE = "create-page"
    SAVE_PAGE = "save-page"
    DELETE_PAGE = "delete-page"


def load_queries(path: str | Path | None = None) -> dict[SqlQuery, str]:
    """
    Load the statements from a YAML file, or the bundled default when no path is given.
    """
    path = Path(path) if path else DEFAULT_QUERIES_FILE
    logger.info("Loading statements from path=%s", path)
    try:
        with open(path, "r", encoding="utf-8") as fd:
            data = yaml.safe_load(fd) or {}
    except OSError as e:
        raise ConfigError(f"Could not read statements file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Statements file {path} must be a mapping of key to statement")

    missing = [query.value for query in SqlQuery if not data.get(query.value)]
    if missing:
        raise ConfigError(f"Statements file {path} is missing keys: {', '.join(missing)}")

    return {query: data[query.value] for query in SqlQuery}
