"""
Routes bus messages to the page store operations by their action header.
"""

import logging
from typing import Any, Callable

from wiki.bus.types import ACTION_HEADER, FailureCode, Message
from wiki.db.service import WikiDbService
from wiki.errors import StorageError
from wiki.types import page_lookup_to_dict, parse_date

logger = logging.getLogger(__name__)

OK = "ok"


def text(body: dict[str, Any], key: str) -> str:
    """
    The string field `key` of a request body. KeyError if missing, TypeError
    if it is not a string.
    """
    value = body[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


# action -> request body to operation arguments
DECODERS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "list_pages": lambda body: {},
    "get_page_by_id": lambda body: {"id": text(body, "id")},
    "get_page_by_name": lambda body: {"name": text(body, "name")},
    "create_page": lambda body: {
        "id": text(body, "id"),
        "name": text(body, "name"),
        "creation_date": parse_date(text(body, "creation_date")),
    },
    "save_page": lambda body: {
        "id": text(body, "id"),
        "content": text(body, "content"),
        "update_date": parse_date(text(body, "update_date")),
    },
    "delete_page": lambda body: {"id": text(body, "id")},
}

# action -> operation result to reply body
ENCODERS: dict[str, Callable[[Any], Any]] = {
    "list_pages": lambda pages: {"pages": [page.to_dict() for page in pages]},
    "get_page_by_id": page_lookup_to_dict,
    "get_page_by_name": page_lookup_to_dict,
    "create_page": lambda _: OK,
    "save_page": lambda _: OK,
    "delete_page": lambda _: OK,
}


class WikiDbServiceHandler:
    """
    Decodes requests, calls the service, and encodes replies or failures.
    """

    def __init__(self, service: WikiDbService):
        self.service = service

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} service={self.service}>"

    async def handle(self, message: Message) -> None:
        action = message.headers.get(ACTION_HEADER)
        if not action:
            logger.error(
                "No action to run for headers=%s body=%s", message.headers, message.body
            )
            message.fail(FailureCode.NO_ACTION_SPECIFIED, "No action header specified")
            return

        decode = DECODERS.get(action)
        if decode is None:
            logger.error("Bad action=%s", action)
            message.fail(FailureCode.BAD_ACTION, f"Bad action: {action}")
            return

        try:
            kwargs = decode(message.body or {})
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Malformed body for action=%s body=%s: %r", action, message.body, e)
            message.fail(FailureCode.BAD_ACTION, f"Malformed request for {action}: {e!r}")
            return

        logger.debug("Running action=%s args=%s", action, kwargs)
        try:
            result = await getattr(self.service, action)(**kwargs)
        except StorageError as e:
            message.fail(FailureCode.DB_ERROR, str(e))
            return
        message.reply(ENCODERS[action](result))
