"""
HTTP bus transport.

`HttpBus` is the client side: it sends requests to a remote process that runs
`create_bus_app`, which forwards them to its own local bus.
"""

import json
import logging
import random
from typing import Any, Callable

import fastapi
import fastapi.responses
import httpx

from wiki.bus.types import (
    ACTION_HEADER,
    BusBase,
    DeliveryOptions,
    FailureCode,
    ReplyException,
)
from wiki.setup import trace_id_var

logger = logging.getLogger(__name__)

BUS_PATH = "/api/v1/bus"
TRACE_ID_HEADER = "x-trace-id"

FAILURE_STATUS = {
    FailureCode.NO_ACTION_SPECIFIED: 400,
    FailureCode.BAD_ACTION: 400,
    FailureCode.NO_HANDLERS: 404,
    FailureCode.TIMEOUT: 504,
}


class HttpBus(BusBase):
    """
    Sends requests to a remote bus over HTTP. Addresses are registered on the
    remote side, so this transport can not register handlers.
    """

    def __init__(
        self,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        # no default timeout, requests wait until the store answers
        self.client = httpx.AsyncClient(
            base_url=self.base_url, transport=transport, timeout=None
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} base_url={self.base_url}>"

    async def request(
        self, address: str, body: Any, options: DeliveryOptions | None = None
    ) -> Any:
        options = options or DeliveryOptions()
        headers = dict(options.headers)
        trace_id = trace_id_var.get()
        if trace_id:
            headers[TRACE_ID_HEADER] = trace_id

        url = f"{BUS_PATH}/{address}"
        logger.debug("Sending url=%s headers=%s", url, headers)
        try:
            response = await self.client.post(
                url,
                content=json.dumps(body),
                headers={"content-type": "application/json", **headers},
                timeout=options.timeout,
            )
        except httpx.TimeoutException as e:
            raise ReplyException(
                FailureCode.TIMEOUT, f"Timed out waiting for {address}: {e}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("Failed to reach url=%s: %s", url, e)
            raise ReplyException(FailureCode.TRANSPORT, str(e)) from e

        if response.status_code == 200:
            return response.json()["body"]

        try:
            data = response.json()
            failure_code = int(data["failure_code"])
            message = data["message"]
        except (ValueError, KeyError, TypeError):
            failure_code = FailureCode.TRANSPORT
            message = f"Unexpected response {response.status_code}: {response.text}"
        raise ReplyException(failure_code, message)

    async def close(self) -> None:
        await self.client.aclose()


def create_bus_app(
    bus: BusBase,
    ready: Callable[[], bool] = lambda: True,
    lifespan: Any = None,
) -> fastapi.FastAPI:
    """
    Create the FastAPI app that exposes a bus over HTTP.
    """
    app = fastapi.FastAPI(title="Wiki page store", lifespan=lifespan)  # type: ignore

    @app.middleware("http")
    async def set_trace_id(request: fastapi.Request, call_next):
        def new_trace_id():
            return f"{random.getrandbits(64):016x}"

        trace_id = request.headers.get(TRACE_ID_HEADER) or new_trace_id()
        request.state.trace_id = trace_id
        token = trace_id_var.set(trace_id)
        try:
            return await call_next(request)
        finally:
            trace_id_var.reset(token)

    @app.post(BUS_PATH + "/{address}")
    async def send(request: fastapi.Request, address: str):
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            return fastapi.responses.JSONResponse(
                ReplyException(FailureCode.BAD_ACTION, "Body is not JSON").to_dict(),
                status_code=400,
            )

        headers = {}
        if ACTION_HEADER in request.headers:
            headers[ACTION_HEADER] = request.headers[ACTION_HEADER]

        try:
            reply = await bus.request(address, body, DeliveryOptions(headers=headers))
        except ReplyException as e:
            logger.debug("Request to address=%s failed: %r", address, e)
            return fastapi.responses.JSONResponse(
                e.to_dict(), status_code=FAILURE_STATUS.get(e.failure_code, 500)
            )
        return fastapi.responses.JSONResponse({"body": reply})

    @app.get("/api/v1/health")
    def health():
        if not ready():
            return fastapi.responses.JSONResponse(
                {"status": "starting"}, status_code=503
            )
        return fastapi.responses.JSONResponse({"status": "ok"})

    return app
