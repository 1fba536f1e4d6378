"""SSE endpoint relaying live rate updates from a running client."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .models import InstrumentRecord

if TYPE_CHECKING:
    from .client import CanliDovizClient

logger = logging.getLogger(__name__)


def create_stream_router(client: CanliDovizClient, keepalive: float = 15.0) -> APIRouter:
    """Create a router exposing ``GET /api/stream/rates`` for ``client``.

    Mount with ``app.include_router(create_stream_router(client))``.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/rates")
    async def stream_rates(request: Request) -> StreamingResponse:
        """Snapshot of every record, then one ``rate`` event per update:

            event: snapshot
            data: {"USD": {"symbol": "USD", "buy_price": "34.5", ...}, ...}

            event: rate
            data: {"symbol": "USD", "buy_price": "34.6", ...}
        """
        return StreamingResponse(
            _rate_events(client, request, keepalive),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    return router


def _sse(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


async def _rate_events(
    client: CanliDovizClient,
    request: Request,
    keepalive: float = 15.0,
) -> AsyncGenerator[str, None]:
    """Relay the client's currency events to one HTTP subscriber.

    The listener is registered before the snapshot is taken, so an update
    racing the snapshot is sent twice rather than lost. A comment line is
    written after ``keepalive`` idle seconds, which is also when a vanished
    subscriber is noticed.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[InstrumentRecord] = asyncio.Queue()

    def relay(record: InstrumentRecord) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, record)

    client.on_currency_changed(relay)
    peer = request.client.host if request.client else "unknown"
    logger.info("SSE subscriber connected: %s", peer)
    try:
        records = client.records()
        yield _sse("snapshot", {symbol: record.to_dict() for symbol, record in records.items()})

        while not await request.is_disconnected():
            try:
                record = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield _sse("rate", record.to_dict())
        logger.info("SSE subscriber disconnected: %s", peer)
    finally:
        client.off(relay)
