"""Server-sent events over the live snapshot streams."""

import asyncio
import contextlib
import json
import logging
from typing import AsyncIterator, Callable, List, Optional

from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from app.config.settings import settings
from app.core.errors import DatabaseException

logger = logging.getLogger(__name__)


def _event(payload, event: Optional[str] = None) -> str:
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {json.dumps(payload)}\n\n"


async def snapshot_events(
    source: AsyncIterator[List[BaseModel]],
    transform: Optional[Callable[[BaseModel], BaseModel]] = None,
    heartbeat: Optional[float] = None
) -> AsyncIterator[str]:
    """One `data:` line per snapshot, comments as keep-alive while idle"""
    heartbeat = heartbeat or settings.stream_heartbeat_seconds
    pending = asyncio.ensure_future(anext(source))
    try:
        while True:
            done, _ = await asyncio.wait({pending}, timeout=heartbeat)
            if not done:
                yield ": keep-alive\n\n"
                continue
            try:
                snapshot = pending.result()
            except StopAsyncIteration:
                return
            except DatabaseException as e:
                logger.warning(f"Closing event stream: {e.message}")
                yield _event({"code": e.code.value, "message": e.message}, event="error")
                return
            items = [transform(item) if transform else item for item in snapshot]
            yield _event([item.model_dump(mode="json") for item in items])
            pending = asyncio.ensure_future(anext(source))
    finally:
        if not pending.done():
            pending.cancel()
            with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration, DatabaseException):
                await pending
        await source.aclose()


def event_stream_response(
    source: AsyncIterator[List[BaseModel]],
    transform: Optional[Callable[[BaseModel], BaseModel]] = None
) -> StreamingResponse:
    return StreamingResponse(
        snapshot_events(source, transform),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"}
    )
