import asyncio
import json
import logging
import threading
from collections import deque
from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from starlette.responses import StreamingResponse

router = APIRouter(prefix="/api/logs", tags=["logs"])

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class BufferedLogHandler(logging.Handler):
    """Keeps the last *maxlen* records in memory and pushes new ones to SSE listeners."""

    def __init__(self, maxlen: int = 500):
        super().__init__()
        self._buffer: deque[dict] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._listeners: list[tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = []

    def emit(self, record: logging.LogRecord):
        try:
            entry = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "name": record.name,
                "message": self.format(record),
            }
        except Exception:
            self.handleError(record)
            return
        with self._lock:
            self._buffer.append(entry)
            listeners = list(self._listeners)

        for loop, queue in listeners:
            if loop.is_closed():
                continue
            loop.call_soon_threadsafe(queue.put_nowait, entry)

    def get_buffer(self, level: Optional[str] = None) -> list[dict]:
        with self._lock:
            entries = list(self._buffer)
        if level:
            threshold = logging.getLevelName(level.upper())
            if isinstance(threshold, int):
                entries = [
                    e for e in entries if logging.getLevelName(e["level"]) >= threshold
                ]
        return entries

    def clear(self):
        with self._lock:
            self._buffer.clear()

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        with self._lock:
            self._listeners.append((asyncio.get_running_loop(), queue))
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        with self._lock:
            self._listeners = [(l, q) for l, q in self._listeners if q is not queue]


log_handler = BufferedLogHandler()
log_handler.setFormatter(logging.Formatter(LOG_FORMAT))


async def _log_stream(handler: BufferedLogHandler):
    queue = handler.subscribe()
    try:
        for entry in handler.get_buffer():
            yield f"data: {json.dumps(entry)}\n\n"
        while True:
            try:
                entry = await asyncio.wait_for(queue.get(), timeout=30)
                yield f"data: {json.dumps(entry)}\n\n"
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
    finally:
        handler.unsubscribe(queue)


@router.get("")
async def get_logs(level: Optional[str] = None):
    return {"logs": log_handler.get_buffer(level)}


@router.get("/stream")
async def stream_logs():
    return StreamingResponse(
        _log_stream(log_handler),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.delete("")
async def clear_logs():
    log_handler.clear()
    return {"success": True}
