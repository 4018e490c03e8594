"""Decode a streaming engine response into newline-delimited text records."""
from __future__ import annotations

import asyncio
import codecs
import logging
import time
from typing import AsyncIterator, Iterable

logger = logging.getLogger(__name__)

_END = object()


async def read_values_from_stream(
    stream: Iterable[bytes],
    stop_event: asyncio.Event | None = None,
    max_wait_seconds: float | None = None,
) -> AsyncIterator[str]:
    """Read and decode chunks from a stream, yielding each non-empty line.

    Each blocking read runs in a worker thread. The sequence ends when the
    stream is exhausted, when `stop_event` is set (checked before and after
    every read; a chunk read after the stop is discarded), or when
    `max_wait_seconds` have passed since the first read.

    Records are split per chunk only: a line broken across two chunks comes
    out as two values. Callers that need the full text must join values.
    Transport errors raised by the stream propagate to the caller.
    """
    logger.debug("reading from stream...")
    reader = iter(stream)
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    start_time = time.monotonic()

    while True:
        if stop_event is not None and stop_event.is_set():
            logger.warning("listener stopped, exiting early")
            break

        chunk = await asyncio.to_thread(next, reader, _END)
        if chunk is _END:
            logger.debug("stream ended")
            break
        if stop_event is not None and stop_event.is_set():
            logger.warning("listener stopped, exiting early")
            break
        if not chunk:
            logger.debug("got empty value from stream")
            continue

        value_string = decoder.decode(chunk) if isinstance(chunk, bytes) else str(chunk)
        if not value_string:
            logger.debug("empty string decoded from stream")
            continue

        if max_wait_seconds and time.monotonic() - start_time > max_wait_seconds:
            logger.error("timed out reading from stream")
            break

        # a single chunk may carry several records
        for value in value_string.split("\n"):
            if stop_event is not None and stop_event.is_set():
                logger.warning("listener stopped, exiting early")
                return
            value = value.rstrip("\r")
            if not value.strip():
                continue
            yield value
