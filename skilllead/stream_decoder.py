"""Reassembles a provider's ``data:`` event stream into incremental text."""

from __future__ import annotations

import codecs
import inspect
import json
import logging
from typing import Any, AsyncIterable, Awaitable, Callable, List, Optional, Union

from .errors import DecodeSkip
from .telemetry import emit_event

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

TextCallback = Callable[[str], Union[None, Awaitable[None]]]
SkipHook = Callable[[DecodeSkip], None]


class StreamDecoder:
    """Decode one streamed provider response.

    ``feed`` accepts raw byte chunks and returns the accumulated text after
    each fragment it could parse. ``decode`` drives ``feed`` over an async
    byte stream and reports every increment to a callback with the full
    text so far. Malformed frames are skipped and counted, never fatal.
    """

    def __init__(self, on_skip: Optional[SkipHook] = None) -> None:
        self._on_skip = on_skip
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.text = ""
        self.fragments = 0
        self.skipped_frames = 0
        self.done = False

    def feed(self, chunk: bytes) -> List[str]:
        """Consume a chunk and return the accumulated text after each new fragment."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._process(lines)

    def finish(self) -> List[str]:
        """Flush the decoder at end of stream; a trailing unterminated line still counts."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return self._process([remainder])

    async def decode(
        self,
        chunks: AsyncIterable[bytes],
        on_text: Optional[TextCallback] = None,
    ) -> str:
        async for chunk in chunks:
            if self.done:
                # Keep draining so the transport can close the connection cleanly.
                continue
            for snapshot in self.feed(chunk):
                await _notify(on_text, snapshot)
        for snapshot in self.finish():
            await _notify(on_text, snapshot)

        if self.skipped_frames:
            emit_event(
                "stream_decode_completed",
                fragments=self.fragments,
                skipped_frames=self.skipped_frames,
                completed=self.done,
            )
        return self.text

    def _process(self, lines: List[str]) -> List[str]:
        snapshots: List[str] = []
        for raw in lines:
            line = raw.strip()
            if not line:
                continue
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                self.done = True
                break
            try:
                fragment = _extract_fragment(payload)
            except DecodeSkip as skip:
                self._skip(skip)
                continue
            if fragment:
                self.text += fragment
                self.fragments += 1
                snapshots.append(self.text)
        return snapshots

    def _skip(self, skip: DecodeSkip) -> None:
        self.skipped_frames += 1
        logger.debug("%s", skip)
        if self._on_skip is not None:
            self._on_skip(skip)


def _extract_fragment(payload: str) -> str:
    try:
        parsed: Any = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DecodeSkip(payload, f"invalid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise DecodeSkip(payload, "frame is not an object")
    choices = parsed.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


async def _notify(callback: Optional[TextCallback], text: str) -> None:
    if callback is None:
        return
    result = callback(text)
    if inspect.isawaitable(result):
        await result


__all__ = ["DATA_PREFIX", "DONE_SENTINEL", "StreamDecoder"]
