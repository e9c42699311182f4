"""Wire framing for the tsserver protocol.

Framing is asymmetric:

    inbound (tsserver stdout):
        Content-Length: <byte length of body>\\r\\n
        \\r\\n
        <JSON body>

    outbound (tsserver stdin):
        <JSON body>\\n

Decoding is pure: `decode_frames` looks at the bytes accumulated so far and
reports what it could decode. `FrameDecoder` keeps the buffer between chunks
and applies the soft-fail policy: a corrupt buffer is logged and dropped,
never raised.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

ENCODING = "utf-8"

NEWLINE = b"\n"

HEADER_NAME = b"Content-Length: "

_HEADER_RE = re.compile(rb"Content-Length: (\d+)\r?\n\r?\n")

# What may follow the digits of a header that has not fully arrived yet
_PARTIAL_HEADER_TAIL_RE = re.compile(rb"\d+(?:\r?(?:\n\r?)?)?")


class FrameDecodeError(ValueError):
    """Raised (or reported) when inbound bytes cannot form a frame."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at byte {offset}")
        self.offset = offset


@dataclass
class DecodeResult:
    """Outcome of one decode pass over a buffer."""

    messages: list[Any] = field(default_factory=list)
    consumed: int = 0
    error: FrameDecodeError | None = None


def _is_partial_header(data: bytes | bytearray) -> bool:
    """Check if `data` could still grow into a complete header."""
    if len(data) <= len(HEADER_NAME):
        return HEADER_NAME.startswith(data)
    if not data.startswith(HEADER_NAME):
        return False
    return _PARTIAL_HEADER_TAIL_RE.fullmatch(data, len(HEADER_NAME)) is not None


def decode_frames(buffer: bytes | bytearray, encoding: str = ENCODING) -> DecodeResult:
    """Extract every complete frame currently available in `buffer`.

    Args:
        buffer: Bytes received from the server and not consumed yet
        encoding: Text encoding of the JSON bodies

    Returns:
        DecodeResult with the decoded JSON values in arrival order and the
        number of bytes they occupied. Incomplete trailing data is left
        unconsumed without an error. Data that can never form a frame stops
        the pass with `error` set.
    """
    result = DecodeResult()
    offset = 0

    while offset < len(buffer):
        header = _HEADER_RE.match(buffer, offset)
        if header is None:
            if not _is_partial_header(buffer[offset:]):
                result.error = FrameDecodeError("Invalid header", offset)
            break

        body_start = header.end()
        body_end = body_start + int(header.group(1))
        if len(buffer) < body_end:
            break

        try:
            message = json.loads(buffer[body_start:body_end].decode(encoding))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            result.error = FrameDecodeError(f"Invalid message body ({e})", body_start)
            break

        result.messages.append(message)
        offset = body_end
        result.consumed = offset

    return result


def encode_message(message: BaseModel | dict[str, Any], encoding: str = ENCODING) -> bytes:
    """Serialize an outbound message: compact JSON plus a single newline."""
    if isinstance(message, BaseModel):
        text = message.model_dump_json(exclude_none=True, by_alias=True)
    else:
        text = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
    return text.encode(encoding) + NEWLINE


class FrameDecoder:
    """Accumulates stdout chunks and yields complete messages.

    Usage:
        decoder = FrameDecoder()
        for chunk in chunks:
            for message in decoder.feed(chunk):
                handle(message)
    """

    def __init__(self, encoding: str = ENCODING, verbose: bool = False) -> None:
        self._encoding = encoding
        self._verbose = verbose
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet decoded."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[Any]:
        """Append a chunk and return the messages it completed."""
        self._buffer.extend(chunk)
        result = decode_frames(self._buffer, self._encoding)

        if result.error is not None:
            # Soft fail: the rest of this buffer is unrecoverable, drop it
            dropped = len(self._buffer) - result.consumed
            if self._verbose:
                logger.warning(f"Dropping {dropped} bytes of server output: {result.error}")
            else:
                logger.debug(f"Dropping {dropped} bytes of server output: {result.error}")
            self._buffer.clear()
        elif result.consumed:
            del self._buffer[: result.consumed]

        return result.messages
