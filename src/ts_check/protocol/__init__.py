"""tsserver protocol layer.

Defines the message envelopes tsserver understands and the byte framing
used on its standard streams.

Key concepts:
- Requests: client -> tsserver, identified by `seq`
- Responses: tsserver -> client, correlated by `request_seq`
- Events: tsserver -> client, uncorrelated
- Frames: inbound messages are Content-Length prefixed, outbound are
  newline-terminated JSON
"""

from .framing import DecodeResult, FrameDecodeError, FrameDecoder, decode_frames, encode_message
from .messages import (
    AnyDiagnostic,
    CommandType,
    Diagnostic,
    DiagnosticWithLinePosition,
    Event,
    Location,
    Message,
    Request,
    Response,
    parse_diagnostic,
    parse_message,
)

__all__ = [
    # Framing
    "DecodeResult",
    "FrameDecodeError",
    "FrameDecoder",
    "decode_frames",
    "encode_message",
    # Envelopes
    "CommandType",
    "Event",
    "Message",
    "Request",
    "Response",
    "parse_message",
    # Diagnostics
    "AnyDiagnostic",
    "Diagnostic",
    "DiagnosticWithLinePosition",
    "Location",
    "parse_diagnostic",
]
