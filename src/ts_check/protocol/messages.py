"""Message definitions for the tsserver protocol.

tsserver speaks in three envelope kinds, all sharing a `type` field:
- request: sent by the client, carries a `seq` and a `command`
- response: sent by the server, links back through `request_seq`
- event: sent by the server unprompted (project loading, telemetry, ...)

Only the fields this tool reads are declared. Everything else tsserver sends
is kept as extra fields so that nothing is lost when a message is logged or
re-serialized.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class CommandType(str, Enum):
    """tsserver commands issued by this tool."""

    OPEN = "open"
    SEMANTIC_DIAGNOSTICS_SYNC = "semanticDiagnosticsSync"


class _ProtocolModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Request(_ProtocolModel):
    """A request from client to tsserver.

    Example:
        {
            "seq": 1,
            "type": "request",
            "command": "semanticDiagnosticsSync",
            "arguments": {"file": "/abs/path/a.ts"}
        }
    """

    seq: int
    type: Literal["request"] = "request"
    command: str
    arguments: dict[str, Any] | None = None

    @classmethod
    def create(
        cls,
        seq: int,
        command: str | CommandType,
        arguments: dict[str, Any] | None = None,
    ) -> Request:
        """Factory method for creating requests."""
        return cls(
            seq=seq,
            command=command.value if isinstance(command, CommandType) else command,
            arguments=arguments,
        )

    @classmethod
    def open(cls, seq: int, file: str) -> Request:
        """Create an `open` request for a file."""
        return cls.create(seq, CommandType.OPEN, {"file": file})

    @classmethod
    def semantic_diagnostics_sync(cls, seq: int, file: str) -> Request:
        """Create a `semanticDiagnosticsSync` request for a file."""
        return cls.create(seq, CommandType.SEMANTIC_DIAGNOSTICS_SYNC, {"file": file})


class Response(_ProtocolModel):
    """A response from tsserver, correlated by `request_seq`."""

    seq: int = 0
    type: Literal["response"] = "response"
    request_seq: int
    command: str
    success: bool = True
    message: str | None = None
    body: Any = None

    def answers(self, request: Request) -> bool:
        """Check if this response belongs to the given request."""
        return self.request_seq == request.seq and self.command == request.command


class Event(_ProtocolModel):
    """An uncorrelated notification from tsserver."""

    seq: int = 0
    type: Literal["event"] = "event"
    event: str
    body: Any = None


Message = Annotated[Request | Response | Event, Field(discriminator="type")]

_message_adapter: TypeAdapter[Request | Response | Event] = TypeAdapter(Message)


def parse_message(data: Any) -> Request | Response | Event:
    """Validate a decoded JSON value into the matching envelope model.

    Raises:
        pydantic.ValidationError: If the value is not a known envelope
    """
    return _message_adapter.validate_python(data)


# =============================================================================
# Diagnostics
# =============================================================================


class Location(_ProtocolModel):
    """A 1-based line/offset position in a source file."""

    line: int
    offset: int


class _DiagnosticBase(_ProtocolModel, ABC):
    code: int | None = None
    category: str = "error"

    @property
    @abstractmethod
    def start_location(self) -> Location:
        """Where the diagnostic starts."""

    @property
    @abstractmethod
    def end_location(self) -> Location:
        """Where the diagnostic ends."""

    @property
    @abstractmethod
    def message_text(self) -> str:
        """Human-readable message."""

    @property
    def lines(self) -> tuple[int, int]:
        """First and last line the diagnostic spans."""
        return self.start_location.line, self.end_location.line

    @property
    def offsets(self) -> tuple[int, int]:
        """Offsets inside the first and last line."""
        return self.start_location.offset, self.end_location.offset

    @property
    def is_error(self) -> bool:
        return self.category == "error"


class Diagnostic(_DiagnosticBase):
    """Diagnostic record as returned for `semanticDiagnosticsSync`."""

    start: Location
    end: Location
    text: str

    @property
    def start_location(self) -> Location:
        return self.start

    @property
    def end_location(self) -> Location:
        return self.end

    @property
    def message_text(self) -> str:
        return self.text


class DiagnosticWithLinePosition(_DiagnosticBase):
    """Diagnostic record variant used when line positions are requested."""

    start_location_: Location = Field(alias="startLocation")
    end_location_: Location = Field(alias="endLocation")
    message: str

    @property
    def start_location(self) -> Location:
        return self.start_location_

    @property
    def end_location(self) -> Location:
        return self.end_location_

    @property
    def message_text(self) -> str:
        return self.message


AnyDiagnostic = Diagnostic | DiagnosticWithLinePosition


def parse_diagnostic(data: dict[str, Any]) -> AnyDiagnostic:
    """Pick the diagnostic variant by the fields present."""
    if all(key in data for key in ("start", "end", "text")):
        return Diagnostic.model_validate(data)
    return DiagnosticWithLinePosition.model_validate(data)
