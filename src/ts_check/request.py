"""Semantic diagnostics request.

Opens a file in tsserver and asks for its semantic diagnostics, then waits
for the one response answering that request.

The listener is registered before anything is sent. Registering may launch
tsserver if the session has no other listeners; once the response arrives
the listener is released, which may stop tsserver again.
"""

from __future__ import annotations

import asyncio
import logging

from .protocol.messages import AnyDiagnostic, Request, Response, parse_diagnostic
from .session import TsServerSession
from .transport import ServerProcessError

logger = logging.getLogger(__name__)


class ServerClosedError(ServerProcessError):
    """Raised when tsserver exits before answering a request."""


class DiagnosticsTimeoutError(TimeoutError):
    """Raised when tsserver does not answer a request in time."""

    def __init__(self, file: str, seq: int, timeout: float) -> None:
        super().__init__(f"No diagnostics for {file} (seq={seq}) after {timeout}s")
        self.file = file
        self.seq = seq
        self.timeout = timeout


async def _await_response(session: TsServerSession, *requests: Request) -> Response:
    """Send `requests` in order and return the response to the last one."""
    expected = requests[-1]

    async with session.listen() as messages:
        for request in requests:
            session.send(request)

        async for message in messages:
            if isinstance(message, Response) and message.answers(expected):
                logger.debug(f"Received {message.command} response (request_seq={message.request_seq})")
                return message

    raise ServerClosedError(f"tsserver closed before answering {expected.command} (seq={expected.seq})")


async def request_semantic_diagnostics(
    session: TsServerSession,
    file: str,
    timeout: float | None = None,
) -> Response:
    """Request semantic diagnostics for a file.

    Args:
        session: Session to send the requests through
        file: Absolute path of the file to check
        timeout: Seconds to wait for the response. None waits forever: if
            tsserver never answers, this never returns.

    Returns:
        The `semanticDiagnosticsSync` response for this file

    Raises:
        DiagnosticsTimeoutError: If `timeout` elapsed without a response
        ServerClosedError: If tsserver exited cleanly without answering
        ServerProcessError: If tsserver failed
    """
    open_request = Request.open(session.next_seq(), file)
    diagnostics_request = Request.semantic_diagnostics_sync(session.next_seq(), file)

    try:
        return await asyncio.wait_for(
            _await_response(session, open_request, diagnostics_request),
            timeout=timeout,
        )
    except TimeoutError as e:
        if timeout is None:
            raise
        raise DiagnosticsTimeoutError(file, diagnostics_request.seq, timeout) from e


def diagnostics_from_response(response: Response) -> list[AnyDiagnostic]:
    """Validate the body of a diagnostics response."""
    if not response.body:
        return []
    return [parse_diagnostic(item) for item in response.body]
