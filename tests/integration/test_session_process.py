"""Integration tests for TsServerSession driving a real process.

Verifies the demand-driven lifecycle end to end:
- A process is launched for the first listener and stopped after the last
- Concurrent requests are correlated by sequence number
- Timeouts and process exits reach the waiting request
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from ts_check.checker import check_files
from ts_check.config import ServerConfig
from ts_check.fragments import Frame
from ts_check.protocol.messages import Event
from ts_check.request import (
    DiagnosticsTimeoutError,
    ServerClosedError,
    diagnostics_from_response,
    request_semantic_diagnostics,
)
from ts_check.session import TsServerSession
from ts_check.transport import ServerProcessError

pytestmark = pytest.mark.integration


def write_source(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


# =============================================================================
# Lifecycle
# =============================================================================


class TestSessionLifecycle:
    """Test process launch and shutdown driven by listeners."""

    @pytest.mark.anyio
    async def test_listener_receives_startup_event(self, server_config: ServerConfig):
        session = TsServerSession(server_config)

        async with session.listen() as messages:
            message = await asyncio.wait_for(messages.__anext__(), timeout=10.0)

        assert isinstance(message, Event)
        assert message.event == "typingsInstallerPid"
        assert session.is_running is False

    @pytest.mark.anyio
    async def test_new_process_per_active_period(self, server_config: ServerConfig):
        """Listening again after the process stopped launches a fresh one."""
        session = TsServerSession(server_config)

        async with session.listen() as messages:
            first = await asyncio.wait_for(messages.__anext__(), timeout=10.0)
        async with session.listen() as messages:
            second = await asyncio.wait_for(messages.__anext__(), timeout=10.0)

        assert first.body["pid"] != second.body["pid"]


# =============================================================================
# Requests
# =============================================================================


class TestDiagnosticsOverProcess:
    """Test the diagnostics request against the fake server."""

    @pytest.mark.anyio
    async def test_single_file(self, server_config: ServerConfig, source_file: Path):
        session = TsServerSession(server_config)

        response = await request_semantic_diagnostics(session, str(source_file), timeout=10.0)
        [diagnostic] = diagnostics_from_response(response)

        assert diagnostic.lines == (3, 3)
        assert diagnostic.offsets == (19, 25)
        assert diagnostic.code == 2322
        assert session.is_running is False

    @pytest.mark.anyio
    async def test_reordered_responses_are_correlated(self, server_config: ServerConfig, tmp_path: Path):
        """The server answers the second file first; each request still gets its own body."""
        server_config.env = {"FAKE_TSSERVER_BATCH": "2"}
        errors = write_source(tmp_path, "errors.ts", "x = @error;\n")
        warnings = write_source(tmp_path, "warnings.ts", "y = @warning;\n")
        session = TsServerSession(server_config)

        first, second = await asyncio.gather(
            request_semantic_diagnostics(session, str(errors), timeout=10.0),
            request_semantic_diagnostics(session, str(warnings), timeout=10.0),
        )

        assert diagnostics_from_response(first)[0].category == "error"
        assert diagnostics_from_response(second)[0].category == "warning"

    @pytest.mark.anyio
    async def test_timeout(self, server_config: ServerConfig, source_file: Path):
        server_config.env = {"FAKE_TSSERVER_SILENT": "1"}
        session = TsServerSession(server_config)

        with pytest.raises(DiagnosticsTimeoutError):
            await request_semantic_diagnostics(session, str(source_file), timeout=0.5)

        assert session.listener_count == 0
        assert session.is_running is False

    @pytest.mark.anyio
    async def test_clean_exit_before_answer(self, server_config: ServerConfig, source_file: Path):
        server_config.env = {"FAKE_TSSERVER_EXIT_CODE": "0"}
        session = TsServerSession(server_config)

        with pytest.raises(ServerClosedError):
            await request_semantic_diagnostics(session, str(source_file), timeout=10.0)

    @pytest.mark.anyio
    async def test_crash_before_answer(self, server_config: ServerConfig, source_file: Path):
        server_config.env = {"FAKE_TSSERVER_EXIT_CODE": "2"}
        session = TsServerSession(server_config)

        with pytest.raises(ServerProcessError) as exc_info:
            await request_semantic_diagnostics(session, str(source_file), timeout=10.0)

        assert not isinstance(exc_info.value, ServerClosedError)
        assert exc_info.value.returncode == 2


# =============================================================================
# check_files
# =============================================================================


class TestCheckFiles:
    """Test checking several files through one session."""

    @pytest.mark.anyio
    async def test_only_files_with_diagnostics_in_input_order(self, server_config: ServerConfig, tmp_path: Path):
        clean = write_source(tmp_path, "clean.ts", "const ok = 1;\n")
        errors = write_source(tmp_path, "errors.ts", "one\nx = @error;\nthree\n")
        warnings = write_source(tmp_path, "warnings.ts", "y = @warning;\n")

        records = await check_files(
            server_config,
            [str(warnings), str(clean), str(errors)],
            Frame(before=1, after=1),
            timeout=10.0,
        )

        assert [record.file for record in records] == [str(warnings), str(errors)]
        assert records[0].has_errors is False
        assert records[1].has_errors is True
        assert records[1].code == [["one", "x = @error;", "three"]]
