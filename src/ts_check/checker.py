"""Type-check files through one tsserver session."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable

from .config import ServerConfig
from .fragments import Frame, read_code_fragments
from .report.types import ReportRecord
from .request import diagnostics_from_response, request_semantic_diagnostics
from .session import TsServerSession

logger = logging.getLogger(__name__)


async def check_file(
    session: TsServerSession,
    file: str,
    frame: Frame,
    timeout: float | None = None,
) -> ReportRecord:
    """Request diagnostics for a file and read the code around them.

    Args:
        session: Session shared by all files being checked
        file: Path as given by the user (kept for reporting)
        frame: Lines of context to read around each diagnostic
        timeout: Seconds to wait for tsserver, None to wait forever

    Returns:
        ReportRecord for the file, possibly without diagnostics
    """
    path = os.path.abspath(file)
    response = await request_semantic_diagnostics(session, path, timeout=timeout)
    diagnostics = diagnostics_from_response(response)
    logger.debug(f"{file}: {len(diagnostics)} diagnostic(s)")
    code = await asyncio.to_thread(read_code_fragments, path, diagnostics, frame)
    return ReportRecord(file=file, diagnostics=diagnostics, code=code, frame=frame)


async def check_files(
    config: ServerConfig,
    files: Iterable[str],
    frame: Frame,
    timeout: float | None = None,
) -> list[ReportRecord]:
    """Check all files concurrently against a single tsserver process.

    Returns:
        Records of the files that have diagnostics, in input order
    """
    session = TsServerSession(config)
    try:
        records = await asyncio.gather(
            *(check_file(session, file, frame, timeout) for file in files)
        )
    finally:
        await session.close()

    return [record for record in records if record.diagnostics]
