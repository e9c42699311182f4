"""Configuration for the tsserver process.

The server command is `node <tsserver.js>`. Both halves can be overridden:

    TS_CHECK_NODE       node executable (default: "node")
    TS_CHECK_TSSERVER   path to tsserver.js (default: the project's
                        node_modules/typescript/lib/tsserver.js)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

NODE_ENV = "TS_CHECK_NODE"
TSSERVER_ENV = "TS_CHECK_TSSERVER"

DEFAULT_NODE = "node"
TSSERVER_RELATIVE_PATH = Path("node_modules", "typescript", "lib", "tsserver.js")


class ConfigurationError(Exception):
    """Raised when the tsserver command cannot be determined."""


def find_tsserver(start: Path | None = None) -> Path | None:
    """Find tsserver.js in the nearest node_modules, walking up from `start`."""
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / TSSERVER_RELATIVE_PATH
        if candidate.is_file():
            return candidate
    return None


@dataclass
class ServerConfig:
    """Configuration for the tsserver subprocess."""

    command: list[str] = field(default_factory=list)
    working_directory: str | None = None
    env: dict[str, str] | None = None

    # Text encoding of messages in both directions
    encoding: str = "utf-8"

    # Surface framing errors at warning level instead of debug
    verbose: bool = False

    # Seconds to wait for the process after terminate() before kill()
    shutdown_timeout: float = 5.0

    @classmethod
    def from_environment(
        cls,
        tsserver: str | None = None,
        verbose: bool = False,
        working_directory: str | None = None,
    ) -> ServerConfig:
        """Build a config from explicit arguments and environment variables.

        Args:
            tsserver: Explicit path to tsserver.js (wins over the environment)
            verbose: Enable verbose framing error reporting
            working_directory: CWD for the subprocess and node_modules lookup

        Raises:
            ConfigurationError: If tsserver.js cannot be located
        """
        node = os.environ.get(NODE_ENV) or DEFAULT_NODE
        tsserver_path = tsserver or os.environ.get(TSSERVER_ENV)

        if not tsserver_path:
            start = Path(working_directory) if working_directory else None
            found = find_tsserver(start)
            if found is None:
                raise ConfigurationError(
                    f"Cannot find {TSSERVER_RELATIVE_PATH.as_posix()}. "
                    f"Install typescript or set {TSSERVER_ENV}."
                )
            tsserver_path = str(found)

        return cls(
            command=[node, tsserver_path],
            working_directory=working_directory,
            verbose=verbose,
        )
