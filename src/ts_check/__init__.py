"""ts-check - type-check files through the TypeScript server.

Drives a long-lived tsserver process over its standard streams and
correlates diagnostics responses with the requests that asked for them.
"""

from .config import ServerConfig
from .request import DiagnosticsTimeoutError, ServerClosedError, request_semantic_diagnostics
from .session import Subscription, TsServerSession
from .transport import ProcessTransport, ServerProcessError

__version__ = "1.0.0"

__all__ = [
    "DiagnosticsTimeoutError",
    "ProcessTransport",
    "ServerClosedError",
    "ServerConfig",
    "ServerProcessError",
    "Subscription",
    "TsServerSession",
    "request_semantic_diagnostics",
]
