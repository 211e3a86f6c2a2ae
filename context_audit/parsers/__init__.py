"""Program representation providers."""

from .c_frontend import C_EXTENSIONS, CFrontend
from .graph_loader import GraphLoader, ProgramLoadError

__all__ = [
    "C_EXTENSIONS",
    "CFrontend",
    "GraphLoader",
    "ProgramLoadError",
]
