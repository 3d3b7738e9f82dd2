"""Command implementations exposed by the batchpatch CLI."""

from .run import run_batch
from .status import show_status

__all__ = [
    "run_batch",
    "show_status",
]
