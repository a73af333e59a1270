"""Processors package for the folder organizer.

Keep discovery, relocation, counting and status logging here so the watcher
and the command loop remain small and testable.
"""

__all__ = [
    "batch_mover",
    "counter",
    "discovery",
    "errors",
    "file_processor",
    "status_log",
    "worker_pool",
]
