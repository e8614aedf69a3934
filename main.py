"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the safequake package.
"""

from safequake.main import (
    seismic_monitor,
    seismic_monitor_pubsub,
)

__all__ = [
    "seismic_monitor",
    "seismic_monitor_pubsub",
]
