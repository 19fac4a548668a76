"""
Models — Pydantic schemas shared across the orchestrator.
"""

from .alert import AlertPayload
from .dispatch import DispatchResult, ErrorDetails
from .job import ENGINE_INVOCATION_FAILED, MirrorJobResult, MirrorJobSpec
from .location import AddressSet, LocationIdentity
from .outcome import RunOutcome, SeverityBand

__all__ = [
    "AddressSet",
    "AlertPayload",
    "DispatchResult",
    "ENGINE_INVOCATION_FAILED",
    "ErrorDetails",
    "LocationIdentity",
    "MirrorJobResult",
    "MirrorJobSpec",
    "RunOutcome",
    "SeverityBand",
]
