"""Abuse governor adapters.

The service starts with an in-memory governor; the abstract interface lets
a shared store replace it without touching the API layer.
"""

from ytgrab.adapters.governor.base import AbstractAbuseGovernor, AdmissionResult
from ytgrab.adapters.governor.in_memory import InMemoryAbuseGovernor

__all__ = [
    "AbstractAbuseGovernor",
    "AdmissionResult",
    "InMemoryAbuseGovernor",
]
