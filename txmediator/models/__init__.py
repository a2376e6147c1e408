"""Domain models for mediated transactions."""

from txmediator.models.enums import ApplicationDirection, ArtifactType, RegistryCategory, Status
from txmediator.models.location import MediatorLocation
from txmediator.models.transaction import Transaction

__all__ = [
    "ApplicationDirection",
    "ArtifactType",
    "MediatorLocation",
    "RegistryCategory",
    "Status",
    "Transaction",
]
