"""Cross-cutting building blocks: settings, logging, errors and base schema."""

from .base import BaseSchema
from .config import Settings
from .errors import (
    CapabilityError,
    DeniedActionError,
    DuplicateOperationError,
    NotFoundError,
    RemoteApiError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "BaseSchema",
    "Settings",
    "CapabilityError",
    "NotFoundError",
    "ValidationError",
    "DeniedActionError",
    "UpstreamError",
    "DuplicateOperationError",
    "RemoteApiError",
]
