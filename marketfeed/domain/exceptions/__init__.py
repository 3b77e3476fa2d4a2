"""Domain exceptions."""
from marketfeed.domain.exceptions.domain_errors import (
    DomainError,
    MalformedPayloadError,
    PersistenceFailureError,
    TransportFailureError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "MalformedPayloadError",
    "PersistenceFailureError",
    "TransportFailureError",
    "ValidationError",
]
