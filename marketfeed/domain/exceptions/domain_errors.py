"""
MarketFeed – Domain Exceptions
==============================
Errores del feed de mercado.

Ninguno de estos errores aborta una suscripción: se capturan en el
borde del componente que los produce, se loguean y se publican como
evento de diagnóstico (FeedError). Solo stop() termina una suscripción.

JERARQUÍA:
    DomainError (base)
    ├── MalformedPayloadError    → fila/mensaje con forma o tipo inválido
    ├── TransportFailureError    → status no-2xx o error de conexión
    ├── PersistenceFailureError  → fallo de lectura/escritura del cache
    └── ValidationError          → parámetros de suscripción inválidos

Un update "stale" (vela más antigua que la cola de la ventana) NO es un
error: es MergeOutcome.STALE y se descarta en silencio.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class MalformedPayloadError(DomainError):
    """Payload del venue con forma o tipos inesperados."""

    def __init__(self, message: str, field: str | None = None, payload: Any = None):
        super().__init__(message, code="MALFORMED_PAYLOAD")
        self.field = field
        self.payload = payload


class TransportFailureError(DomainError):
    """Fallo REST (status no-2xx) o de conexión; recuperable."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message, code="TRANSPORT_FAILURE")
        self.status = status


class PersistenceFailureError(DomainError):
    """Fallo del almacenamiento local; nunca llega al consumidor como excepción."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message, code="PERSISTENCE_FAILURE")
        self.key = key


class ValidationError(DomainError):
    """Error de validación de parámetros de suscripción."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.value = value
