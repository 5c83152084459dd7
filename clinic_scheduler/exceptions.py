"""Excepciones de dominio del motor de agenda.

Los servicios lanzan estas excepciones; main.py las traduce a respuestas HTTP.
"""
from __future__ import annotations
from typing import Optional


class SchedulingError(Exception):
    status_code: int = 500
    error: str = "Server error"

    def __init__(self, detail: str = "", reason: Optional[str] = None):
        super().__init__(detail or self.error)
        self.detail = detail or self.error
        self.reason = reason

    def to_dict(self) -> dict:
        body = {"error": self.error, "detail": self.detail}
        if self.reason:
            body["reason"] = self.reason
        return body


class ValidationError(SchedulingError):
    """Campos requeridos faltantes o con formato inválido."""
    status_code = 400
    error = "Validation error"


class UnauthorizedError(SchedulingError):
    """El llamante no tiene el rol requerido (lo decide la capa de identidad)."""
    status_code = 401
    error = "Unauthorized"


class NotFoundError(SchedulingError):
    """Doctor, servicio o cita inexistente (o ajena al paciente que la pide)."""
    status_code = 404
    error = "Not found"


class ConflictError(SchedulingError):
    """Reserva duplicada el mismo día o traslape con otra cita SCHEDULED."""
    status_code = 409
    error = "Conflict"


class ServerError(SchedulingError):
    """Falla de persistencia, incluidos abortos transitorios que agotaron reintentos."""
    status_code = 500
    error = "Server error"


# Razones de conflicto expuestas al cliente
DUPLICATE_BOOKING = "duplicate_booking"
SLOT_TAKEN = "slot_taken"
APPOINTMENT_NOT_ACTIVE = "appointment_not_active"

__all__ = [
    "SchedulingError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
    "DUPLICATE_BOOKING",
    "SLOT_TAKEN",
    "APPOINTMENT_NOT_ACTIVE",
]
