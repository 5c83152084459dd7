# clinic_scheduler/principal.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from .exceptions import UnauthorizedError
from .models import Role


@dataclass(frozen=True)
class Principal:
    """Identidad del llamante por request. Para PATIENT, `id` es el id del paciente."""
    id: int
    role: Role

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.RECEPTIONIST)

    def require(self, *roles: Role) -> "Principal":
        if self.role not in roles:
            raise UnauthorizedError("Rol no autorizado para esta operación")
        return self


def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Principal:
    """
    La capa de identidad (fuera de este servicio) inyecta X-User-Id / X-User-Role.
    Aquí sólo se confía en esos valores y se validan.
    """
    if not x_user_id or not x_user_role:
        raise UnauthorizedError("Falta identidad del usuario")
    try:
        return Principal(id=int(x_user_id), role=Role(x_user_role.strip().upper()))
    except ValueError:
        raise UnauthorizedError("Identidad de usuario inválida")
