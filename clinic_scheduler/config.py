# clinic_scheduler/config.py
from datetime import time
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== App =====
    APP_NAME: str = "clinic_scheduler"
    ENV: str = "dev"
    # TZ local de la clínica (todas las fechas se guardan naive en esta zona)
    TIMEZONE: str = "America/Mexico_City"

    # ===== DB =====
    # En producción DATABASE_URL apunta a Postgres. Local puede caer a SQLite.
    DATABASE_URL: str = "sqlite:///./clinic.db"

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 min

    # ===== Horario de consultorio =====
    # Se usan cuando el doctor no tiene horario guardado
    DEFAULT_AVAILABLE_FROM: str = "09:00"
    DEFAULT_AVAILABLE_TO: str = "17:00"
    # Comida fija para todos los doctores
    LUNCH_BREAK_START: str = "12:00"
    LUNCH_BREAK_END: str = "13:00"

    # ===== Reservas / facturación =====
    # Reintentos ante abortos transitorios de la transacción (serialización, deadlock)
    BOOKING_MAX_RETRIES: int = 3
    INVOICE_TAX_RATE: float = 0.10

    # ===== Admin =====
    ADMIN_TOKEN: Optional[str] = None

    @property
    def lunch_break(self) -> tuple[time, time]:
        return parse_hhmm(self.LUNCH_BREAK_START), parse_hhmm(self.LUNCH_BREAK_END)


def parse_hhmm(value: str) -> time:
    """'09:30' → time(9, 30). Lanza ValueError si el formato no es HH:MM."""
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


settings = Settings()
