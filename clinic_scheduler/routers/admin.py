# clinic_scheduler/routers/admin.py
from __future__ import annotations
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from datetime import datetime

from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from .. import models, schemas
from ..services.availability import booked_intervals
from ..services.timeutils import day_bounds, parse_day

router = APIRouter(tags=["admin"])


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────
def _require_admin(x_admin_token: str | None) -> None:
    expected = (settings.ADMIN_TOKEN or "").strip()
    provided = (x_admin_token or "").strip()
    if not expected:
        raise HTTPException(status_code=403, detail="ADMIN_TOKEN no configurado")
    if provided != expected:
        raise HTTPException(status_code=401, detail="Token inválido")


# ──────────────────────────────────────────────────────────────────────────────
# Básicos
# (main.py monta este router con prefix="/admin")
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/ping")
def admin_ping():
    return {"ok": True, "ts": datetime.utcnow().isoformat()}


@router.get("/health")
def admin_health():
    return {
        "ok": True,
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "tz": settings.TIMEZONE,
        "lunch_break": f"{settings.LUNCH_BREAK_START}-{settings.LUNCH_BREAK_END}",
        "ts": datetime.utcnow().isoformat(),
    }


# ──────────────────────────────────────────────────────────────────────────────
# Diagnóstico: ventanas ocupadas de un doctor en un día
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/doctors/{doctor_id}/busy", response_model=list[schemas.BusyWindowOut])
def admin_doctor_busy(
    doctor_id: int,
    date_str: str = Query(alias="date", description="YYYY-MM-DD"),
    x_admin_token: str | None = Header(default=None),
    db: Session = Depends(get_db),
):
    _require_admin(x_admin_token)
    if db.get(models.Doctor, doctor_id) is None:
        raise HTTPException(status_code=404, detail="Doctor no encontrado")
    start, end = day_bounds(parse_day(date_str))
    return [
        schemas.BusyWindowOut(appointment_id=ap.id, start=ap.appointment_date, end=ap.ends_at)
        for ap in booked_intervals(db, doctor_id, start, end)
    ]
