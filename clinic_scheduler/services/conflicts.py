# clinic_scheduler/services/conflicts.py
from __future__ import annotations
from datetime import datetime
from typing import Iterable, List

from .. import models


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Traslape de intervalos semiabiertos [start, end)."""
    return a_start < b_end and b_start < a_end


def find_overlapping(
    start: datetime,
    end: datetime,
    appointments: Iterable[models.Appointment],
) -> List[models.Appointment]:
    """Citas cuyo [appointment_date, appointment_date + duration) traslapa [start, end)."""
    return [ap for ap in appointments if overlaps(start, end, ap.appointment_date, ap.ends_at)]
