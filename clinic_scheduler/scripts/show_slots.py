# clinic_scheduler/scripts/show_slots.py
import argparse
from datetime import date, timedelta

from clinic_scheduler.config import settings
from clinic_scheduler.database import SessionLocal
from clinic_scheduler.exceptions import SchedulingError
from clinic_scheduler.services.availability import get_day_availability


def show_slots(db, doctor_id: int, service_id: int, d: date):
    print(f"\n=== Slots para {d.strftime('%Y-%m-%d')} | doctor={doctor_id} servicio={service_id} | TZ={settings.TIMEZONE} ===")
    try:
        result = get_day_availability(db, doctor_id, service_id, d)
    except SchedulingError as e:
        print("ERROR al consultar disponibilidad:", e.detail)
        return
    if result.message:
        print(result.message)
        return
    for s in result.slots:
        mark = "libre" if s.available else s.reason.value
        print(f" - {s.time}  {mark}")
    if result.fully_booked:
        print("Día lleno.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Muestra slots de hoy y los dos días siguientes")
    parser.add_argument("doctor_id", type=int)
    parser.add_argument("service_id", type=int)
    args = parser.parse_args()

    db = SessionLocal()
    try:
        hoy = date.today()
        for offset in range(3):
            show_slots(db, args.doctor_id, args.service_id, hoy + timedelta(days=offset))
    finally:
        db.close()
