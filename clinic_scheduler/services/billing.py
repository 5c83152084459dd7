# clinic_scheduler/services/billing.py
from __future__ import annotations
import logging
import secrets
import string
import time as _time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models
from ..config import settings

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")
_ALPHABET = string.ascii_uppercase + string.digits


def new_invoice_number() -> str:
    """INV-<epoch ms>-<7 caracteres aleatorios>."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(7))
    return f"INV-{int(_time.time() * 1000)}-{suffix}"


def issue_invoice(db: Session, appointment: models.Appointment, service: models.Service) -> models.Invoice:
    """
    Crea la factura PENDING ligada a la cita. No hace commit: va en la misma
    transacción que la cita.
    """
    amount = Decimal(service.price or 0).quantize(_CENTS)
    tax = (amount * Decimal(str(settings.INVOICE_TAX_RATE))).quantize(_CENTS, rounding=ROUND_HALF_UP)
    doctor_name = appointment.doctor.name if appointment.doctor else f"#{appointment.doctor_id}"
    invoice = models.Invoice(
        patient_id=appointment.patient_id,
        appointment_id=appointment.id,
        invoice_number=new_invoice_number(),
        amount=amount,
        tax=tax,
        total_amount=amount + tax,
        status=models.InvoiceStatus.PENDING,
        due_date=appointment.appointment_date,
        description=f"{service.name} - Cita con Dr. {doctor_name}",
    )
    db.add(invoice)
    db.flush()
    return invoice


def cancel_pending_invoice(db: Session, appointment_id: int) -> Optional[models.Invoice]:
    """
    Cancela a lo sumo una factura PENDING ligada a la cita. Las PAID o ya
    CANCELLED no se tocan (PAID pertenece al flujo de pagos).
    """
    stmt = (
        select(models.Invoice)
        .where(models.Invoice.appointment_id == appointment_id)
        .where(models.Invoice.status == models.InvoiceStatus.PENDING)
        .order_by(models.Invoice.id)
        .limit(1)
    )
    invoice = db.scalars(stmt).first()
    if invoice is None:
        return None
    invoice.status = models.InvoiceStatus.CANCELLED
    logger.info("Factura %s cancelada junto con la cita %s", invoice.invoice_number, appointment_id)
    return invoice
