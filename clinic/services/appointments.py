import logging
from datetime import datetime, time
from typing import Optional

import bleach
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from clinic.models import Appointment, Doctor, Patient, User
from clinic.services.audit import log_action

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 30


def parse_when(value) -> datetime:
    """Parse an ISO timestamp (or bare date) into an aware datetime."""
    if isinstance(value, datetime):
        when = value
    else:
        text = str(value or '').strip()
        when = parse_datetime(text) if text else None
        if when is None:
            day = parse_date(text) if text else None
            if day is None:
                raise ValueError(f'invalid ISO timestamp: {value!r}')
            when = datetime.combine(day, time.min)
    if timezone.is_naive(when):
        when = timezone.make_aware(when)
    return when


def clean_text(value: Optional[str]) -> str:
    return bleach.clean((value or '').strip(), tags=set(), strip=True)


@transaction.atomic
def book_appointment(*, patient: Patient, doctor: Doctor, when: datetime, reason: str = '',
                     notes: str = '', duration_minutes: int = DEFAULT_DURATION_MINUTES,
                     booked_by: Optional[User] = None) -> Appointment:
    # No overlap check: two bookings of the same slot both succeed.
    appt = Appointment.objects.create(
        patient=patient,
        doctor=doctor,
        appointment_date=when,
        duration_minutes=duration_minutes,
        reason=clean_text(reason),
        notes=clean_text(notes),
        status=Appointment.STATUS_PENDING,
    )
    log_action(user=booked_by, action='appointment_book', object_type='appointment', object_id=appt.id,
               detail={'patientId': patient.id, 'doctorId': doctor.id})
    transaction.on_commit(lambda: notify_doctor(appt))
    return appt


def notify_doctor(appt: Appointment) -> None:
    """Push an ``appointment.created`` event to the doctor's update channel."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    payload = {
        'type': 'appointment.created',
        'appointmentId': appt.id,
        'patientId': appt.patient_id,
        'doctorId': appt.doctor_id,
        'date': appt.appointment_date.isoformat(),
        'status': appt.status,
    }
    try:
        async_to_sync(channel_layer.group_send)(f"doctor.{appt.doctor_id}", payload)
    except Exception:
        logger.warning('failed to broadcast appointment %s', appt.id, exc_info=True)


def can_change_status(user: User, appt: Appointment, status: str) -> bool:
    """Admins may write any status; everyone else follows the workflow table."""
    if user.role == User.ROLE_ADMIN:
        return True
    return appt.can_transition_to(status)


def can_access(user: User, appt: Appointment) -> bool:
    if user.role in (User.ROLE_ADMIN, User.ROLE_STAFF):
        return True
    if user.role == User.ROLE_DOCTOR:
        return appt.doctor.user_id == user.id
    return appt.patient.user_id == user.id


@transaction.atomic
def change_status(user: User, appt: Appointment, status: str, *, notes: Optional[str] = None) -> Appointment:
    if not can_access(user, appt):
        raise PermissionError('not allowed to modify this appointment')
    if not can_change_status(user, appt, status):
        raise ValueError(f'cannot move appointment from {appt.status} to {status}')
    previous = appt.status
    appt.status = status
    fields = ['status', 'updated_at']
    if notes is not None:
        appt.notes = clean_text(notes)
        fields.append('notes')
    appt.save(update_fields=fields)
    log_action(user=user, action='appointment_status', object_type='appointment', object_id=appt.id,
               detail={'from': previous, 'to': status})
    return appt
