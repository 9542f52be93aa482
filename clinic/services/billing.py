from typing import Optional

from django.db import transaction

from clinic.models import Billing, User
from clinic.services.audit import log_action


def list_billings(status: Optional[str] = None):
    qs = Billing.objects.select_related('patient')
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-issued_at', '-id')


def format_billing_row(b: Billing) -> dict:
    return {
        'id': b.id,
        'patientId': b.patient_id,
        'patientName': b.patient.full_name,
        'appointmentId': b.appointment_id,
        'amount': b.amount,
        'currency': b.currency,
        'status': b.status,
        'description': b.description,
        'issuedAt': b.issued_at.isoformat(),
        'paidAt': b.paid_at.isoformat() if b.paid_at else None,
    }


@transaction.atomic
def update_billing_status(billing: Billing, status: str, *, user: Optional[User] = None) -> Billing:
    previous = billing.status
    billing.set_status(status)
    billing.save(update_fields=['status', 'paid_at'])
    log_action(user=user, action='billing_status', object_type='billing', object_id=billing.id,
               detail={'from': previous, 'to': status})
    return billing
