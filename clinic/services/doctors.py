from typing import Optional

from clinic.models import Doctor


def list_doctors(*, available_only: bool = True, specialization: Optional[str] = None):
    qs = Doctor.objects.all()
    if available_only:
        qs = qs.filter(is_available=True)
    if specialization:
        qs = qs.filter(specialization__icontains=specialization)
    return qs.order_by('last_name', 'id')


def format_doctor_row(d: Doctor) -> dict:
    return {
        'id': d.id,
        'userId': d.user_id,
        'firstName': d.first_name,
        'lastName': d.last_name,
        'specialization': d.specialization,
        'licenseNumber': d.license_number,
        'department': d.department or None,
        'consultationFee': d.consultation_fee,
        'bio': d.bio or None,
    }
