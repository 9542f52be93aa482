"""
Plain-record shaping for query results.

Every function takes a model instance and returns a ``dict`` with stable
camelCase keys, suitable both for a JSON response and for narration by
the assistant.  No model instance ever leaves the service layer.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from clinic.models import Appointment, Billing, Doctor, LabResult, Patient, Prescription


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _day(value) -> Optional[str]:
    return value.date().isoformat() if value else None


def _money(amount: Optional[Decimal], currency: str = '') -> str:
    if amount is None:
        return '$TBD'
    text = f"${amount:.2f}"
    return f"{text} {currency}" if currency else text


def format_patient_profile(p: Patient) -> dict:
    user = p.user
    return {
        'id': p.id,
        'userId': p.user_id,
        'name': p.full_name,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'dateOfBirth': _iso(p.date_of_birth),
        'gender': p.gender or None,
        'bloodType': p.blood_type or None,
        'address': p.address or None,
        'emergencyContactName': p.emergency_contact_name or None,
        'emergencyContactPhone': p.emergency_contact_phone or None,
        'insuranceProvider': p.insurance_provider or None,
        'insurancePolicyNumber': p.insurance_policy_number or None,
        'email': user.email,
        'phone': user.phone or None,
        'active': user.is_active,
    }


def format_appointment(a: Appointment) -> dict:
    patient = a.patient
    return {
        'id': a.id,
        'date': _iso(a.appointment_date),
        'patientId': a.patient_id,
        'patient': patient.full_name if patient else 'Unknown',
        'doctorId': a.doctor_id,
        'doctor': f"Dr. {a.doctor.last_name}" if a.doctor else 'Dr. Unknown',
        'durationMinutes': a.duration_minutes,
        'status': a.status,
        'reason': a.reason or 'No reason provided',
    }


def format_billing(b: Billing) -> dict:
    return {
        'id': b.id,
        'patientId': b.patient_id,
        'amount': _money(b.amount, b.currency),
        'status': b.status,
        'description': b.description or 'Invoice',
        'issuedAt': _day(b.issued_at),
        'paidAt': _day(b.paid_at) or 'Not yet paid',
    }


def format_lab_result(r: LabResult) -> dict:
    return {
        'id': r.id,
        'patientId': r.patient_id,
        'testType': r.type,
        'result': r.result,
        'units': r.units or 'N/A',
        'referenceRange': r.reference_range or 'N/A',
        'collectedAt': _day(r.collected_at) or 'N/A',
        'reportedAt': _day(r.reported_at),
        'orderedBy': r.doctor.display_name if r.doctor else 'N/A',
        'notes': r.lab_notes or 'No additional notes',
    }


def format_prescription(p: Prescription) -> dict:
    return {
        'id': p.id,
        'patientId': p.patient_id,
        'medication': p.medication,
        'dosage': p.dosage or 'As prescribed',
        'frequency': p.frequency or 'As needed',
        'instructions': p.instructions or 'No special instructions',
        'issuedAt': _day(p.issued_at),
        'expiresAt': _day(p.expires_at) or 'No expiration',
        'prescribedBy': p.doctor.display_name if p.doctor else 'N/A',
    }


def format_doctor_brief(d: Doctor) -> dict:
    return {
        'id': d.id,
        'name': d.display_name,
        'specialization': d.specialization,
        'fee': _money(d.consultation_fee),
    }


def format_doctor(d: Doctor) -> dict:
    return {
        **format_doctor_brief(d),
        'department': d.department or None,
        'bio': d.bio or None,
        'verified': 'Verified' if d.verified else 'Unverified',
        'available': 'Available' if d.is_available else 'Not Available',
    }
