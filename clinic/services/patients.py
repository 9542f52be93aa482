from typing import Optional

from django.db.models import Count, Q
from django.utils import timezone

from clinic.models import Appointment, Billing, Patient
from clinic.services import records


def search_patients(search: Optional[str] = None):
    qs = Patient.objects.select_related('user').annotate(appointment_count=Count('appointments'))
    if search:
        qs = qs.filter(
            Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(user__email__icontains=search)
        )
    return qs.order_by('last_name', 'id')


def format_patient_row(p: Patient) -> dict:
    return {
        **records.format_patient_profile(p),
        'appointmentCount': getattr(p, 'appointment_count', None),
    }


def patient_detail(patient: Patient) -> dict:
    """Profile plus every related record, newest first."""
    appointments = patient.appointments.select_related('doctor', 'patient').order_by('-appointment_date')
    billings = patient.billings.order_by('-issued_at')
    prescriptions = patient.prescriptions.select_related('doctor').order_by('-issued_at')
    lab_results = patient.lab_results.select_related('doctor').order_by('-reported_at')
    return {
        **records.format_patient_profile(patient),
        'appointments': [records.format_appointment(a) for a in appointments],
        'billings': [records.format_billing(b) for b in billings],
        'prescriptions': [records.format_prescription(p) for p in prescriptions],
        'labResults': [records.format_lab_result(r) for r in lab_results],
        'counts': {
            'appointments': len(appointments),
            'billings': len(billings),
            'prescriptions': len(prescriptions),
            'labResults': len(lab_results),
        },
    }


def patient_dashboard(patient: Patient, *, now=None) -> dict:
    now = now or timezone.now()
    upcoming = (
        patient.appointments.select_related('doctor')
        .filter(status__in=Appointment.ACTIVE_STATUSES, appointment_date__gte=now)
        .order_by('appointment_date')[:3]
    )
    prescriptions = patient.prescriptions.select_related('doctor').active(now)
    labs = patient.lab_results.select_related('doctor').order_by('-reported_at')[:5]
    bills = patient.billings.filter(status=Billing.STATUS_PENDING).order_by('-issued_at')
    return {
        'patientLastName': patient.last_name,
        'upcomingAppointments': [{
            'id': a.id,
            'date': a.appointment_date.date().isoformat(),
            'time': a.appointment_date.strftime('%H:%M'),
            'doctorId': a.doctor_id,
            'status': a.status,
            'doctorName': a.doctor.display_name,
            'specialization': a.doctor.specialization or 'General Practitioner',
        } for a in upcoming],
        'activePrescriptions': [{
            'id': rx.id,
            'medicationName': rx.medication,
            'dosage': rx.dosage or 'N/A',
            'frequency': rx.frequency or 'As directed',
            'doctor': rx.doctor.display_name,
        } for rx in prescriptions],
        'recentLabResults': [{
            'id': lab.id,
            'testName': lab.type,
            'testDate': (lab.collected_at or lab.reported_at).date().isoformat(),
            'status': 'completed',
            'result': lab.result,
        } for lab in labs],
        'pendingBills': [{
            'id': bill.id,
            'description': bill.description or 'Medical Service',
            'amount': bill.amount,
            'dueDate': bill.issued_at.date().isoformat(),
        } for bill in bills],
    }
