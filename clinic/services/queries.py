"""
Role-scoped query operations.

Each operation takes a :class:`~clinic.services.access.Capability` plus
its own arguments, performs one read or write against the database and
returns a tagged result (:mod:`clinic.services.results`).  Operations are
registered under the names the assistant advertises to the language
model; :func:`execute` is the single entry point used by both the HTTP
views and the assistant tool loop.

Expected "no data" conditions come back as :class:`NotFound` with a
human readable message.  Anything unexpected is logged and converted to a
:class:`Failed` carrying a generic message, so nothing raises past
:func:`execute`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from django.db.models import Count, Q
from django.utils import timezone

from clinic.models import Appointment, Billing, Doctor, LabResult, Patient, Prescription, User
from clinic.services import records
from clinic.services.access import Capability, coerce_id, is_elevated
from clinic.services.appointments import book_appointment, parse_when
from clinic.services.results import Failed, Found, NotFound, Result

logger = logging.getLogger(__name__)

LISTING_CAP = 100
SEARCH_CAP = 50
DETAIL_RELATED_CAP = 10

NOT_AVAILABLE = 'This operation is not available for your role.'


@dataclass(frozen=True)
class Param:
    name: str
    type: str = 'string'
    description: str = ''
    required: bool = False
    enum: tuple = ()
    default: Any = None
    elevated_only: bool = False
    attr: Optional[str] = None

    @property
    def kwarg(self) -> str:
        return self.attr or self.name


@dataclass(frozen=True)
class Operation:
    name: str
    func: Callable[..., Result]
    description: str
    elevated_description: Optional[str] = None
    params: tuple = field(default_factory=tuple)
    elevated_only: bool = False
    failure_message: str = 'Unable to complete this request at this time.'

    def describe(self, capability: Capability) -> str:
        if capability.elevated and self.elevated_description:
            return self.elevated_description
        return self.description

    def visible_params(self, capability: Capability) -> list:
        return [p for p in self.params if capability.elevated or not p.elevated_only]


OPERATIONS: dict = {}


def operation(name: str, *, description: str, elevated_description: Optional[str] = None,
              params=(), elevated_only: bool = False, failure_message: Optional[str] = None):
    """Register a query function under ``name``."""
    def decorator(func):
        OPERATIONS[name] = Operation(
            name=name,
            func=func,
            description=description,
            elevated_description=elevated_description,
            params=tuple(params),
            elevated_only=elevated_only,
            failure_message=failure_message or Operation.failure_message,
        )
        return func
    return decorator


def capability_for(user_id: int, role: str) -> Capability:
    """Resolve the caller's capability; elevated-only operations are omitted for others."""
    elevated = is_elevated(role)
    allowed = frozenset(name for name, op in OPERATIONS.items() if elevated or not op.elevated_only)
    return Capability(user_id=user_id, role=role, allowed_operations=allowed)


def capability_for_user(user) -> Capability:
    return capability_for(user.id, getattr(user, 'role', ''))


def available_operations(capability: Capability) -> list:
    return [op for name, op in OPERATIONS.items() if capability.allows(name)]


def _coerce_arg(param: Param, value: Any) -> Any:
    if param.type == 'boolean' and isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes'}
    if param.type == 'string' and value is not None and not isinstance(value, str):
        return str(value)
    return value


def execute(capability: Capability, name: str, args: Optional[dict] = None) -> Result:
    """Run operation ``name`` for the caller; never raises."""
    op = OPERATIONS.get(name)
    if op is None or not capability.allows(name):
        logger.warning('operation %s refused for user=%s role=%s', name, capability.user_id, capability.role)
        return Failed(NOT_AVAILABLE, code='forbidden')

    if args is None:
        args = {}
    elif not isinstance(args, dict):
        logger.warning('operation %s called with non-object arguments: %r', name, type(args).__name__)
        return Failed('Invalid arguments.', code='invalid')
    kwargs = {}
    for param in op.visible_params(capability):
        value = args.get(param.name)
        if value is None or value == '':
            if param.required:
                return Failed(f'Missing required argument: {param.name}.', code='invalid')
            value = param.default
        kwargs[param.kwarg] = _coerce_arg(param, value)

    try:
        return op.func(capability, **kwargs)
    except Exception:
        logger.exception('Error in %s (user=%s role=%s)', name, capability.user_id, capability.role)
        return Failed(op.failure_message)


PATIENT_ID = Param('patientId', description='Patient ID (admin/staff only)', elevated_only=True, attr='patient_id')


# ---------------------------------------------------------------------------
# Self-scoped reads
# ---------------------------------------------------------------------------
@operation(
    'getPatientProfile',
    description='Get the profile details of the current logged-in patient, including name and insurance.',
    elevated_description='Get patient profile information (admin/staff can query any patient).',
    params=[PATIENT_ID],
    failure_message='Unable to fetch patient profile at this time.',
)
def get_patient_profile(capability: Capability, patient_id: Optional[str] = None) -> Result:
    target = capability.target_patient_id(patient_id)
    if not target:
        return NotFound('Patient profile not found.')
    patient = Patient.objects.select_related('user').filter(id=target).first()
    if not patient:
        return NotFound('Patient profile not found.')
    return Found(records.format_patient_profile(patient))


@operation(
    'getAppointments',
    description='Get a list of upcoming or past appointments for the current user.',
    elevated_description='Get a list of appointments for all patients or a specific patient.',
    params=[
        Param('status', enum=tuple(s for s, _ in Appointment.STATUS_CHOICES), description='Filter by appointment status'),
        Param('patientId', description='Patient ID to filter appointments (admin/staff only)',
              elevated_only=True, attr='patient_id'),
    ],
    failure_message='Unable to fetch appointments at this time.',
)
def get_appointments(capability: Capability, status: Optional[str] = None,
                     patient_id: Optional[str] = None) -> Result:
    scope = capability.appointment_filter(patient_id)
    if scope is None:
        if capability.role == User.ROLE_DOCTOR:
            return NotFound('Doctor record not found.')
        return NotFound('Patient record not found.')
    qs = Appointment.objects.filter(**scope).select_related('patient', 'doctor')
    if status:
        qs = qs.filter(status=status)
    items = [records.format_appointment(a) for a in qs.order_by('appointment_date', 'id')[:LISTING_CAP]]
    if not items:
        return NotFound('No appointments found.')
    return Found(items)


@operation(
    'getBillingInfo',
    description='Get billing information, invoices, and payment status for the current patient.',
    elevated_description='Get patient billing information, invoices, and payment status (admin/staff can query any patient).',
    params=[
        Param('status', enum=tuple(s for s, _ in Billing.STATUS_CHOICES), description='Filter by billing status'),
        PATIENT_ID,
    ],
    failure_message='Unable to fetch billing information at this time.',
)
def get_billing_info(capability: Capability, status: Optional[str] = None,
                     patient_id: Optional[str] = None) -> Result:
    scope = capability.patient_filter(patient_id)
    if scope is None:
        return NotFound('Patient record not found.')
    qs = Billing.objects.filter(**scope)
    if status:
        qs = qs.filter(status=status)
    items = [records.format_billing(b) for b in qs.order_by('-issued_at', '-id')[:LISTING_CAP]]
    if not items:
        return NotFound('No billing records found.')
    return Found(items)


@operation(
    'getLabResults',
    description='Get personal lab test results and medical test reports.',
    elevated_description='Get patient lab test results and medical test reports (admin/staff can query any patient).',
    params=[
        Param('testType', description='Filter by lab test type (e.g., Blood, Urine)', attr='test_type'),
        PATIENT_ID,
    ],
    failure_message='Unable to fetch lab results at this time.',
)
def get_lab_results(capability: Capability, test_type: Optional[str] = None,
                    patient_id: Optional[str] = None) -> Result:
    scope = capability.patient_filter(patient_id)
    if scope is None:
        return NotFound('Patient record not found.')
    qs = LabResult.objects.filter(**scope).select_related('doctor')
    if test_type:
        qs = qs.filter(type__icontains=test_type)
    items = [records.format_lab_result(r) for r in qs.order_by('-reported_at', '-id')[:LISTING_CAP]]
    if not items:
        return NotFound('No lab results found.')
    return Found(items)


@operation(
    'getPrescriptions',
    description='Get personal prescriptions and medication information.',
    elevated_description='Get patient prescriptions and medication information (admin/staff can query any patient).',
    params=[
        Param('active', type='boolean', default=True, description='Show only active prescriptions'),
        PATIENT_ID,
    ],
    failure_message='Unable to fetch prescriptions at this time.',
)
def get_prescriptions(capability: Capability, active: bool = True,
                      patient_id: Optional[str] = None) -> Result:
    scope = capability.patient_filter(patient_id)
    if scope is None:
        return NotFound('Patient record not found.')
    qs = Prescription.objects.filter(**scope).select_related('doctor')
    if active:
        qs = qs.active()
    items = [records.format_prescription(p) for p in qs.order_by('-issued_at', '-id')[:LISTING_CAP]]
    if not items:
        return NotFound('No prescriptions found.')
    return Found(items)


# ---------------------------------------------------------------------------
# Unscoped search / listing
# ---------------------------------------------------------------------------
@operation(
    'searchDoctors',
    description='Search for doctors by specialization or name.',
    params=[Param('query', description='Specialization (e.g. Cardiologist) or name')],
    failure_message='Unable to search doctors at this time.',
)
def search_doctors(capability: Capability, query: Optional[str] = None) -> Result:
    qs = Doctor.objects.all()
    query = (query or '').strip()
    if query:
        qs = qs.filter(
            Q(specialization__icontains=query) | Q(last_name__icontains=query) | Q(first_name__icontains=query)
        )
    items = [records.format_doctor_brief(d) for d in qs.order_by('last_name', 'id')[:SEARCH_CAP]]
    if not items:
        return NotFound('No doctors found matching your criteria.')
    return Found(items)


@operation(
    'listAvailableDoctors',
    description='Get a comprehensive list of all available doctors with their specializations and fees.',
    params=[
        Param('specialization', description='Filter by medical specialization (e.g., Cardiology)'),
        Param('available', type='boolean', default=True, description='Show only available doctors'),
    ],
    failure_message='Unable to fetch doctor list at this time.',
)
def list_available_doctors(capability: Capability, specialization: Optional[str] = None,
                           available: bool = True) -> Result:
    qs = Doctor.objects.all()
    if available:
        qs = qs.filter(is_available=True)
    if specialization:
        qs = qs.filter(specialization__icontains=specialization)
    items = [records.format_doctor(d) for d in qs.order_by('last_name', 'id')[:LISTING_CAP]]
    if not items:
        return NotFound('No doctors found matching your criteria.')
    return Found(items)


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------
@operation(
    'bookAppointment',
    description='Book a new appointment with a specific doctor.',
    elevated_description='Book a new appointment with a doctor for a patient (admin/staff can book for any patient).',
    params=[
        Param('doctorId', required=True, description='The doctor ID', attr='doctor_id'),
        Param('date', required=True, description='ISO date string for the appointment'),
        Param('reason'),
        Param('patientId', description='Patient ID (admin/staff only, defaults to self)',
              elevated_only=True, attr='patient_id'),
    ],
    failure_message='Unable to book appointment at this time.',
)
def book(capability: Capability, doctor_id: str, date: str, reason: Optional[str] = None,
         patient_id: Optional[str] = None) -> Result:
    doctor_pk = coerce_id(doctor_id)
    doctor = Doctor.objects.filter(id=doctor_pk).first() if doctor_pk else None
    if not doctor:
        return NotFound('Doctor not found.')

    target = capability.target_patient_id(patient_id)
    patient = Patient.objects.filter(id=target).first() if target else None
    if not patient:
        if capability.elevated and patient_id not in (None, ''):
            return NotFound('Patient not found.')
        return NotFound('Could not find your patient record.')

    try:
        when = parse_when(date)
    except ValueError:
        return NotFound('Invalid appointment date.')

    appt = book_appointment(patient=patient, doctor=doctor, when=when, reason=reason or '',
                            booked_by=_caller(capability))
    return Found(f"Appointment request sent for {appt.appointment_date.isoformat()}. ID: {appt.id}")


def _caller(capability: Capability) -> Optional[User]:
    return User.objects.filter(id=capability.user_id).first()


# ---------------------------------------------------------------------------
# Elevated only
# ---------------------------------------------------------------------------
@operation(
    'getAllPatients',
    description='Admin/staff only: get a list of all patients in the system with their information.',
    params=[Param('search', description='Search by name or email')],
    elevated_only=True,
    failure_message='Unable to fetch patient list.',
)
def get_all_patients(capability: Capability, search: Optional[str] = None) -> Result:
    qs = Patient.objects.select_related('user').annotate(appointment_count=Count('appointments'))
    if search:
        qs = qs.filter(
            Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(user__email__icontains=search)
        )
    items = [{
        'id': p.id,
        'name': p.full_name,
        'email': p.user.email or 'Not provided',
        'phone': p.user.phone or 'Not provided',
        'bloodType': p.blood_type or 'Not provided',
        'appointmentCount': p.appointment_count,
    } for p in qs.order_by('last_name', 'id')[:SEARCH_CAP]]
    if not items:
        return NotFound('No patients found.')
    return Found(items)


@operation(
    'getPatientDetails',
    description='Admin/staff only: get detailed information about a specific patient.',
    params=[Param('patientId', required=True, description='The patient ID', attr='patient_id')],
    elevated_only=True,
    failure_message='Unable to fetch patient details.',
)
def get_patient_details(capability: Capability, patient_id: str) -> Result:
    pk = coerce_id(patient_id)
    patient = Patient.objects.select_related('user').filter(id=pk).first() if pk else None
    if not patient:
        return NotFound('Patient not found.')
    now = timezone.now()
    return Found({
        'id': patient.id,
        'name': patient.full_name,
        'email': patient.user.email,
        'phone': patient.user.phone or None,
        'bloodType': patient.blood_type or None,
        'status': 'Active' if patient.user.is_active else 'Inactive',
        'upcomingAppointments': patient.appointments.filter(appointment_date__gt=now).count(),
        'totalAppointments': patient.appointments.count(),
        'pendingBillings': patient.billings.filter(status=Billing.STATUS_PENDING).count(),
        'activePrescriptions': patient.prescriptions.active(now).count(),
        'recentAppointments': [
            records.format_appointment(a)
            for a in patient.appointments.select_related('doctor').order_by('-appointment_date')[:DETAIL_RELATED_CAP]
        ],
    })
