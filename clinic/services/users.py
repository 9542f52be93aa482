"""
User provisioning.

Registration and admin provisioning both go through
:func:`provision_user`, which creates the user and its role specific
profile in one transaction.  Updates touching a user and its profile are
likewise applied atomically.
"""
import secrets
from datetime import date
from typing import Optional

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction
from rest_framework.exceptions import ValidationError as DRFValidation

from clinic.models import Doctor, Patient, Staff, User

DEFAULT_DATE_OF_BIRTH = date(2000, 1, 1)

USER_FIELDS = ('email', 'phone', 'is_active', 'role')
PATIENT_FIELDS = ('first_name', 'last_name', 'date_of_birth', 'gender', 'blood_type', 'address',
                  'emergency_contact_name', 'emergency_contact_phone', 'insurance_provider',
                  'insurance_policy_number')
DOCTOR_FIELDS = ('first_name', 'last_name', 'specialization', 'license_number', 'department',
                 'consultation_fee', 'bio', 'verified', 'is_available')
STAFF_FIELDS = ('first_name', 'last_name', 'staff_role', 'department')


def _check_password(password: Optional[str], user: Optional[User] = None) -> str:
    if not password:
        return secrets.token_urlsafe(12)
    try:
        validate_password(password, user=user)
    except ValidationError as e:
        raise DRFValidation({'password': e.messages})
    return password


def provision_user(*, email: str, password: Optional[str] = None, role: str = User.ROLE_PATIENT,
                   phone: str = '', profile: Optional[dict] = None) -> tuple:
    """Create a user plus its role profile; returns ``(user, initial_password)``."""
    email = User.objects.normalize_email(email).lower()
    if User.objects.filter(email__iexact=email).exists():
        raise DRFValidation({'email': ['Email already in use']})
    password = _check_password(password)
    profile = dict(profile or {})

    with transaction.atomic():
        user = User.objects.create_user(username=email, email=email, password=password, role=role, phone=phone or '')
        if role == User.ROLE_PATIENT:
            Patient.objects.create(
                user=user,
                first_name=profile.pop('first_name', None) or 'User',
                last_name=profile.pop('last_name', None) or 'Account',
                date_of_birth=profile.pop('date_of_birth', None) or DEFAULT_DATE_OF_BIRTH,
                **_pick(profile, PATIENT_FIELDS),
            )
        elif role == User.ROLE_DOCTOR:
            if not profile.get('license_number'):
                raise DRFValidation({'licenseNumber': ['required for doctors']})
            Doctor.objects.create(user=user, **_pick(profile, DOCTOR_FIELDS))
        elif role == User.ROLE_STAFF:
            Staff.objects.create(user=user, **_pick(profile, STAFF_FIELDS))
    return user, password


def _pick(data: dict, fields) -> dict:
    return {k: v for k, v in data.items() if k in fields and v is not None}


def _apply(obj, data: dict, fields) -> list:
    changed = []
    for k, v in _pick(data, fields).items():
        setattr(obj, k, v)
        changed.append(k)
    return changed


@transaction.atomic
def update_user(user: User, data: dict) -> User:
    """Update the user and whichever profile it owns; all or nothing."""
    data = dict(data)
    password = data.pop('password', None)
    if data.get('email'):
        data['email'] = User.objects.normalize_email(data['email']).lower()
        if User.objects.filter(email__iexact=data['email']).exclude(pk=user.pk).exists():
            raise DRFValidation({'email': ['Email already in use']})
        data['username'] = data['email']
    changed = _apply(user, data, USER_FIELDS)
    if 'email' in changed:
        user.username = data['username']
        changed.append('username')
    if password:
        user.set_password(_check_password(password, user))
        changed.append('password')
    if changed:
        user.save(update_fields=changed)

    for attr, fields in (('patient', PATIENT_FIELDS), ('doctor', DOCTOR_FIELDS), ('staff', STAFF_FIELDS)):
        profile = getattr(user, attr, None)
        if profile is not None:
            profile_changed = _apply(profile, data, fields)
            if profile_changed:
                profile.save(update_fields=profile_changed)
    return user


@transaction.atomic
def update_patient(patient: Patient, data: dict) -> Patient:
    """Update a patient profile and its owning user together."""
    patient_changed = _apply(patient, data, PATIENT_FIELDS)
    if patient_changed:
        patient.save(update_fields=patient_changed)
    user_data = {k: data[k] for k in ('email', 'phone', 'is_active') if k in data}
    if user_data:
        update_user(patient.user, user_data)
    return patient


def format_user(user: User) -> dict:
    data = {
        'id': user.id,
        'email': user.email,
        'phone': user.phone or None,
        'role': user.role,
        'isActive': user.is_active,
        'createdAt': user.date_joined.isoformat(),
        'profile': None,
    }
    for attr in ('patient', 'doctor', 'staff'):
        profile = getattr(user, attr, None)
        if profile is not None:
            data['profile'] = {'type': attr, 'id': profile.id,
                               'firstName': profile.first_name, 'lastName': profile.last_name}
    return data
