from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from clinic.models import Appointment, Billing, Doctor, LabResult, Patient, Prescription, Staff, User

PASSWORD = 'Str0ng-Passw0rd!'


@pytest.fixture(autouse=True)
def _clear_throttles():
    # throttle counters live in the locmem cache and would leak between tests
    cache.clear()
    yield
    cache.clear()


def make_user(email, role, **extra):
    return User.objects.create_user(username=email, email=email, password=PASSWORD, role=role, **extra)


def auth_client(user) -> APIClient:
    client = APIClient()
    token, _ = Token.objects.get_or_create(user=user)
    client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
    return client


@pytest.fixture
def clinic(db):
    """Two patients, three doctors (one unavailable), staff and admin with a little history."""
    now = timezone.now()
    admin = make_user('admin@example.com', User.ROLE_ADMIN)
    staff_user = make_user('staff@example.com', User.ROLE_STAFF)
    Staff.objects.create(user=staff_user, first_name='Emily', last_name='Clark')

    d1_user = make_user('lee@example.com', User.ROLE_DOCTOR)
    d1 = Doctor.objects.create(user=d1_user, first_name='Sarah', last_name='Lee', specialization='Cardiology',
                               license_number='NY-1', consultation_fee=Decimal('250.00'), verified=True)
    d2_user = make_user('smith@example.com', User.ROLE_DOCTOR)
    d2 = Doctor.objects.create(user=d2_user, first_name='James', last_name='Smith',
                               specialization='Internal Medicine', license_number='NY-2',
                               consultation_fee=Decimal('150.00'))
    d3_user = make_user('away@example.com', User.ROLE_DOCTOR)
    d3 = Doctor.objects.create(user=d3_user, first_name='Ann', last_name='Away', specialization='Dermatology',
                               license_number='NY-3', is_available=False)

    p1_user = make_user('michael@example.com', User.ROLE_PATIENT, phone='555-0101')
    p1 = Patient.objects.create(user=p1_user, first_name='Michael', last_name='Anderson',
                                date_of_birth=date(1985, 6, 15), blood_type='O+',
                                insurance_provider='Blue Cross')
    p2_user = make_user('olivia@example.com', User.ROLE_PATIENT)
    p2 = Patient.objects.create(user=p2_user, first_name='Olivia', last_name='Martinez',
                                date_of_birth=date(1992, 2, 3))
    orphan = make_user('noprofile@example.com', User.ROLE_PATIENT)

    a1 = Appointment.objects.create(patient=p1, doctor=d2, appointment_date=now - timedelta(days=30),
                                    status=Appointment.STATUS_COMPLETED, reason='Annual physical')
    a2 = Appointment.objects.create(patient=p1, doctor=d1, appointment_date=now + timedelta(days=5),
                                    status=Appointment.STATUS_SCHEDULED, reason='Palpitations')
    a3 = Appointment.objects.create(patient=p2, doctor=d1, appointment_date=now - timedelta(days=2),
                                    status=Appointment.STATUS_COMPLETED)

    b_old = Billing.objects.create(patient=p1, amount=Decimal('45.00'), status=Billing.STATUS_PENDING,
                                   description='Co-pay', issued_at=now - timedelta(days=10))
    b_new = Billing.objects.create(patient=p1, amount=Decimal('80.00'), status=Billing.STATUS_PENDING,
                                   description='X-ray', issued_at=now - timedelta(days=1))
    b_paid = Billing.objects.create(patient=p1, amount=Decimal('150.00'), status=Billing.STATUS_PAID,
                                    description='Lab work', issued_at=now - timedelta(days=20),
                                    paid_at=now - timedelta(days=19))
    b_p2 = Billing.objects.create(patient=p2, amount=Decimal('60.00'), description='Consult')

    rx_active = Prescription.objects.create(patient=p1, doctor=d2, medication='Lisinopril', dosage='10mg',
                                            expires_at=now + timedelta(days=90))
    rx_expired = Prescription.objects.create(patient=p1, doctor=d2, medication='Amoxicillin',
                                             issued_at=now - timedelta(days=40),
                                             expires_at=now - timedelta(days=30))
    rx_open = Prescription.objects.create(patient=p1, doctor=d1, medication='Aspirin')

    lab = LabResult.objects.create(patient=p1, doctor=d2, type='Blood Panel', result='Normal',
                                   reported_at=now - timedelta(days=3))
    LabResult.objects.create(patient=p2, type='Urine', result='Clear')

    return SimpleNamespace(
        now=now, admin=admin, staff=staff_user, d1_user=d1_user, d2_user=d2_user, d1=d1, d2=d2, d3=d3,
        p1_user=p1_user, p2_user=p2_user, p1=p1, p2=p2, orphan=orphan, a1=a1, a2=a2, a3=a3,
        b_old=b_old, b_new=b_new, b_paid=b_paid, b_p2=b_p2,
        rx_active=rx_active, rx_expired=rx_expired, rx_open=rx_open, lab=lab,
    )


@pytest.fixture
def client_for(db):
    """``client_for(user)`` returns an APIClient carrying the user's token."""
    return auth_client


@pytest.fixture
def user_factory(db):
    return make_user
