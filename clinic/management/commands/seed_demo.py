"""
Management command to populate the database with a demo dataset.

Safe to run repeatedly: users are looked up by email and records are only
created for a patient that has none yet.
"""
from datetime import date, timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinic.models import Appointment, Billing, Doctor, LabResult, Patient, Prescription, Staff, User


class Command(BaseCommand):
    help = 'Populate database with demo users and clinical records'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='Health123!', help='password for every demo account')

    @transaction.atomic
    def handle(self, *args, **options):
        self.password = options['password']
        self.now = timezone.now()
        self.stdout.write('Creating demo data...')

        self.create_user('admin@demo.com', User.ROLE_ADMIN)
        staff_user = self.create_user('staff@demo.com', User.ROLE_STAFF)
        Staff.objects.get_or_create(user=staff_user, defaults={
            'first_name': 'Emily', 'last_name': 'Clark', 'staff_role': 'receptionist', 'department': 'Front Desk',
        })

        doctors = self.create_doctors()
        patients = self.create_patients()
        for patient in patients:
            if patient.appointments.exists():
                continue
            self.create_history(patient, doctors)

        self.stdout.write(self.style.SUCCESS('Demo data ready.'))

    def create_user(self, email, role, phone=''):
        user, created = User.objects.get_or_create(
            email=email,
            defaults={'username': email, 'role': role, 'phone': phone},
        )
        if created:
            user.set_password(self.password)
            user.save(update_fields=['password'])
            self.stdout.write(f'Created {role}: {email}')
        return user

    def create_doctors(self):
        doctors_data = [
            {
                'email': 'dr.smith@metro.com', 'first_name': 'James', 'last_name': 'Smith',
                'specialization': 'Internal Medicine', 'license_number': 'NY-448291',
                'department': 'Primary Care', 'consultation_fee': Decimal('150.00'),
                'bio': 'Board-certified internist focused on preventative care and chronic disease management.',
            },
            {
                'email': 'dr.lee@metro.com', 'first_name': 'Sarah', 'last_name': 'Lee',
                'specialization': 'Cardiology', 'license_number': 'NY-992102',
                'department': 'Cardiology', 'consultation_fee': Decimal('250.00'),
                'bio': 'Specialist in cardiovascular health, hypertension and heart rhythm disorders.',
            },
        ]
        doctors = []
        for data in doctors_data:
            data = dict(data)
            user = self.create_user(data.pop('email'), User.ROLE_DOCTOR)
            doctor, _ = Doctor.objects.get_or_create(user=user, defaults={**data, 'verified': True})
            doctors.append(doctor)
        return doctors

    def create_patients(self):
        patients_data = [
            {
                'email': 'patient@demo.com', 'phone': '(555) 123-4567',
                'first_name': 'Michael', 'last_name': 'Anderson', 'date_of_birth': date(1985, 6, 15),
                'gender': 'Male', 'blood_type': 'O+', 'address': '452 Park Avenue, Apt 4B, New York, NY 10022',
                'emergency_contact_name': 'Jennifer Anderson', 'emergency_contact_phone': '(555) 987-6543',
                'insurance_provider': 'Blue Cross Blue Shield', 'insurance_policy_number': 'BCBS-88429110',
            },
            {
                'email': 'olivia@demo.com', 'phone': '(555) 222-0101',
                'first_name': 'Olivia', 'last_name': 'Martinez', 'date_of_birth': date(1992, 2, 3),
                'gender': 'Female', 'blood_type': 'A-',
            },
        ]
        patients = []
        for data in patients_data:
            data = dict(data)
            user = self.create_user(data.pop('email'), User.ROLE_PATIENT, phone=data.pop('phone'))
            patient, _ = Patient.objects.get_or_create(user=user, defaults=data)
            patients.append(patient)
        return patients

    def create_history(self, patient, doctors):
        primary, cardio = doctors[0], doctors[1]
        visit = Appointment.objects.create(
            patient=patient, doctor=primary, appointment_date=self.now - timedelta(days=30),
            duration_minutes=30, status=Appointment.STATUS_COMPLETED,
            reason='Annual Physical Examination', notes='Patient is in good health. BP 120/80.',
        )
        Appointment.objects.create(
            patient=patient, doctor=cardio, appointment_date=self.now + timedelta(days=5),
            duration_minutes=45, status=Appointment.STATUS_SCHEDULED, reason='Follow-up on heart palpitations',
        )
        Prescription.objects.create(
            patient=patient, doctor=primary, appointment=visit, medication='Lisinopril', dosage='10mg',
            frequency='Once daily', instructions='Take with food in the morning',
            expires_at=self.now + timedelta(days=90),
        )
        Prescription.objects.create(
            patient=patient, doctor=cardio, medication='Atorvastatin', dosage='20mg',
            frequency='Once daily at bedtime', instructions='Avoid grapefruit juice while taking this medication',
            expires_at=self.now + timedelta(days=60),
        )
        Billing.objects.create(
            patient=patient, appointment=visit, amount=Decimal('45.00'),
            status=Billing.STATUS_PENDING, description='Co-pay for Office Visit',
        )
        Billing.objects.create(
            patient=patient, amount=Decimal('150.00'), status=Billing.STATUS_PAID,
            description='Lab Work - Lipid Panel', paid_at=self.now - timedelta(days=20),
        )
        LabResult.objects.create(
            patient=patient, doctor=primary, type='Lipid Panel', result='LDL 128', units='mg/dL',
            reference_range='< 100', lab_notes='Borderline high, recheck in 3 months.',
            collected_at=self.now - timedelta(days=31), reported_at=self.now - timedelta(days=29),
        )
        LabResult.objects.create(
            patient=patient, doctor=primary, type='Blood Glucose', result='92', units='mg/dL',
            reference_range='70-99', collected_at=self.now - timedelta(days=31),
            reported_at=self.now - timedelta(days=29),
        )
        self.stdout.write(f'Created history for {patient.full_name}')
