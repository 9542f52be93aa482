"""
Appointment endpoints.

``GET`` lists appointments scoped by role (patients see their own,
doctors their schedule, admin/staff everything).  Patients book through
``POST``; status changes go through the workflow check in
:mod:`clinic.services.appointments`.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from clinic.models import Appointment, Doctor, Patient, User
from clinic.serializers.appointments import (
    AppointmentCreateSerializer,
    AppointmentListQuerySerializer,
    AppointmentStatusSerializer,
)
from clinic.services import records
from clinic.services.access import is_elevated
from clinic.services.appointments import book_appointment, change_status
from clinic.throttles import BookingRateThrottle


def _scoped(user):
    qs = Appointment.objects.select_related('patient', 'doctor')
    if is_elevated(user.role):
        return qs
    if user.role == User.ROLE_DOCTOR:
        return qs.filter(doctor__user=user)
    return qs.filter(patient__user=user)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([UserRateThrottle, BookingRateThrottle])
def appointments(request):
    if request.method == 'POST':
        return _create(request)
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = _scoped(request.user)
    if q.validated_data.get('status'):
        qs = qs.filter(status=q.validated_data['status'])
    return Response({'appointments': [records.format_appointment(a) for a in qs.order_by('appointment_date', 'id')]})


def _create(request):
    if request.user.role != User.ROLE_PATIENT:
        raise PermissionDenied('Only patients can book appointments here')
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    # Same lookup order as the bookAppointment operation: doctor, then patient.
    doctor = Doctor.objects.filter(id=vd['doctor_id']).first()
    if not doctor:
        raise NotFound('Doctor not found')
    patient = Patient.objects.filter(user=request.user).first()
    if not patient:
        raise NotFound('Patient profile not found')

    appt = book_appointment(
        patient=patient,
        doctor=doctor,
        when=vd['appointment_date'],
        duration_minutes=vd['duration_minutes'],
        reason=vd.get('reason', ''),
        notes=vd.get('notes', ''),
        booked_by=request.user,
    )
    return Response({'appointment': records.format_appointment(appt)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def appointment_status(request, pk: int):
    appt = Appointment.objects.select_related('patient', 'doctor').filter(id=pk).first()
    if not appt:
        raise NotFound('Appointment not found')
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        change_status(request.user, appt, s.validated_data['status'], notes=s.validated_data.get('notes'))
    except PermissionError as e:
        raise PermissionDenied(str(e))
    except ValueError as e:
        raise ValidationError({'status': [str(e)]})
    return Response({'appointment': records.format_appointment(appt)})
