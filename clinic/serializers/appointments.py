from rest_framework import serializers

from clinic.models import Appointment


class AppointmentListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, required=False)


class AppointmentCreateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(source='doctor_id', min_value=1)
    appointmentDate = serializers.DateTimeField(source='appointment_date')
    durationMinutes = serializers.IntegerField(source='duration_minutes', min_value=5, max_value=480,
                                               required=False, default=30)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
