"""
Django admin registrations for the clinic models.

Lets superusers inspect and correct data through ``/admin/``.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditEvent,
    Billing,
    Doctor,
    LabResult,
    Patient,
    Prescription,
    Staff,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'role', 'is_active', 'is_staff', 'is_superuser', 'date_joined')
    list_filter = ('role', 'is_active')
    search_fields = ('email', 'username', 'phone')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'date_of_birth', 'blood_type', 'user')
    list_filter = ('gender', 'blood_type')
    search_fields = ('first_name', 'last_name', 'user__email')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'specialization', 'department', 'is_available', 'verified')
    list_filter = ('specialization', 'is_available', 'verified')
    search_fields = ('first_name', 'last_name', 'license_number', 'user__email')


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'staff_role', 'department')
    search_fields = ('first_name', 'last_name', 'user__email')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appointment_date', 'status')
    list_filter = ('status',)
    search_fields = ('patient__last_name', 'doctor__last_name', 'reason')
    date_hierarchy = 'appointment_date'


@admin.register(Billing)
class BillingAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'amount', 'currency', 'status', 'issued_at', 'paid_at')
    list_filter = ('status', 'currency')
    search_fields = ('patient__last_name', 'description')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'medication', 'issued_at', 'expires_at')
    search_fields = ('medication', 'patient__last_name')


@admin.register(LabResult)
class LabResultAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'type', 'result', 'reported_at')
    list_filter = ('type',)
    search_fields = ('type', 'patient__last_name')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('user__email',)
