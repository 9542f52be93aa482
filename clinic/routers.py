"""
URL mappings for the healthcare backend API.

Trailing slashes are omitted throughout (``APPEND_SLASH = False``); the
front-end calls the bare paths.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, register_view
from .views import admin_billings, admin_patients, admin_users, appointments, assistant, chat, health
from .views.dashboard import admin_dashboard
from .views.doctors import doctors
from .views.patients import dashboard as patient_dashboard

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    # Doctors & appointments
    path('api/doctors', doctors, name='doctors'),
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/<int:pk>/status', appointments.appointment_status, name='appointment_status'),
    # Patient self-service
    path('api/patient/dashboard', patient_dashboard, name='patient_dashboard'),
    # Assistant
    path('api/chat', chat.chat, name='chat'),
    path('api/assistant/tools', assistant.tools, name='assistant_tools'),
    path('api/assistant/invoke', assistant.invoke, name='assistant_invoke'),
    # Administration
    path('api/admin/stats', admin_dashboard, name='admin_stats'),
    path('api/admin/patients', admin_patients.list_patients, name='admin_patients'),
    path('api/admin/patients/<int:pk>', admin_patients.patient_view, name='admin_patient'),
    path('api/admin/billings', admin_billings.list_billing, name='admin_billings'),
    path('api/admin/billings/<int:pk>', admin_billings.billing_view, name='admin_billing'),
    path('api/admin/users', admin_users.users, name='admin_users'),
    path('api/admin/users/<int:pk>', admin_users.user_view, name='admin_user'),
]
