"""
Root URL configuration.

Everything under ``/api/`` (plus ``/healthz`` and ``/metrics``) comes from
``clinic.routers``; the OpenAPI schema is served raw at ``/swagger.json``
and rendered at ``/swagger/`` and ``/redoc/``.
"""
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

api_info = openapi.Info(
    title="Healthcare Backend API",
    default_version="v1",
    description=(
        "Patients, doctors, appointments, billing, prescriptions and lab results, "
        "plus the role-scoped records assistant."
    ),
)

schema_view = get_schema_view(api_info, public=True, permission_classes=(permissions.AllowAny,))

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("clinic.routers")),
    path("swagger.json", schema_view.without_ui(cache_timeout=0), name="schema-json"),
    path("swagger/", schema_view.with_ui("swagger", cache_timeout=0), name="schema-swagger-ui"),
    path("redoc/", schema_view.with_ui("redoc", cache_timeout=0), name="schema-redoc"),
]
