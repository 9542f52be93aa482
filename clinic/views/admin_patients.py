"""
Patient administration.

Listing with a free-text search, a detail view carrying every related
record and an update that touches the profile and its owning user in
one transaction.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Patient
from clinic.permissions import IsElevatedRole
from clinic.serializers.patient import PatientListQuerySerializer, PatientUpdateSerializer
from clinic.services.audit import log_request_action
from clinic.services.patients import format_patient_row, patient_detail, search_patients
from clinic.services.users import update_patient


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsElevatedRole])
def list_patients(request):
    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = search_patients((q.validated_data.get('search') or '').strip() or None)
    page = q.validated_data.get('page') or 1
    page_size = q.validated_data.get('pageSize') or 0
    if page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]
    return Response({'patients': [format_patient_row(p) for p in qs]})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsElevatedRole])
def patient_view(request, pk: int):
    patient = Patient.objects.select_related('user').filter(id=pk).first()
    if not patient:
        raise NotFound('Patient not found')
    if request.method == 'PATCH':
        s = PatientUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        update_patient(patient, s.validated_data)
        log_request_action(request, 'patient_update', object_type='patient', object_id=patient.id,
                           detail={'fields': sorted(s.validated_data)})
        patient.refresh_from_db()
    return Response({'patient': patient_detail(patient)})
