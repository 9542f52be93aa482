"""Patient self-service endpoints."""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Patient
from clinic.permissions import IsPatientRole
from clinic.services.patients import patient_dashboard


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def dashboard(request):
    """Upcoming visits, active prescriptions, recent labs and open bills."""
    patient = Patient.objects.filter(user=request.user).first()
    if not patient:
        raise NotFound('Patient not found')
    return Response(patient_dashboard(patient))
