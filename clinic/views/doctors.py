from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from clinic.services.doctors import format_doctor_row, list_doctors


@api_view(['GET'])
@permission_classes([AllowAny])
def doctors(request):
    """Available doctors ordered by last name; ``?specialization=`` narrows the list."""
    qs = list_doctors(specialization=(request.query_params.get('specialization') or '').strip() or None)
    return Response({'doctors': [format_doctor_row(d) for d in qs]})
