"""
Administrative dashboard endpoint.

Headline counters plus short appointment and revenue series.  Available
to the elevated roles (admin and staff).
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsElevatedRole
from clinic.services.stats import admin_stats


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsElevatedRole])
def admin_dashboard(request):
    return Response(admin_stats())
