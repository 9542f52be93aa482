from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Billing
from clinic.permissions import IsElevatedRole
from clinic.serializers.billing import BillingListQuerySerializer, BillingStatusSerializer
from clinic.services.billing import format_billing_row, list_billings, update_billing_status


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsElevatedRole])
def list_billing(request):
    q = BillingListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'billings': [format_billing_row(b) for b in list_billings(q.validated_data.get('status'))]})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsElevatedRole])
def billing_view(request, pk: int):
    """Status update; moving to paid stamps ``paidAt``, other moves leave it as is."""
    billing = Billing.objects.select_related('patient').filter(id=pk).first()
    if not billing:
        raise NotFound('Billing not found')
    s = BillingStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    update_billing_status(billing, s.validated_data['status'], user=request.user)
    return Response({'billing': format_billing_row(billing)})
