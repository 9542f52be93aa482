"""Direct access to the query operations the assistant uses as tools."""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.assistant.tools import build_tool_declarations
from clinic.serializers.assistant import ToolInvokeSerializer
from clinic.services.queries import capability_for_user, execute
from clinic.services.results import narrate


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tools(request):
    capability = capability_for_user(request.user)
    return Response({'tools': build_tool_declarations(capability)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoke(request):
    """Run one operation for the caller; the outcome is always a 200 with ``ok``."""
    s = ToolInvokeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    capability = capability_for_user(request.user)
    result = execute(capability, s.validated_data['name'], s.validated_data['args'])
    payload = {'ok': result.ok, 'result': narrate(result)}
    if not result.ok:
        payload['code'] = getattr(result, 'code', 'not_found')
    return Response(payload)
