"""
Streaming chat endpoint.

``POST /api/chat`` runs one assistant turn and streams it back as
server-sent events::

    event: text   data: {"text": "..."}
    event: done   data: {}
    event: error  data: {"error": "...", "code": "QUOTA_EXCEEDED"}

Configuration and request errors are reported as ordinary JSON responses
before the stream starts.
"""
import json
import logging

from django.conf import settings
from django.http import StreamingHttpResponse
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.assistant.engine import run_turn
from clinic.assistant.provider import UNKNOWN_ERROR, AssistantError
from clinic.permissions import CanUseAssistant
from clinic.serializers.assistant import ChatRequestSerializer
from clinic.services.queries import capability_for_user
from clinic.throttles import AssistantRateThrottle

logger = logging.getLogger(__name__)


def _event(name: str, data: dict) -> str:
    return f"event: {name}\ndata: {json.dumps(data)}\n\n"


def _stream(capability, messages):
    try:
        for text in run_turn(capability, messages):
            yield _event('text', {'text': text})
    except AssistantError as e:
        yield _event('error', e.as_dict())
        return
    except Exception:
        logger.exception('chat stream failed user=%s', capability.user_id)
        yield _event('error', {'error': 'An error occurred while processing your request.', 'code': UNKNOWN_ERROR})
        return
    yield _event('done', {})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanUseAssistant])
@throttle_classes([AssistantRateThrottle])
def chat(request):
    if not settings.GOOGLE_GENERATIVE_AI_API_KEY:
        logger.error('chat called without GOOGLE_GENERATIVE_AI_API_KEY')
        return Response({'ok': False, 'error': {
            'code': 'not_configured',
            'message': 'AI service not configured. Please add GOOGLE_GENERATIVE_AI_API_KEY to your environment variables.',
        }}, status=500)
    s = ChatRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    messages = s.validated_data['messages']
    capability = capability_for_user(request.user)
    logger.info('chat turn user=%s role=%s messages=%s', request.user.id, request.user.role, len(messages))

    resp = StreamingHttpResponse(_stream(capability, messages), content_type='text/event-stream')
    resp['Cache-Control'] = 'no-cache'
    resp['X-Accel-Buffering'] = 'no'
    return resp
