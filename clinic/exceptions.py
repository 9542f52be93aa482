import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

STATUS_CODES = {400: 'invalid', 401: 'not_authenticated', 403: 'permission_denied', 404: 'not_found',
                405: 'method_not_allowed', 429: 'throttled'}


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.error('unhandled error in %s', context.get('view'), exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
                        status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    code = getattr(exc, 'default_code', None) or STATUS_CODES.get(resp.status_code, 'api_error')
    resp.data = {'ok': False, 'error': {'code': code, 'message': detail}}
    return resp
