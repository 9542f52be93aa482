"""Audit trail helpers; every sensitive write leaves an ``AuditEvent`` row."""
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from clinic.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    return AuditEvent.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail or {},
    )


def client_ip(request) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_request_action(request, action: str, **kwargs) -> AuditEvent:
    """``log_action`` for the request's user, recording the client address."""
    detail = dict(kwargs.pop('detail', None) or {})
    detail.setdefault('ip', client_ip(request))
    return log_action(user=getattr(request, 'user', None), action=action, detail=detail, **kwargs)
