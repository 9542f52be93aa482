"""
WebSocket authentication.

Browsers cannot set an ``Authorization`` header on a WebSocket handshake,
so API clients pass their DRF token as ``?token=<key>``.  Session users
are still resolved by Channels' ``AuthMiddlewareStack``.
"""
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from rest_framework.authtoken.models import Token


@database_sync_to_async
def _user_for_token(key: str):
    token = Token.objects.select_related("user").filter(key=key).first()
    if token and token.user.is_active:
        return token.user
    return None


class TokenAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        query = parse_qs(scope.get("query_string", b"").decode())
        key = (query.get("token") or [""])[0]
        if key:
            user = await _user_for_token(key)
            if user is not None:
                scope = dict(scope, user=user)
        return await super().__call__(scope, receive, send)


def TokenAuthMiddlewareStack(inner):
    # session auth first; a valid token overrides the resulting user
    return AuthMiddlewareStack(TokenAuthMiddleware(inner))
