"""
Token authentication for the REST API.

Kept apart from the views so that DRF can import the authentication
class during start-up without pulling in view modules.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication that also accepts the ``Bearer`` keyword.

    Browser clients send ``Authorization: Bearer <key>``; scripts and the
    API docs use the classic ``Token <key>`` form.
    """

    keyword = 'Token'

    def authenticate(self, request):
        auth = authentication.get_authorization_header(request).split()
        if auth and auth[0].lower() == b'bearer' and len(auth) == 2:
            try:
                key = auth[1].decode()
            except UnicodeError:
                return None
            # JWT access tokens (three dot separated segments) are left to simplejwt
            if key.count('.') == 2:
                return None
            return self.authenticate_credentials(key)
        return super().authenticate(request)
