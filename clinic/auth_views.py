"""
Authentication views.

Email/password login returning both the DRF token and a JWT pair, public
registration of patient accounts and the JWT refresh/logout endpoints.
Kept apart from ``clinic.authentication`` so DRF can import the
authentication class without importing views.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from clinic.serializers.auth import LoginSerializer, RegisterSerializer
from clinic.services.audit import log_request_action
from clinic.services.users import format_user, provision_user
from clinic.throttles import LoginRateThrottle

logger = logging.getLogger(__name__)


def _user_payload(user) -> dict:
    data = format_user(user)
    profile = data.get('profile') or {}
    data['name'] = ' '.join(filter(None, [profile.get('firstName'), profile.get('lastName')])) or user.email
    return data


# ---------------------------------------------------------------------
# Email/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """
    Login with email and password.  Any ``role`` field in the body is
    ignored; the role always comes from the stored user.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']

    # username mirrors the email for every account
    user = authenticate(request, username=email, password=s.validated_data['password'])
    if not user:
        log_request_action(request, 'login', object_type='user', detail={'result': 'fail', 'email': email})
        logger.info('login failed for %s', email)
        return Response({'ok': False, 'detail': 'Invalid email or password'}, status=status.HTTP_400_BAD_REQUEST)

    log_request_action(request, 'login', object_type='user', object_id=user.id, detail={'result': 'ok'})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': _user_payload(user),
    })


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def register_view(request):
    """Self-service registration; always creates a patient account with its profile."""
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    user, _ = provision_user(
        email=vd.pop('email'),
        password=vd.pop('password'),
        role=vd.pop('role'),
        phone=vd.pop('phone', ''),
        profile=vd,
    )
    log_request_action(request, 'register', object_type='user', object_id=user.id)
    logger.info('registered user %s', user.id)
    return Response({'ok': True, 'user': _user_payload(user)}, status=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from refresh token."""
    resp = TokenRefreshView.as_view()(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as e:
            return Response({'ok': False, 'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_request_action(request, 'logout', object_type='user', object_id=request.user.id,
                       detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
