"""
User administration (admin role only).

Creating a user also creates the profile matching its role; updates
apply to the user and that profile atomically.  Deleting a user removes
its profile and every record hanging off it.
"""
from __future__ import annotations

import logging

from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import User
from clinic.permissions import IsAdminRole
from clinic.serializers.users import UserCreateSerializer, UserListQuerySerializer, UserUpdateSerializer
from clinic.services.audit import log_request_action
from clinic.services.users import format_user, provision_user, update_user

logger = logging.getLogger(__name__)

PROFILE_RELATED = ('patient', 'doctor', 'staff')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users(request):
    if request.method == 'POST':
        s = UserCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = dict(s.validated_data)
        user, initial_password = provision_user(
            email=vd.pop('email'),
            password=vd.pop('password', None) or None,
            role=vd.pop('role'),
            phone=vd.pop('phone', ''),
            profile=vd,
        )
        log_request_action(request, 'user_create', object_type='user', object_id=user.id,
                           detail={'role': user.role})
        payload = {'user': format_user(user)}
        if not s.validated_data.get('password'):
            payload['initialPassword'] = initial_password
        return Response(payload, status=status.HTTP_201_CREATED)

    q = UserListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = User.objects.select_related(*PROFILE_RELATED).order_by('-date_joined', '-id')
    if q.validated_data.get('role'):
        qs = qs.filter(role=q.validated_data['role'])
    search = (q.validated_data.get('search') or '').strip()
    if search:
        qs = qs.filter(Q(email__icontains=search) | Q(phone__icontains=search))
    return Response({'users': [format_user(u) for u in qs]})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_view(request, pk: int):
    user = User.objects.select_related(*PROFILE_RELATED).filter(id=pk).first()
    if not user:
        raise NotFound('User not found')

    if request.method == 'DELETE':
        if user.pk == request.user.pk:
            raise ValidationError({'detail': 'You cannot delete your own account'})
        log_request_action(request, 'user_delete', object_type='user', object_id=user.id,
                           detail={'email': user.email, 'role': user.role})
        user.delete()
        logger.info('user %s deleted by %s', pk, request.user.id)
        return Response({'ok': True})

    if request.method == 'PATCH':
        s = UserUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        update_user(user, s.validated_data)
        log_request_action(request, 'user_update', object_type='user', object_id=user.id,
                           detail={'fields': sorted(k for k in s.validated_data if k != 'password')})
        user = User.objects.select_related(*PROFILE_RELATED).get(id=pk)
    return Response({'user': format_user(user)})
