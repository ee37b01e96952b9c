"""
Token Service

Issues and verifies the JWTs used by the API:

- access tokens (short lived, carry the user's role)
- refresh tokens (long lived, recorded server side and rotated on use)

A user may hold a limited number of live refresh tokens; issuing one more
revokes the oldest.
"""

import logging
import uuid
from typing import Dict

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied

from inventory.models import RefreshToken, StaffProfile

logger = logging.getLogger(__name__)

ACCESS = 'access'
REFRESH = 'refresh'


class TokenService:

    @classmethod
    def role_for(cls, user):
        """Role of ``user``; superusers without a profile count as admins."""
        try:
            return user.staff_profile.role
        except StaffProfile.DoesNotExist:
            return StaffProfile.Role.ADMIN if user.is_superuser else None

    @classmethod
    def check_can_login(cls, user):
        if not user.is_active:
            raise PermissionDenied('Account is deactivated')

        if user.is_superuser:
            return

        try:
            approved = user.staff_profile.approved
        except StaffProfile.DoesNotExist:
            approved = False
        if not approved:
            raise PermissionDenied('Account pending admin approval')

    @classmethod
    def login(cls, username: str, password: str) -> Dict:
        """
        Verify credentials and issue a token pair.

        Raises:
            AuthenticationFailed: On unknown user or wrong password
            PermissionDenied: If the account is deactivated or not approved
        """
        User = get_user_model()
        try:
            user = User.objects.select_related('staff_profile').get(**{User.USERNAME_FIELD: username})
        except User.DoesNotExist:
            logger.warning(f"Login failed for unknown user {username}")
            raise AuthenticationFailed('Invalid credentials')

        if not user.check_password(password):
            logger.warning(f"Login failed for {username}: wrong password")
            raise AuthenticationFailed('Invalid credentials')

        cls.check_can_login(user)

        tokens = cls.issue_pair(user)
        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])

        logger.info(f"User {username} logged in")
        return {'user': user, **tokens}

    @classmethod
    @transaction.atomic
    def issue_pair(cls, user) -> Dict:
        return {
            'access': cls.create_access_token(user),
            'refresh': cls.create_refresh_token(user),
        }

    @classmethod
    def create_access_token(cls, user) -> str:
        now = timezone.now()
        payload = {
            'user_id': user.pk,
            'username': user.get_username(),
            'role': cls.role_for(user),
            'type': ACCESS,
            'iat': now,
            'exp': now + settings.JWT_ACCESS_TOKEN_LIFETIME,
        }
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @classmethod
    def create_refresh_token(cls, user) -> str:
        now = timezone.now()
        record = RefreshToken.objects.create(
            jti=uuid.uuid4().hex,
            user=user,
            expires_at=now + settings.JWT_REFRESH_TOKEN_LIFETIME,
        )

        live = RefreshToken.objects.filter(
            user=user, revoked_at__isnull=True, expires_at__gt=now
        ).order_by('-created_at', '-id')
        stale_ids = list(live.values_list('id', flat=True)[settings.JWT_MAX_REFRESH_TOKENS:])
        if stale_ids:
            RefreshToken.objects.filter(id__in=stale_ids).update(revoked_at=now)

        payload = {
            'user_id': user.pk,
            'jti': record.jti,
            'type': REFRESH,
            'iat': now,
            'exp': record.expires_at,
        }
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @classmethod
    def decode(cls, token: str, expected_type: str) -> Dict:
        """
        Decode and verify a token of ``expected_type``.

        Raises:
            AuthenticationFailed: If the token is expired, tampered with or of the wrong type
        """
        try:
            payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError:
            raise AuthenticationFailed('Invalid token')

        if payload.get('type') != expected_type:
            raise AuthenticationFailed('Invalid token')
        return payload

    @classmethod
    def refresh(cls, refresh_token: str) -> Dict:
        """
        Exchange a refresh token for a new token pair and revoke the old one.

        Raises:
            AuthenticationFailed: If the token is missing, invalid, expired or revoked
            PermissionDenied: If the account can no longer log in
        """
        if not refresh_token:
            raise AuthenticationFailed('Refresh token required')

        payload = cls.decode(refresh_token, REFRESH)

        with transaction.atomic():
            try:
                record = RefreshToken.objects.select_for_update().select_related('user').get(
                    jti=payload.get('jti'), user_id=payload.get('user_id')
                )
            except RefreshToken.DoesNotExist:
                raise AuthenticationFailed('Invalid refresh token')

            if not record.is_active:
                logger.warning(f"Reuse of revoked refresh token for user {record.user_id}")
                raise AuthenticationFailed('Invalid refresh token')

            user = record.user
            cls.check_can_login(user)

            record.revoked_at = timezone.now()
            record.save(update_fields=['revoked_at'])
            tokens = cls.issue_pair(user)

        logger.info(f"Tokens refreshed for user {user.get_username()}")
        return {'user': user, **tokens}

    @classmethod
    def revoke(cls, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown or invalid tokens are ignored."""
        if not refresh_token:
            return
        try:
            payload = jwt.decode(
                refresh_token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                options={'verify_exp': False},
            )
        except jwt.InvalidTokenError:
            return

        revoked = RefreshToken.objects.filter(
            jti=payload.get('jti'), revoked_at__isnull=True
        ).update(revoked_at=timezone.now())
        if revoked:
            logger.info(f"Refresh token revoked for user {payload.get('user_id')}")
