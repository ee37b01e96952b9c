from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from .services.token_service import ACCESS, TokenService


class JWTCookieAuthentication(BaseAuthentication):
    """
    Authentication using a JWT access token.

    The token is taken from an ``Authorization: Bearer <token>`` header, or
    from the HTTP-only access token cookie set at login. The decoded payload
    is available to permissions as ``request.auth``.
    """
    keyword = 'Bearer'

    def get_raw_token(self, request):
        header = request.headers.get('Authorization', '')
        if header:
            parts = header.split()
            if len(parts) != 2 or parts[0] != self.keyword:
                raise AuthenticationFailed('Invalid Authorization header')
            return parts[1]
        return request.COOKIES.get(settings.ACCESS_TOKEN_COOKIE)

    def authenticate(self, request):
        token = self.get_raw_token(request)
        if not token:
            return None

        payload = TokenService.decode(token, ACCESS)

        User = get_user_model()
        try:
            user = User.objects.get(pk=payload.get('user_id'))
        except User.DoesNotExist:
            raise AuthenticationFailed('User not found')

        if not user.is_active:
            raise AuthenticationFailed('Account is deactivated')

        return (user, payload)

    def authenticate_header(self, request):
        return self.keyword


class TokenIssuingAuthentication(JWTCookieAuthentication):
    """
    For the login, refresh and logout endpoints.

    Never authenticates, so a stale access cookie cannot block a login, but
    credential failures still answer 401 with a Bearer challenge.
    """

    def authenticate(self, request):
        return None
