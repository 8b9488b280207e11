from typing import Callable, NamedTuple, Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client, create_client
from supabase_auth.errors import AuthError, AuthRetryableError

from app.core.config import Settings
from app.core.exceptions import Unauthorized, UpstreamError
from app.core.logging import logger

security = HTTPBearer(auto_error=False)


class AuthenticatedUser(NamedTuple):
    id: str
    token: str


class IdentityProvider:
    """Validates bearer tokens against Supabase Auth."""

    def __init__(self, settings: Settings, client_factory: Callable[[str, str], Client] = create_client):
        self.settings = settings
        self.client_factory = client_factory
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            if not self.settings.supabase_url or not self.settings.supabase_key:
                logger.error("SUPABASE_URL or SUPABASE_KEY missing")
                raise UpstreamError("Servicio de autenticación no configurado")
            self._client = self.client_factory(self.settings.supabase_url, self.settings.supabase_key)
        return self._client

    def authenticate(self, token: str) -> AuthenticatedUser:
        client = self.client
        try:
            response = client.auth.get_user(token)
        except (AuthRetryableError, httpx.HTTPError) as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise UpstreamError("Servicio de autenticación no disponible", cause=e) from e
        except AuthError as e:
            logger.warning(f"Token rejected by identity provider: {e}")
            raise Unauthorized("Token inválido o expirado") from e

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise Unauthorized("Token inválido o expirado")
        return AuthenticatedUser(id=str(user.id), token=token)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials.strip():
        raise Unauthorized("Falta el token de autorización")
    identity: IdentityProvider = request.app.state.identity
    return identity.authenticate(credentials.credentials.strip())
