"""FastAPI dependencies."""

import hmac
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import jwt
from fastapi import Depends, Header, Request

from bazaar.config import Settings
from bazaar.container import ServiceContainer, Services
from bazaar.errors import AuthError, ForbiddenError


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""

    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_config(container: ServiceContainer = Depends(get_container)) -> Settings:
    return container.config


async def get_services(
    container: ServiceContainer = Depends(get_container),
) -> AsyncIterator[Services]:
    """One database session (and service bundle) per request."""
    async with container.session_factory() as session:
        yield container.services(session)


def decode_token(token: str, config: Settings) -> Principal:
    """
    Verify a bearer token issued by the identity service.

    Raises:
        AuthError: signature, expiry or claims are invalid
    """
    options = {"require": ["sub"]}
    kwargs = {"algorithms": [config.jwt_algorithm], "options": options}
    if config.jwt_audience:
        kwargs["audience"] = config.jwt_audience
    else:
        options["verify_aud"] = False

    try:
        payload = jwt.decode(token, config.jwt_secret, **kwargs)
    except jwt.PyJWTError as e:
        raise AuthError("UNAUTHORIZED", detail=str(e)) from e

    user_id = str(payload.get("sub") or "")
    if not user_id:
        raise AuthError("UNAUTHORIZED", detail="token has no subject")
    return Principal(user_id=user_id, role=str(payload.get("role") or "user"))


async def get_optional_principal(
    authorization: Optional[str] = Header(None),
    config: Settings = Depends(get_config),
) -> Optional[Principal]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("UNAUTHORIZED", detail="malformed Authorization header")
    return decode_token(token.strip(), config)


async def require_user(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """Dependency requiring a signed-in user."""
    if principal is None:
        raise AuthError("PLEASE_LOGIN")
    return principal


async def require_admin(
    x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-API-Key"),
    principal: Optional[Principal] = Depends(get_optional_principal),
    config: Settings = Depends(get_config),
) -> Principal:
    """
    Dependency for admin endpoints.

    Accepts either an admin bearer token or the X-Admin-API-Key header
    used by automation.
    """
    if x_admin_api_key:
        if config.admin_api_key and hmac.compare_digest(x_admin_api_key.encode(), config.admin_api_key.encode()):
            return Principal(user_id="admin-api-key", role="admin")
        raise ForbiddenError("ADMIN_REQUIRED", detail="invalid admin API key")

    if principal is None:
        raise AuthError("PLEASE_LOGIN")
    if not principal.is_admin:
        raise ForbiddenError("ADMIN_REQUIRED")
    return principal
