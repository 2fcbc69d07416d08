"""
Bearer-token authentication.

The API layer only needs one thing from authentication: given the current
request, who is the user (or nobody). ``JWTAuthProvider`` answers that from an
HS256-signed JWT in the ``Authorization: Bearer`` header. Any object with a
``get_current_user(request)`` method can be injected instead.
"""

from datetime import timedelta
from typing import Any, Dict, Iterable, Optional

import jwt
import structlog
from pydantic import ValidationError as PydanticValidationError

from dealership.business.models import CurrentUser, UserRole, utcnow

logger = structlog.get_logger(__name__)

BEARER_PREFIX = 'bearer '


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class JWTAuthProvider:
    """
    Resolve the current user from a signed JWT.

    Required claims: ``sub`` (user id) and ``role``. ``email`` and ``name``
    are optional. Missing, malformed, expired or badly signed tokens all
    resolve to no user.
    """

    def __init__(
        self,
        secret_key: str,
        algorithms: Iterable[str] = ('HS256',),
        expiration: timedelta = timedelta(hours=1),
    ):
        self.secret_key = secret_key
        self.algorithms = list(algorithms)
        self.expiration = expiration

    def issue_token(
        self,
        user_id: str,
        role: UserRole,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        now = utcnow()
        claims: Dict[str, Any] = {
            'sub': user_id,
            'role': UserRole(role).value,
            'iat': now,
            'exp': now + (expires_in if expires_in is not None else self.expiration),
        }
        if email:
            claims['email'] = email
        if full_name:
            claims['name'] = full_name
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithms[0])

    def decode(self, token: str) -> Optional[CurrentUser]:
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=self.algorithms,
                options={'require': ['sub', 'exp']},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return None
        except jwt.PyJWTError as exc:
            logger.info("Rejected invalid token", error_type=type(exc).__name__)
            return None

        try:
            return CurrentUser(
                id=str(claims['sub']),
                email=claims.get('email'),
                role=claims.get('role'),
                full_name=claims.get('name'),
            )
        except PydanticValidationError:
            logger.info("Rejected token with unknown role", role=claims.get('role'))
            return None

    def get_current_user(self, request) -> Optional[CurrentUser]:
        token = extract_bearer_token(request.headers.get('Authorization'))
        if token is None:
            return None
        return self.decode(token)


__all__ = ['JWTAuthProvider', 'extract_bearer_token']
