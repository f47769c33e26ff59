from supabase import Client
from fastapi import HTTPException, status
from config import get_supabase_client, get_supabase_admin_client, JWT_SECRET_KEY, JWT_ALGORITHM
from typing import Any, Dict, NamedTuple, Optional
import jwt
import logging

logger = logging.getLogger(__name__)

MARKETPLACE_ROLES = {"vendor", "supplier", "admin"}


class TokenClaims(NamedTuple):
    user_id: str
    email: Optional[str]
    role: Optional[str]
    payload: Dict[str, Any]


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class AuthHelpers:
    """Supabase clients plus local verification of Supabase-issued access tokens"""

    def __init__(self):
        self._supabase = None
        self._admin_client = None

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase_client()
        return self._supabase

    @property
    def admin_client(self) -> Client:
        if self._admin_client is None:
            self._admin_client = get_supabase_admin_client()
        return self._admin_client

    def verify_token(self, token: str) -> TokenClaims:
        """
        Verify signature, exp and iat locally, no round trip to Supabase

        The marketplace role rides in user_metadata; anything outside
        MARKETPLACE_ROLES is dropped so the stored profile decides instead
        """
        if not JWT_SECRET_KEY:
            logger.error("JWT_SECRET_KEY is not configured")
            raise unauthorized("Token verification failed")

        try:
            payload = jwt.decode(
                token,
                JWT_SECRET_KEY,
                algorithms=[JWT_ALGORITHM],
                options={"verify_exp": True, "verify_iat": True, "verify_aud": False}
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Rejected expired access token")
            raise unauthorized("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected access token: {str(e)}")
            raise unauthorized("Invalid token")

        user_id = payload.get("sub")
        if not user_id:
            raise unauthorized("Invalid token: missing user ID")

        role = (payload.get("user_metadata") or {}).get("role")
        if role is not None and role not in MARKETPLACE_ROLES:
            logger.warning(f"Ignoring unknown role {role!r} in token of {user_id}")
            role = None

        return TokenClaims(user_id=user_id, email=payload.get("email"), role=role, payload=payload)

    async def refresh_token(self, refresh_token: str):
        """Exchange a refresh token for a new Supabase session"""
        try:
            auth_response = self.supabase.auth.refresh_session(refresh_token)
        except Exception as e:
            logger.error(f"Token refresh error: {str(e)}")
            raise unauthorized("Invalid refresh token")

        if auth_response.session is None:
            raise unauthorized("Invalid refresh token")

        return auth_response.session

    def revoke_session(self, access_token: str) -> None:
        """Sign the session behind an access token out of every device"""
        self.admin_client.auth.admin.sign_out(access_token)


auth_helpers = AuthHelpers()
