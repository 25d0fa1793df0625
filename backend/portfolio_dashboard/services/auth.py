"""Authentication against Supabase auth, plus profile lookup."""

import logging
from typing import Any

from pydantic import ValidationError

from portfolio_dashboard.config import PROFILES_TABLE
from portfolio_dashboard.errors import AuthenticationError, SupabaseError
from portfolio_dashboard.models.user import AuthSession, AuthUser, UserProfile
from portfolio_dashboard.services.cache import CacheService
from portfolio_dashboard.services.supabase import SupabaseClient

logger = logging.getLogger(__name__)


def _session_from_payload(payload: dict[str, Any]) -> AuthSession:
    try:
        return AuthSession.model_validate(payload)
    except ValidationError as e:
        raise AuthenticationError("Malformed session payload") from e


class AuthService:
    """Signs users in and out and resolves bearer tokens to users."""

    def __init__(self, client: SupabaseClient, token_cache: CacheService):
        self._client = client
        self._tokens = token_cache

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            payload = await self._client.sign_in_with_password(email, password)
        except SupabaseError as e:
            logger.info(f"Sign-in rejected for {email}: {e}")
            raise AuthenticationError(e.message) from e
        return _session_from_payload(payload)

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        """Register a user. Returns None while email confirmation is pending."""
        try:
            payload = await self._client.sign_up(email, password)
        except SupabaseError as e:
            logger.info(f"Sign-up rejected for {email}: {e}")
            raise AuthenticationError(e.message) from e
        if not payload or "access_token" not in payload:
            return None
        return _session_from_payload(payload)

    async def refresh(self, refresh_token: str) -> AuthSession:
        try:
            payload = await self._client.refresh_session(refresh_token)
        except SupabaseError as e:
            raise AuthenticationError(e.message) from e
        return _session_from_payload(payload)

    async def sign_out(self, user: AuthUser) -> None:
        self._tokens.delete(f"token:{user.access_token}")
        try:
            await self._client.sign_out(user.access_token)
        except SupabaseError as e:
            logger.error(f"Sign-out failed for user {user.id}: {e}")
            raise

    async def authenticate(self, access_token: str) -> AuthUser:
        """Resolve a bearer token to its user; results are cached briefly."""
        key = f"token:{access_token}"
        cached = self._tokens.get(key)
        if cached is not None:
            return cached
        try:
            data = await self._client.get_user(access_token)
        except SupabaseError as e:
            if e.status_code in (401, 403):
                raise AuthenticationError("Invalid or expired session") from e
            logger.error(f"Token verification failed: {e}")
            raise AuthenticationError("Could not verify session") from e
        if not data or not data.get("id"):
            raise AuthenticationError("Invalid or expired session")

        user = AuthUser(id=data["id"], email=data.get("email"), access_token=access_token)
        self._tokens.set(key, user)
        return user

    async def get_profile(self, user: AuthUser) -> UserProfile:
        """The caller's users-table profile, or their auth identity if none exists."""
        try:
            rows = await self._client.select(
                PROFILES_TABLE, user.access_token, filters={"id": user.id}
            )
        except SupabaseError as e:
            logger.error(f"Error fetching profile for user {user.id}: {e}")
            rows = []
        if rows:
            return UserProfile.model_validate(rows[0])
        return UserProfile(id=user.id, email=user.email)
