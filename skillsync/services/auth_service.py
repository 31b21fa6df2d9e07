"""
Authentication service for skillsync.

Handles the email one-time-code flow and keeps the saved session in step
with the HTTP client.
"""

import asyncio

import structlog

from skillsync.api.endpoints import auth as auth_api
from skillsync.api.http_client import AsyncHttpClient, Session
from skillsync.core.rate_limit import RateLimiter
from skillsync.credentials import Credentials, CredentialStore
from skillsync.exceptions import AuthenticationError
from skillsync.models.auth import AuthTokens

logger = structlog.get_logger(__name__)


class AuthService:
    """
    Handles one-time-code login, session restore and logout.

    Tokens live in AsyncHttpClient for requests and in the credential store
    across runs. Code requests are rate limited per email address before
    they reach the server.
    """

    def __init__(
        self,
        http_client: AsyncHttpClient,
        credential_store: CredentialStore,
        otp_limiter: RateLimiter,
    ) -> None:
        """
        Args:
            http_client: HTTP client for API requests.
            credential_store: Persistent credential storage.
            otp_limiter: Limiter applied to code requests, keyed by email.
        """
        self._http = http_client
        self._store = credential_store
        self._otp_limiter = otp_limiter
        self._lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self._http.is_authenticated

    async def restore_session(self) -> bool:
        """
        Load saved tokens into the HTTP client.

        Returns:
            True if a saved session was found.
        """
        credentials = self._store.load()
        if credentials is None or not credentials.is_logged_in:
            return False
        await self._http.set_session(credentials.access_token, credentials.refresh_token)
        logger.debug("Session restored", email=credentials.email)
        return True

    async def request_otp(self, email: str) -> None:
        """
        Ask the server to email a login code.

        Raises:
            AuthenticationError: If the email is empty.
            RateLimitError: If too many codes were requested for this email.
        """
        email = email.strip()
        if not email:
            msg = "Email is required"
            raise AuthenticationError(msg)

        self._otp_limiter.hit(email)
        await auth_api.request_otp(self._http, email)
        logger.info("Login code requested")

    async def verify_otp(self, email: str, code: str) -> AuthTokens:
        """
        Exchange a code for tokens and save them.

        Vault material already saved for this account is kept; anything saved
        for a different account is dropped.

        Raises:
            AuthenticationError: If the code is wrong or expired.
        """
        email = email.strip()
        async with self._lock:
            tokens = await auth_api.verify_otp(self._http, email, code.strip())
            await self._http.set_session(tokens.access_token, tokens.refresh_token)

            previous = self._store.load()
            if previous is not None and previous.email == tokens.email:
                credentials = previous.with_tokens(tokens.access_token, tokens.refresh_token)
            else:
                credentials = Credentials(
                    access_token=tokens.access_token,
                    refresh_token=tokens.refresh_token,
                    email=tokens.email,
                )
            self._store.save(credentials)
            self._otp_limiter.reset(email)

        logger.info("Logged in", is_new_user=tokens.is_new_user)
        return tokens

    def persist_session(self, session: Session) -> None:
        """Save refreshed tokens. Used as the HTTP client's refresh listener."""
        credentials = self._store.load() or Credentials()
        self._store.save(credentials.with_tokens(session.access_token, session.refresh_token))

    async def logout(self) -> None:
        """Invalidate the session server-side and forget local credentials."""
        async with self._lock:
            session = self._http.session
            if session is not None:
                await auth_api.logout(self._http, session.refresh_token)
            await self._http.clear_session()
            self._store.delete()
        logger.info("Logged out")

    def require_authenticated(self) -> None:
        if not self.is_authenticated:
            msg = "Not logged in. Call verify_otp() first."
            raise AuthenticationError(msg)
