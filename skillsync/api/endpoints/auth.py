"""Authentication-related API endpoints (email one-time codes)."""

import structlog

from skillsync.api.http_client import AsyncHttpClient, reading_response
from skillsync.exceptions import SkillSyncError
from skillsync.models.auth import AuthTokens

logger = structlog.get_logger(__name__)


async def request_otp(http: AsyncHttpClient, email: str) -> None:
    """
    Ask the server to email a one-time code.

    Args:
        http: Configured async HTTP client.
        email: Account email address.
    """
    await http.request(
        "POST",
        "/auth/otp/request",
        json={"email": email},
        authenticated=False,
    )


async def verify_otp(http: AsyncHttpClient, email: str, code: str) -> AuthTokens:
    """
    Exchange a one-time code for tokens.

    Args:
        http: Configured async HTTP client.
        email: Account email address.
        code: Code received by email.

    Returns:
        Access and refresh tokens plus the account identity.
    """
    response = await http.request(
        "POST",
        "/auth/otp/verify",
        json={"email": email, "code": code},
        authenticated=False,
    )
    with reading_response("/auth/otp/verify"):
        user = response.get("user", {})
        return AuthTokens(
            access_token=response["accessToken"],
            refresh_token=response["refreshToken"],
            user_id=user.get("id", ""),
            email=user.get("email", email),
            is_new_user=bool(user.get("isNewUser", False)),
        )


async def logout(http: AsyncHttpClient, refresh_token: str | None) -> None:
    """Invalidate the refresh token server-side. Failures are logged, not raised."""
    try:
        await http.request(
            "POST",
            "/auth/logout",
            json={"refreshToken": refresh_token},
            auto_refresh=False,
        )
    except SkillSyncError as e:
        logger.warning("Logout request failed", error=str(e))
