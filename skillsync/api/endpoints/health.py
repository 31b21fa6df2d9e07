"""Server health endpoint."""

from typing import Any

from skillsync.api.http_client import AsyncHttpClient


async def check_health(http: AsyncHttpClient) -> dict[str, Any]:
    """
    Returns:
        Server name, version and status.

    Raises:
        NetworkError: If the server cannot be reached.
        APIError: If the server answers with an error status.
    """
    return await http.request("GET", "/", authenticated=False)
