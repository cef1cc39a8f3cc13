"""
API authentication using X-API-KEY header.
"""

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from events_indexer.config.settings import get_settings

api_key_header = APIKeyHeader(name="X-API-KEY", auto_error=False)


def _valid_keys() -> list[str]:
    settings = get_settings()
    if not settings.api_keys:
        return []
    return [k.strip() for k in settings.api_keys.split(",") if k.strip()]


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """
    Verify the X-API-KEY header against API_KEYS (comma-separated).

    With no keys configured every request is allowed.

    Raises:
        HTTPException: 401 if the key is missing or not configured
    """
    valid_keys = _valid_keys()
    if not valid_keys:
        return "dev-mode"

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-KEY header.",
        )

    if api_key not in valid_keys:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key
