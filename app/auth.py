"""
Optional API key check for job submission.

When SHORTS_API_KEY is unset the service runs open (local development).
"""

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from app.config import get_settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Shorts-API-Key"


def api_key_matches(provided: Optional[str], expected: str) -> bool:
    """Constant-time comparison of a provided key against the configured one."""
    if not provided:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())


async def verify_api_key(
    x_shorts_api_key: Optional[str] = Header(None, alias=API_KEY_HEADER),
) -> None:
    """
    FastAPI dependency guarding POST /api/shorts/generate.

    Raises:
        HTTPException: 401 if the key is missing or does not match
    """
    expected_key = get_settings().shorts_api_key
    if not expected_key:
        return

    if not api_key_matches(x_shorts_api_key, expected_key):
        logger.warning(
            f"Rejected request: {'missing' if not x_shorts_api_key else 'invalid'} {API_KEY_HEADER} header"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key" if not x_shorts_api_key else "Invalid API key",
            headers={"WWW-Authenticate": API_KEY_HEADER},
        )
