"""Authentication dependencies for admin endpoints and the scheduler trigger."""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request


def _matches(supplied: str, expected: str) -> bool:
    return hmac.compare_digest(supplied.encode(), expected.encode())


async def require_api_key(request: Request) -> None:
    """Check the X-API-Key header on admin endpoints.

    Auth is disabled when no key is configured.
    """
    config = request.app.state.config
    if not config.auth.api_key:
        return
    if not _matches(request.headers.get("X-API-Key", ""), config.auth.api_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def require_cron_secret(request: Request) -> None:
    """Check ``Authorization: Bearer <cron_secret>`` on the monitor trigger.

    Auth is disabled when no secret is configured.
    """
    config = request.app.state.config
    if not config.auth.cron_secret:
        return
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not _matches(token.strip(), config.auth.cron_secret):
        raise HTTPException(status_code=401, detail="Unauthorized")
