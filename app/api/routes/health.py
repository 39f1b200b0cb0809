from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Not rate limited and never touches storage, so it stays green while the
    database is unreachable.
    """

    return {"status": "ok"}
