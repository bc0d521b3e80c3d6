import logging

import asyncpg
from fastapi import APIRouter, HTTPException, Request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/database", summary="Database connectivity probe")
async def ping_database(request: Request) -> dict[str, str]:
    tester = getattr(request.app.state, "postgres_tester", None)
    if tester is None:
        raise HTTPException(status_code=503, detail="Database probe is not configured")
    try:
        await tester.test_connection()
    except (OSError, asyncpg.PostgresError) as exc:
        logger.warning("Database probe failed: %s", exc)
        raise HTTPException(status_code=503, detail="Database is unreachable") from exc
    return {"status": "ok", "database": "reachable"}
