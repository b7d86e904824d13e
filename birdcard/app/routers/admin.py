"""Scheduler and debug endpoints."""

import logging

import fastapi

from .. import settings
from ..dependencies import Engine
from ..engine import PlayResult

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix='/api/v1')


def require_scheduler_token(request: fastapi.Request) -> None:
    """Reject the call unless it carries the configured scheduler token."""
    expected = settings.SCHEDULER_TOKEN
    if not expected:
        return
    if request.headers.get('X-Scheduler-Token') != expected:
        logger.warning('[admin] Daily update rejected: bad scheduler token')
        raise fastapi.HTTPException(
            status_code=fastapi.status.HTTP_401_UNAUTHORIZED,
            detail='Invalid scheduler token',
        )


@router.post('/daily-update', dependencies=[fastapi.Depends(require_scheduler_token)])
async def daily_update(engine: Engine, card: str | None = None) -> PlayResult:
    """Seed today's global bird and publish it."""
    try:
        return await engine.run_daily_update(card)
    except ValueError as exc:
        raise fastapi.HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/cache/stats')
async def cache_stats(engine: Engine) -> dict[str, int]:
    """Cache and session counters."""
    return engine.stats()
