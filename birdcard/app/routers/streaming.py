"""Streaming track fetches referenced by the published card."""

import fastapi
import fastapi.responses

from ..dependencies import Engine, ObserverAddress
from ..models import TrackKind

router = fastapi.APIRouter(prefix='/api/v1')

SESSION_HEADER = 'X-Session-ID'


@router.get('/stream/{track_kind}')
async def stream_track(
    track_kind: TrackKind,
    engine: Engine,
    address: ObserverAddress,
    session: str | None = None,
    card: str | None = None,
) -> fastapi.responses.RedirectResponse:
    """Redirect to the audio for one track of the session's bird."""
    try:
        result = await engine.handle_track(track_kind, session, card, address)
    except ValueError as exc:
        raise fastapi.HTTPException(status_code=400, detail=str(exc)) from exc
    return fastapi.responses.RedirectResponse(
        url=result.url,
        status_code=fastapi.status.HTTP_302_FOUND,
        headers={SESSION_HEADER: result.session_id},
    )
