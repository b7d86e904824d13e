"""Play events delivered by the Yoto webhook."""

import logging

import fastapi
import pydantic

from ..dependencies import Engine, ObserverAddress
from ..engine import PlayResult

logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix='/api/v1')


class PlayEvent(pydantic.BaseModel):
    """Webhook body; only ``card.played`` events trigger a selection."""

    model_config = pydantic.ConfigDict(populate_by_name=True)

    event_type: str = pydantic.Field(alias='eventType')
    card_id: str | None = pydantic.Field(default=None, alias='cardId')
    device_id: str | None = pydantic.Field(default=None, alias='deviceId')


@router.post('/yoto/webhook')
async def yoto_webhook(
    event: PlayEvent, engine: Engine, address: ObserverAddress
) -> PlayResult:
    """Handle one play event."""
    logger.info(
        '[webhook] %s card=%s device=%s from %s',
        event.event_type,
        event.card_id,
        event.device_id,
        address,
    )
    try:
        return await engine.handle_play(
            event.event_type, event.card_id, address, event.device_id
        )
    except ValueError as exc:
        raise fastapi.HTTPException(status_code=400, detail=str(exc)) from exc
