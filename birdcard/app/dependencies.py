"""Request dependencies shared by the routers."""

from typing import Annotated

import fastapi

from .engine import CardEngine


def get_engine(request: fastapi.Request) -> CardEngine:
    return request.app.state.engine


Engine = Annotated[CardEngine, fastapi.Depends(get_engine)]


def observer_address(request: fastapi.Request) -> str | None:
    """First ``X-Forwarded-For`` entry, else the socket peer."""
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        first = forwarded.split(',')[0].strip()
        if first:
            return first
    if request.client is not None:
        return request.client.host
    return None


ObserverAddress = Annotated[str | None, fastapi.Depends(observer_address)]
