"""FastAPI application for the bird card service."""

import asyncio
import contextlib
import datetime
import logging
from collections.abc import AsyncIterator

import fastapi
import fastapi.responses
import httpx

from . import errors, log, settings
from .clients.ebird import EBirdClient
from .clients.ipgeo import IpApiClient
from .clients.yoto import YotoClient
from .engine import CardEngine, SelectionPolicy
from .location import polygons
from .location.bucket import LocationBucketer
from .location.day_key import DayKeyCalculator
from .location.resolver import LocationResolver
from .publisher import CardPublisher
from .routers import admin, streaming, webhook
from .selection.cache import SelectionCache
from .selection.regionality import RegionalityChecker
from .sessions.store import SessionStore

logger = logging.getLogger(__name__)

# HTTP status per hard-error tier.
_ERROR_STATUS = {
    'publish': fastapi.status.HTTP_502_BAD_GATEWAY,
}


def build_engine(http: httpx.AsyncClient) -> CardEngine:
    """Wire the production collaborators from settings."""
    ebird = EBirdClient(http, settings.EBIRD_API_KEY, settings.EBIRD_API_BASE_URL)
    yoto = YotoClient(http, settings.YOTO_ACCESS_TOKEN, settings.YOTO_API_BASE_URL)
    return CardEngine(
        resolver=LocationResolver(
            IpApiClient(http, settings.IPGEO_BASE_URL),
            yoto,
            sentinels=settings.GEO_SENTINELS,
        ),
        day_keys=DayKeyCalculator(
            primary_lookup=polygons.timezone_at if settings.TIMEZONE_POLYGONS else None
        ),
        bucketer=LocationBucketer(settings.BUCKET_PRECISION),
        cache=SelectionCache(),
        sessions=SessionStore(
            ttl=datetime.timedelta(minutes=settings.SESSION_TTL_MINUTES)
        ),
        source=ebird,
        publisher=CardPublisher(yoto, settings.BASE_URL),
        regionality_checker=RegionalityChecker(
            ebird, settings.REGIONAL_RADIUS_KM, settings.REGIONAL_WINDOW_DAYS
        ),
        assets_base_url=settings.ASSETS_BASE_URL,
        default_target=settings.YOTO_CARD_ID,
        policy=SelectionPolicy(cache_unresolved=settings.CACHE_UNRESOLVED),
    )


async def sweep_forever(engine: CardEngine, interval_seconds: float) -> None:
    """Periodically evict old records and expired sessions until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = engine.sweep()
        if any(removed.values()):
            logger.info('[sweep] %s', removed)


async def birdcard_error_handler(
    request: fastapi.Request, exc: Exception
) -> fastapi.responses.JSONResponse:
    """Report hard engine errors with the tier that failed."""
    assert isinstance(exc, errors.BirdCardError)
    status_code = _ERROR_STATUS.get(
        exc.tier, fastapi.status.HTTP_503_SERVICE_UNAVAILABLE
    )
    logger.error('[%s] %s %s failed: %s', exc.tier, request.method, request.url.path, exc)
    return fastapi.responses.JSONResponse(
        status_code=status_code,
        content={'status': 'error', 'tier': exc.tier, 'detail': str(exc)},
    )


def create_app(engine: CardEngine | None = None) -> fastapi.FastAPI:
    """Create the app; an *engine* passed in replaces the production wiring."""

    @contextlib.asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http:
            if engine is None:
                app.state.engine = build_engine(http)
            sweeper = asyncio.create_task(
                sweep_forever(app.state.engine, settings.SWEEP_INTERVAL_SECONDS)
            )
            try:
                yield
            finally:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper

    app = fastapi.FastAPI(title='Bird Song Explorer', lifespan=lifespan)
    log.configure_logging(settings.LOG_LEVEL)
    if engine is not None:
        app.state.engine = engine
    app.add_exception_handler(errors.BirdCardError, birdcard_error_handler)

    app.include_router(webhook.router)
    app.include_router(streaming.router)
    app.include_router(admin.router)

    @app.api_route('/health', methods=['GET', 'HEAD'])
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {'status': 'healthy'}

    return app


app = create_app()
