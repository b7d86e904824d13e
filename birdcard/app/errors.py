"""Error taxonomy for the selection engine.

Soft errors are absorbed by the next fallback tier and never reach a caller
as a failure.  Hard errors propagate to the HTTP layer, which reports the
failing ``tier`` so the caller can decide whether to retry.
"""

from __future__ import annotations


class BirdCardError(Exception):
    """Base class for every engine error."""

    tier: str = 'engine'
    soft: bool = False

    def __init__(self, message: str, *, tier: str | None = None) -> None:
        super().__init__(message)
        if tier is not None:
            self.tier = tier


# ---------------------------------------------------------------------------
# Soft errors
# ---------------------------------------------------------------------------


class LocationLookupError(BirdCardError):
    """An IP-geolocation or device-registry call failed or was unusable."""

    tier = 'location'
    soft = True


class LocationUnresolved(BirdCardError):
    """No strategy in the cascade produced a location."""

    tier = 'location'
    soft = True


class ExternalSelectionUnavailable(BirdCardError):
    """The external selection source failed or returned nothing."""

    tier = 'selection'
    soft = True


class ObservationSourceError(BirdCardError):
    """The observational-data source could not answer a regionality query."""

    tier = 'regionality'
    soft = True


class SessionExpired(BirdCardError):
    """A playback session outlived its TTL and must be rebound."""

    tier = 'session'
    soft = True


# ---------------------------------------------------------------------------
# Hard errors
# ---------------------------------------------------------------------------


class PublishFailed(BirdCardError):
    """Publishing an item to the shared card failed; nothing was recorded."""

    tier = 'publish'

    def __init__(self, target_id: str, item_id: str, reason: str) -> None:
        super().__init__(f'Failed to publish {item_id} to {target_id}: {reason}')
        self.target_id = target_id
        self.item_id = item_id
        self.reason = reason


class SelectionExhausted(BirdCardError):
    """Every selection tier failed to produce an item."""

    tier = 'selection'


class NoPublishedItem(BirdCardError):
    """A track fetch found nothing already published to bind a session to."""

    tier = 'session'
