"""Exception hierarchy for the recording pipeline.

Every error raised while processing a single feed message derives from
:class:`RecorderError`, which is what the dispatcher catches per stage.
"""

from __future__ import annotations


class RecorderError(Exception):
    """Base class for per-message pipeline failures."""


class ParseError(RecorderError):
    """Malformed topic, payload or departure fields."""


class PayloadParseError(ParseError):
    """Message body is not a JSON object, or the event type is unknown."""


class DepartureNormalizationError(ParseError):
    """Departure fields are missing or cannot be interpreted."""


class NotFoundError(RecorderError):
    """The lookup service has no trip matching the departure."""


class RoutePatternIdNotFoundError(NotFoundError):
    pass


class TripIdNotFoundError(NotFoundError):
    pass


class RemoteServiceUnavailableError(RecorderError):
    """Lookup service failed for a reason other than a missing match."""


class StorageError(RecorderError):
    """Persistent store rejected a read or write."""


class CouldNotMaterializeEntityError(StorageError):
    pass


class CouldNotSaveTripStopError(StorageError):
    pass
