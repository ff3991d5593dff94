"""Exceptions raised by the workout and nutrition services."""


class FittrackError(Exception):
    """Base class for every error surfaced to callers of the engine."""


class InvalidArgument(FittrackError, ValueError):
    """Malformed identifier, out-of-range rating, empty name or wrong record kind."""


class NotFound(FittrackError, LookupError):
    """Unknown session, template, definition, exercise index or set index."""


class UpstreamUnavailable(FittrackError):
    """A collaborator (e.g. the daily nutrition provider) failed to answer."""


class Conflict(FittrackError):
    """Concurrent writes to one session document.

    Never raised: writes to a session are last-write-wins and a lost update is
    silent.
    """
