"""
errors.py

Failure kinds a sampling task can end with.  Any of them aborts the rest
of that task only; the worker loop turns it into a terminal progress event.
"""


class SamplerError(Exception):
    """Base class for per-task failures."""


class PipelineBuildError(SamplerError):
    """A stage could not be created, linked or brought to PAUSED."""


class NoVideoStreamError(SamplerError):
    """The decoder exposed no pad carrying video caps."""


class DurationUnavailableError(SamplerError):
    """The stream duration could not be queried."""


class SeekError(SamplerError):
    """A seek was refused or produced no frame."""


class EncodeError(SamplerError):
    """The PNG could not be created or written."""
