"""Exception hierarchy for vidscribe."""

from __future__ import annotations


class VidscribeError(Exception):
    """Base class for all vidscribe errors."""


class ConfigurationError(VidscribeError, ValueError):
    """Invalid configuration value (unknown model id, bad device, ...)."""


class PreflightError(VidscribeError):
    """Runtime prerequisites (ffmpeg, model, device) are not satisfied."""


class FolderScanError(VidscribeError):
    """The input folder could not be listed."""


class AlreadyRunningError(VidscribeError):
    """A job is already active on this runner."""


class ItemError(VidscribeError):
    """Failure isolated to a single input file."""


class ExtractionError(ItemError):
    """Audio could not be extracted from the source video."""


class RecognitionError(ItemError):
    """Speech recognition failed for an extracted audio artifact."""


class PersistenceError(ItemError):
    """The transcript could not be written."""
