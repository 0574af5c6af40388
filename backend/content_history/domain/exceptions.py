class VersionControlError(Exception):
    """Base class for version control failures."""


class ValidationError(VersionControlError):
    """Empty or malformed change set / request."""


class ConflictError(VersionControlError):
    """A concurrent writer claimed the version number first."""


class CommitFailed(VersionControlError):
    """Version number allocation kept conflicting after all retries."""


class NotFoundError(VersionControlError):
    """Unknown page or version."""


class ReconstructionError(VersionControlError):
    """Replay produced an inconsistent state; never applied to live content."""


class SaveIncomplete(VersionControlError):
    """
    The version was committed but applying edits to live content failed.
    Callers retry the apply step only; the version must not be recorded again.
    """

    def __init__(self, message, *, version_number):
        super().__init__(message)
        self.version_number = version_number


class CacheWriteError(VersionControlError):
    """Snapshot could not be written. Never fatal for save or restore."""
