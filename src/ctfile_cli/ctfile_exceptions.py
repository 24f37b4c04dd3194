"""
Exceptions raised by ctfile_cli.

Every stage of the download pipeline fails fast by raising one of these.
"""


class CtfileException(Exception):
    """
    Base class for all errors raised by ctfile_cli.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadInputError(CtfileException):
    """The link argument is not a ctfile link."""


class APIError(CtfileException):
    """The resolution API was unreachable or returned an unparseable body."""


class NotFoundError(CtfileException):
    """The upstream service has no download for the given link."""


class DownloadFailedError(CtfileException):
    """The provisioning archive could not be fetched."""


class CorruptArchiveError(CtfileException):
    """The archive could not be read."""


class ArchiveEntryNotFoundError(NotFoundError, CorruptArchiveError):
    """The archive was read to the end without finding the requested entry."""


class PermissionDeniedError(CtfileException):
    """The executable bit could not be set on a provisioned binary."""


class SubprocessFailedError(CtfileException):
    """
    The accelerator could not be started or exited with a non-zero status.
    """

    def __init__(self, message: str, returncode=None):
        super().__init__(message)
        self.returncode = returncode
