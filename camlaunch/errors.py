"""Error types raised by the launcher.

Every error is fatal for the run. They propagate up to the CLI handler,
which logs the message and picks the exit status.
"""


class CamlaunchError(Exception):
    """Base class for all launcher failures."""


class ConfigurationError(CamlaunchError):
    """Local configuration (files, flags, YAML) is missing or invalid."""


class MissingCredentialFile(ConfigurationError):
    pass


class UnreadableCredentialFile(ConfigurationError):
    pass


class AuthenticationError(CamlaunchError):
    """The authorization code could not be exchanged for a token."""


class ProvisioningError(CamlaunchError):
    """A storage or compute API call failed."""


class SubmissionError(ProvisioningError):
    """The instance insert request was rejected or never reached the API."""


class OperationError(CamlaunchError):
    """A zone operation finished with errors or reported an unknown status."""

    def __init__(self, message, errors=None, status=None):
        super().__init__(message)
        self.errors = list(errors or [])
        self.status = status


class SizeLimitError(CamlaunchError):
    """Generated content is larger than the API accepts."""


class ConfigTooLarge(SizeLimitError):
    def __init__(self, size, limit):
        super().__init__(f"cloud config length of {size} bytes is over {limit} byte limit")
        self.size = size
        self.limit = limit
