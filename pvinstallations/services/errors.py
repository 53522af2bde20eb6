"""
Exception hierarchy for the installation and aggregation services.

Semantic errors (invalid arguments, out-of-range pages, unknown
installations) are deterministic functions of the request and are never
retried. StoreUnavailableError wraps infrastructure failures raised by the
database driver so callers can tell the two apart.

CHANGELOG:
- 2026-10-12: Initial creation
"""


class PvServiceError(Exception):
    """Base class for all service-layer errors."""


class InvalidArgumentError(PvServiceError):
    """Malformed input, e.g. a non-positive page number or duration."""


class OutOfRangeError(PvServiceError):
    """Well-formed request whose page lies beyond the end of the window."""


class InstallationNotFoundError(PvServiceError):
    """The installation id does not reference an existing installation."""

    def __init__(self, installation_id: int) -> None:
        super().__init__(f"Installation {installation_id} not found.")
        self.installation_id = installation_id


class StoreUnavailableError(PvServiceError):
    """The sample store could not be reached or failed mid-read."""
