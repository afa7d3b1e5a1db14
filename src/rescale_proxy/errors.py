"""Error taxonomy for image and magic URL retrieval.

Every failure the proxy can report is a FetchError carrying one of a closed
set of kinds. Input errors describe a malformed request and are never cached;
upstream errors are remembered by the caches and subject to backoff.
"""

from enum import Enum


class FetchErrorKind(str, Enum):
    """Closed set of failure kinds."""

    INVALID_RESCALE_TYPE = "invalid_rescale_type"
    REQUEST_FAILED = "request_failed"
    UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"
    BODY_READ_FAILED = "body_read_failed"
    TEXT_READ_FAILED = "text_read_failed"
    INVALID_DATA_URL = "invalid_data_url"
    UPSTREAM_STATUS = "upstream_status"


INPUT_ERRORS = frozenset(
    {
        FetchErrorKind.INVALID_RESCALE_TYPE,
        FetchErrorKind.INVALID_DATA_URL,
    }
)


class FetchError(Exception):
    """A classified retrieval failure.

    Args:
        kind: The failure kind
        status_code: Upstream HTTP status, only set for UPSTREAM_STATUS

    """

    def __init__(self, kind: FetchErrorKind, status_code: int | None = None):
        self.kind = kind
        self.status_code = status_code
        if status_code is not None:
            super().__init__(f"{kind.value} ({status_code})")
        else:
            super().__init__(kind.value)

    @property
    def is_input_error(self) -> bool:
        """Return True when the caller's request itself was malformed."""
        return self.kind in INPUT_ERRORS

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FetchError):
            return NotImplemented
        return self.kind == other.kind and self.status_code == other.status_code

    def __hash__(self) -> int:
        return hash((self.kind, self.status_code))


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing."""
