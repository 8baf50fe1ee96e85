"""Error taxonomy for widget resolution.

Hard failures (ConfigError, ProviderQueryError, TransportError) propagate to
the caller. EvaluationError is soft: the dynamic field evaluator catches it
and writes None for the affected field instead of aborting the resolution.
"""

from typing import Any


class ChainlookError(Exception):
    """Base class for all engine errors."""


class ConfigError(ChainlookError):
    """A widget definition or provider configuration is malformed."""


class ProviderQueryError(ChainlookError):
    """A provider answered, but signalled a query-level failure.

    Raised for GraphQL responses carrying an ``errors`` payload, even when the
    HTTP status was 200.

    Attributes:
        errors: Raw error payload as returned by the provider
        source_key: Source that failed (None in single-source mode)
    """

    def __init__(
        self,
        message: str,
        *,
        errors: Any = None,
        source_key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors
        self.source_key = source_key


class TransportError(ChainlookError):
    """Network or HTTP failure while talking to a provider.

    Attributes:
        url: Request URL
        status_code: HTTP status, or None for connection-level failures
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code

    @property
    def not_found(self) -> bool:
        """True when the resource does not exist (or has not propagated yet).

        Unpublished IPFS content and unresolved IPNS names surface as 404.
        """
        return self.status_code == 404


class EvaluationError(ChainlookError):
    """A dynamic field expression could not be evaluated for a row."""
