"""Exceptions raised by the relay pipeline."""


class RelayError(Exception):
    """Base for all mcprelay errors."""


class ConfigurationError(RelayError):
    """Raised at startup when required settings are missing or invalid."""


class UpstreamSetupError(RelayError):
    """The provider request could not be opened.

    Raised before any event has been yielded, so the caller can still
    answer with a plain error response.
    """


class UpstreamStreamError(RelayError):
    """The provider stream failed after it had started."""


class StreamProtocolError(RelayError):
    """The provider broke the one-open-block-at-a-time contract."""
