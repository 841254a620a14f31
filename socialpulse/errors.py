"""Exception classes shared by the pipeline, the API and the stream client.

Hierarchy:
    Exception
    +-- SocialPulseError
        +-- ParseFailure      (model text held no recoverable JSON value)
        +-- UpstreamFailure   (the LLM call itself failed)
        +-- TransportFailure  (stream between server and consumer broke)

ParseFailure and UpstreamFailure are caught at the stage boundary in the
orchestrator and turned into ``error`` stream events. TransportFailure is
raised on the consumer side only.
"""
from __future__ import annotations

import json


class SocialPulseError(Exception):
    """Base exception for all SocialPulse errors."""

    pass


class ParseFailure(SocialPulseError):
    """Raised when no JSON value could be recovered from model text.

    Attributes:
        raw_text: The text that was handed to the extractor.
        cause: The last ``json.JSONDecodeError`` seen while parsing.
    """

    def __init__(self, raw_text: str, cause: json.JSONDecodeError):
        self.raw_text = raw_text
        self.cause = cause
        super().__init__(str(cause))


class UpstreamFailure(SocialPulseError):
    """Raised when the LLM capability call fails or returns an error.

    Attributes:
        mode: Pipeline mode of the failed call (research, ranking, ...).
    """

    def __init__(self, mode: str, message: str):
        self.mode = mode
        super().__init__(message)


class TransportFailure(SocialPulseError):
    """Raised by the stream client when the connection or response fails.

    Attributes:
        status_code: HTTP status when the server answered with a non-2xx code.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
