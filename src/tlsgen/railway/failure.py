"""
Failure description — structured error information for the failure track.

The ErrorCode taxonomy follows the issuance stages one to one, so a failure
always names the stage that produced it. The wrapped exception, if any, is
the library error that caused it.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Structured error codes, grouped by the stage that raises them.

    None of them is retryable: every failure is terminal for the invocation.
    """

    # --- Key pair generation ---
    KEY_GENERATION_ERROR = "KEY_GENERATION_ERROR"
    """The RSA key could not be generated."""

    # --- Template construction ---
    SERIAL_GENERATION_ERROR = "SERIAL_GENERATION_ERROR"
    """The random serial number could not be drawn."""

    INVALID_IDENTITY_URI = "INVALID_IDENTITY_URI"
    """The SPIFFE ID built from the workload ID is not a well-formed URI."""

    # --- CA loading ---
    CA_FILE_READ_ERROR = "CA_FILE_READ_ERROR"
    """The CA certificate or key file is missing or unreadable."""

    CA_PARSE_ERROR = "CA_PARSE_ERROR"
    """The CA certificate or key could not be decoded, or they do not match."""

    NOT_A_CA = "NOT_A_CA"
    """The CA certificate does not assert the CA basic constraint."""

    # --- Signing ---
    SIGNING_ERROR = "SIGNING_ERROR"
    """The certificate builder rejected the template or the signature failed."""

    GENERATED_CERTIFICATE_INVALID = "GENERATED_CERTIFICATE_INVALID"
    """The freshly signed DER could not be decoded again."""

    CA_VALIDITY_ERROR = "CA_VALIDITY_ERROR"
    """The leaf validity window falls outside the signing CA's window."""

    # --- Persistence ---
    DIRECTORY_CREATE_ERROR = "DIRECTORY_CREATE_ERROR"
    """An output directory could not be created."""

    FILE_WRITE_ERROR = "FILE_WRITE_ERROR"
    """A key or certificate file could not be written."""

    # --- Startup ---
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Settings are missing or invalid."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional cause, and timestamp.

    >>> desc = FailureDescription(ErrorCode.NOT_A_CA, "Certificate is not a CA")
    >>> desc.code
    <ErrorCode.NOT_A_CA: 'NOT_A_CA'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        if self.exception is None:
            return f"{self.code.value}: {self.message}"
        return f"{self.code.value}: {self.message} ({type(self.exception).__name__}: {self.exception})"

    def full_stack_trace(self) -> str:
        """Message followed by the formatted cause chain, if a cause was captured."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__)
        )
        return f"{self.message}\n{tb}"
