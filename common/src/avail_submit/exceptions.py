"""
Exceptions raised by the avail_submit package.

Errors coming from the node or the websocket transport
(``SubstrateRequestException``, websocket exceptions) are not wrapped and
reach the caller as raised by substrate-interface.
"""
from typing import Optional

from .types import ExtrinsicStatus


class AvailSubmitError(Exception):
    """Base exception for submission errors."""
    pass


class AccountNotFoundError(AvailSubmitError):
    """Raised when the signer has no System.Account entry on chain."""

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"Account {account} not found in System.Account storage")


class CallConstructionError(AvailSubmitError):
    """Raised when a call is missing from the metadata or its args cannot be encoded."""
    pass


class SigningError(AvailSubmitError):
    """Raised when an extrinsic cannot be signed."""
    pass


class UnsupportedSignedExtensionError(SigningError):
    """Raised when the runtime requires a signed extension we cannot fill in."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unsupported signed extension: {name}")


class ExtrinsicFailedError(AvailSubmitError):
    """Raised when the transaction pool reports a failure status."""

    def __init__(self, status: ExtrinsicStatus):
        self.status = status
        super().__init__(f"Extrinsic was not included: {status}")


class SubscriptionClosedError(AvailSubmitError):
    """Raised when the status stream ends before the extrinsic was included."""
    pass


class InclusionTimeoutError(AvailSubmitError):
    """Raised when no inclusion is observed within the timeout."""

    def __init__(self, timeout: float, last_status: Optional[ExtrinsicStatus] = None):
        self.timeout = timeout
        self.last_status = last_status
        message = f"Extrinsic not included after {timeout}s"
        if last_status is not None:
            message += f" (last status: {last_status})"
        super().__init__(message)


class ExtrinsicNotFoundError(AvailSubmitError):
    """Raised when the inclusion block does not contain the submitted extrinsic."""

    def __init__(self, block_hash: str, extrinsic_hash: str):
        self.block_hash = block_hash
        self.extrinsic_hash = extrinsic_hash
        super().__init__(f"Extrinsic {extrinsic_hash} not found in block {block_hash}")
