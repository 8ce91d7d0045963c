"""
avail_submit - submit data blobs to an Avail node and wait for inclusion.
"""
from .connection import ChainConnection
from .exceptions import (
    AccountNotFoundError,
    AvailSubmitError,
    CallConstructionError,
    ExtrinsicFailedError,
    ExtrinsicNotFoundError,
    InclusionTimeoutError,
    SigningError,
    SubscriptionClosedError,
    UnsupportedSignedExtensionError,
)
from .extrinsic import Extrinsic
from .submit import sign_and_send, submit_data, wait_for_inclusion
from .subscription import ExtrinsicStatusSubscription
from .types import (
    BlockLength,
    Cell,
    ExtrinsicStatus,
    ExtrinsicUniqueId,
    RuntimeVersion,
    SignatureOptions,
    StatusKind,
)

__version__ = "0.1.0"

__all__ = [
    "ChainConnection",
    "Extrinsic",
    "ExtrinsicStatusSubscription",
    "sign_and_send",
    "submit_data",
    "wait_for_inclusion",
    "BlockLength",
    "Cell",
    "ExtrinsicStatus",
    "ExtrinsicUniqueId",
    "RuntimeVersion",
    "SignatureOptions",
    "StatusKind",
    "AvailSubmitError",
    "AccountNotFoundError",
    "CallConstructionError",
    "SigningError",
    "UnsupportedSignedExtensionError",
    "ExtrinsicFailedError",
    "SubscriptionClosedError",
    "InclusionTimeoutError",
    "ExtrinsicNotFoundError",
]
