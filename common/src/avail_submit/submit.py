"""
submit.py

Submit data to Avail's DataAvailability pallet and wait for inclusion.

    connection = ChainConnection.connect("ws://127.0.0.1:9944")
    tx_id = submit_data(connection, Keypair.create_from_uri("//Alice"), 0, b"\\xab\\x12\\x34")
    print(tx_id.block, tx_id.index)
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Optional

from substrateinterface import Keypair

from .connection import ChainConnection
from .exceptions import (
    AccountNotFoundError,
    ExtrinsicFailedError,
    ExtrinsicNotFoundError,
    InclusionTimeoutError,
)
from .extrinsic import check_key_type
from .subscription import ExtrinsicStatusSubscription
from .types import ExtrinsicStatus, ExtrinsicUniqueId, SignatureOptions, StatusKind

logger = logging.getLogger(__name__)

SUBMIT_DATA_CALL = "DataAvailability.submit_data"
DEFAULT_INCLUSION_TIMEOUT = 180.0
MAX_APP_ID = 2**32 - 1

# ------------- per-identity serialization -------------
# public key -> [lock, holders and waiters]; entries go away with their last user
_identity_locks = {}
_identity_locks_guard = threading.Lock()


@contextmanager
def identity_lock(keypair: Keypair):
    """Serialize submissions signed by the same key within this process."""
    key = keypair.public_key
    with _identity_locks_guard:
        entry = _identity_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _identity_locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _identity_locks[key]


# ------------- core -------------
def get_account_nonce(connection: ChainConnection, metadata, keypair: Keypair) -> int:
    key = connection.create_storage_key(metadata, "System", "Account", keypair.public_key)
    found, account_info = connection.get_storage_latest(key, metadata)
    if not found:
        raise AccountNotFoundError(keypair.ss58_address)
    return int(account_info["nonce"])


def sign_and_send(
    connection: ChainConnection,
    metadata,
    keypair: Keypair,
    app_id: int,
    call,
) -> ExtrinsicStatusSubscription:
    """
    Sign ``call`` with an immortal era and submit it.

    Genesis hash, runtime version and nonce are read fresh from the chain on
    every call. Returns the live status subscription of the submitted
    extrinsic.
    """
    if not 0 <= app_id <= MAX_APP_ID:
        raise ValueError(f"app_id must fit in u32, got {app_id}")
    check_key_type(keypair)

    genesis_hash = connection.get_block_hash(0)
    runtime_version = connection.get_runtime_version_latest()
    nonce = get_account_nonce(connection, metadata, keypair)

    options = SignatureOptions(
        block_hash=genesis_hash,
        genesis_hash=genesis_hash,
        nonce=nonce,
        spec_version=runtime_version.spec_version,
        transaction_version=runtime_version.transaction_version,
        app_id=app_id,
        tip=0,
    )
    logger.debug("Signing for %s with %s", keypair.ss58_address, options)

    extrinsic = connection.new_extrinsic(metadata, call).sign(keypair, options)
    logger.info("Submitting extrinsic %s (nonce %d, app_id %d)", extrinsic.extrinsic_hash, nonce, app_id)
    return connection.submit_and_watch_extrinsic(extrinsic)


def wait_for_inclusion(
    subscription: ExtrinsicStatusSubscription,
    timeout: Optional[float] = DEFAULT_INCLUSION_TIMEOUT,
    wait_for_finalization: bool = False,
) -> str:
    """
    Block until the extrinsic is in a block (or finalized) and return that
    block's hash.

    Raises:
        ExtrinsicFailedError: dropped, invalid, usurped or finality timeout
        SubscriptionClosedError: stream ended first
        InclusionTimeoutError: nothing conclusive within ``timeout`` seconds
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    last_status: Optional[ExtrinsicStatus] = None

    while True:
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            status = subscription.receive(timeout=remaining)
        except TimeoutError as e:
            raise InclusionTimeoutError(timeout, last_status) from e

        last_status = status
        logger.info("Transaction status: %s", status)

        if status.is_failure:
            raise ExtrinsicFailedError(status)
        if status.kind is StatusKind.RETRACTED:
            logger.warning("Block %s was retracted, waiting for re-inclusion", status.block_hash)
            continue
        if status.is_finalized or (status.is_in_block and not wait_for_finalization):
            logger.info("Completed at block hash: %s", status.block_hash)
            return status.block_hash


def submit_data(
    connection: ChainConnection,
    keypair: Keypair,
    app_id: int,
    data: bytes,
    timeout: Optional[float] = DEFAULT_INCLUSION_TIMEOUT,
    wait_for_finalization: bool = False,
) -> ExtrinsicUniqueId:
    """
    Submit ``data`` through ``DataAvailability.submit_data`` and wait for it.

    Args:
        connection: connected chain client
        keypair: signer, must have an account with funds on chain
        app_id: application id the data is submitted under
        data: payload; size limits are enforced by the node only
        timeout: seconds to wait for inclusion, None waits forever
        wait_for_finalization: wait for the finalized block instead of the first inclusion

    Returns:
        ExtrinsicUniqueId of the including block and the extrinsic's index in it
    """
    with identity_lock(keypair):
        metadata = connection.get_metadata_latest()
        call = connection.new_call(metadata, SUBMIT_DATA_CALL, data=data)

        with sign_and_send(connection, metadata, keypair, app_id, call) as subscription:
            block_hash = wait_for_inclusion(subscription, timeout, wait_for_finalization)

        index = connection.get_extrinsic_index(block_hash, subscription.extrinsic_hash)
        if index is None:
            raise ExtrinsicNotFoundError(block_hash, subscription.extrinsic_hash)

    return ExtrinsicUniqueId(block=block_hash, index=index)
