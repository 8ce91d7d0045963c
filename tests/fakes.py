"""
In-memory stand-ins for the chain connection and its status stream.
"""
from collections import deque

from avail_submit.exceptions import CallConstructionError, SubscriptionClosedError
from avail_submit.types import ExtrinsicStatus, RuntimeVersion

GENESIS = "0x" + "00" * 32
BLOCK_1111 = "0x" + "1111" * 16
EXTRINSIC_HASH = "0x" + "ee" * 32


def status(result):
    return ExtrinsicStatus.from_rpc(result)


class FakeSubscription:
    """Scripted status stream; items may be statuses or exceptions to raise."""

    def __init__(self, items, extrinsic_hash=EXTRINSIC_HASH):
        self.items = deque(items)
        self.extrinsic_hash = extrinsic_hash
        self.received = []
        self.unsubscribe_calls = 0

    def receive(self, timeout=None):
        if not self.items:
            raise SubscriptionClosedError("Status stream closed")
        item = self.items.popleft()
        if isinstance(item, BaseException):
            raise item
        self.received.append(item)
        return item

    def unsubscribe(self):
        self.unsubscribe_calls += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()
        return False


class FakeExtrinsic:
    def __init__(self, connection, call):
        self.connection = connection
        self.call = call
        self.extrinsic_hash = EXTRINSIC_HASH

    def sign(self, keypair, options):
        self.connection.calls.append("sign")
        self.connection.signed_options.append(options)
        return self


class FakeConnection:
    """
    Records every call made by the adapter.

    ``nonce=None`` makes the System.Account lookup report not-found.
    """

    def __init__(self, genesis_hash=GENESIS, spec_version=1, nonce=0, statuses=None,
                 has_submit_data=True, index=0):
        self.genesis_hash = genesis_hash
        self.spec_version = spec_version
        self.nonce = nonce
        self.statuses = statuses if statuses is not None else [
            status({"broadcast": ["peer-1"]}),
            status({"inBlock": BLOCK_1111}),
        ]
        self.has_submit_data = has_submit_data
        self.index = index
        self.calls = []
        self.signed_options = []
        self.call_params = []
        self.subscriptions = []

    def get_metadata_latest(self):
        self.calls.append("get_metadata_latest")
        return "metadata"

    def new_call(self, metadata, call_name, **params):
        self.calls.append("new_call")
        if not self.has_submit_data:
            raise CallConstructionError(f"Call {call_name} not found in metadata")
        self.call_params.append((call_name, params))
        return ("call", call_name)

    def get_block_hash(self, block_number):
        self.calls.append("get_block_hash")
        return self.genesis_hash

    def get_runtime_version_latest(self):
        self.calls.append("get_runtime_version_latest")
        return RuntimeVersion(spec_name="data-avail", spec_version=self.spec_version, transaction_version=1)

    def create_storage_key(self, metadata, module, item, key_material):
        self.calls.append("create_storage_key")
        return (module, item, key_material)

    def get_storage_latest(self, key, metadata=None):
        self.calls.append("get_storage_latest")
        if self.nonce is None:
            return False, None
        return True, {"nonce": self.nonce, "consumers": 0, "providers": 1}

    def new_extrinsic(self, metadata, call):
        self.calls.append("new_extrinsic")
        return FakeExtrinsic(self, call)

    def submit_and_watch_extrinsic(self, extrinsic):
        self.calls.append("submit_and_watch_extrinsic")
        subscription = FakeSubscription(list(self.statuses), extrinsic.extrinsic_hash)
        self.subscriptions.append(subscription)
        return subscription

    def get_extrinsic_index(self, block_hash, extrinsic_hash):
        self.calls.append("get_extrinsic_index")
        return self.index


