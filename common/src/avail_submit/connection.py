"""
connection.py

The chain side of a submission: a thin wrapper over a ``SubstrateInterface``
websocket session exposing just the reads and the one write the submission
adapter needs.
"""
import logging
from typing import Any, Iterable, Optional, Tuple, Union

from scalecodec.base import ScaleBytes
from substrateinterface import SubstrateInterface
from substrateinterface.storage import StorageKey

from .exceptions import CallConstructionError
from .extrinsic import Extrinsic, blake2_256
from .subscription import ExtrinsicStatusSubscription
from .types import BlockLength, Cell, RuntimeVersion

logger = logging.getLogger(__name__)

DEFAULT_SS58_FORMAT = 42
SUBMIT_STARTUP_TIMEOUT = 5.0


class ChainConnection:
    """
    Connected chain client.

    Args:
        substrate: an open ``SubstrateInterface``
    """

    def __init__(self, substrate: SubstrateInterface):
        self.substrate = substrate
        self._stale = False

    @classmethod
    def connect(
        cls,
        url: str,
        ss58_format: int = DEFAULT_SS58_FORMAT,
        type_registry_preset: Optional[str] = None,
    ) -> "ChainConnection":
        substrate = SubstrateInterface(
            url=url,
            ss58_format=ss58_format,
            type_registry_preset=type_registry_preset,
        )
        logger.info("Connected to %s", url)
        return cls(substrate)

    # ------------- plumbing -------------
    def _ensure_connected(self):
        if self._stale:
            logger.info("Reconnecting websocket to %s", self.substrate.url)
            self.substrate.connect_websocket()
            self._stale = False

    def _mark_stale(self):
        self._stale = True

    def _rpc(self, method: str, params=None):
        self._ensure_connected()
        return self.substrate.rpc_request(method, params or []).get("result")

    @property
    def runtime_config(self):
        return self.substrate.runtime_config

    # ------------- reads -------------
    def get_block_hash(self, block_number: int) -> str:
        self._ensure_connected()
        return self.substrate.get_block_hash(block_number)

    def get_runtime_version_latest(self) -> RuntimeVersion:
        return RuntimeVersion.from_rpc(self._rpc("state_getRuntimeVersion"))

    def get_metadata_latest(self):
        """Metadata of the runtime at the chain head."""
        self._ensure_connected()
        self.substrate.init_runtime()
        return self.substrate.metadata

    def create_storage_key(self, metadata, module: str, item: str, key_material: Union[bytes, str]) -> StorageKey:
        if isinstance(key_material, bytes):
            key_material = "0x" + key_material.hex()
        return StorageKey.create_from_storage_function(
            module, item, [key_material],
            runtime_config=self.runtime_config,
            metadata=metadata,
        )

    def get_storage_latest(self, key: StorageKey, metadata=None) -> Tuple[bool, Any]:
        """
        Read a storage entry at the chain head.

        Returns ``(found, value)``; ``value`` is None when the entry is absent.
        """
        result = self._rpc("state_getStorage", [key.to_hex()])
        if result is None:
            return False, None

        scale_obj = self.runtime_config.create_scale_object(
            type_string=key.value_scale_type,
            data=ScaleBytes(result),
            metadata=metadata or self.substrate.metadata,
        )
        return True, scale_obj.decode()

    def get_extrinsic_index(self, block_hash: str, extrinsic_hash: str) -> Optional[int]:
        """Position of ``extrinsic_hash`` inside block ``block_hash``, or None."""
        block = self._rpc("chain_getBlock", [block_hash])
        if not block:
            return None
        for idx, ext_hex in enumerate(block["block"]["extrinsics"]):
            if "0x" + blake2_256(bytes.fromhex(ext_hex[2:])).hex() == extrinsic_hash:
                return idx
        return None

    # ------------- kate -------------
    def query_block_length(self) -> BlockLength:
        """Block length limits and matrix dimensions at the best block."""
        return BlockLength.from_rpc(self._rpc("kate_blockLength"))

    def query_proof(self, block_number: int, cells: Iterable[Cell]) -> bytes:
        """
        KZG proofs for ``cells`` of block ``block_number``, as returned by
        ``kate_queryProof``: one 48 byte proof and 32 byte data chunk per cell.
        """
        result = self._rpc("kate_queryProof", [block_number, [cell.to_rpc() for cell in cells]])
        if isinstance(result, str):
            return bytes.fromhex(result[2:] if result.startswith("0x") else result)
        return bytes(result)

    # ------------- calls and extrinsics -------------
    @staticmethod
    def get_call_function(metadata, module: str, function: str):
        for pallet in metadata.pallets:
            if pallet.name == module and pallet.calls:
                for call in pallet.calls:
                    if call.name == function:
                        return call
        return None

    def new_call(self, metadata, call_name: str, **params):
        """
        Compose ``Module.function`` with keyword call params, e.g.
        ``new_call(meta, "DataAvailability.submit_data", data=b"...")``.
        """
        module, _, function = call_name.partition(".")
        if not module or not function:
            raise CallConstructionError(f"Call name must look like 'Module.function', got {call_name!r}")
        if self.get_call_function(metadata, module, function) is None:
            raise CallConstructionError(f"Call {call_name} not found in metadata")

        call = self.runtime_config.create_scale_object(type_string="Call", metadata=metadata)
        try:
            call.encode({
                "call_module": module,
                "call_function": function,
                "call_args": params,
            })
        except (ValueError, TypeError, KeyError) as e:
            raise CallConstructionError(f"Could not encode {call_name}: {e}") from e
        return call

    def new_extrinsic(self, metadata, call) -> Extrinsic:
        return Extrinsic(call, metadata, self.runtime_config)

    # ------------- write -------------
    def submit_and_watch_extrinsic(
        self,
        extrinsic: Extrinsic,
        startup_timeout: float = SUBMIT_STARTUP_TIMEOUT,
    ) -> ExtrinsicStatusSubscription:
        self._ensure_connected()
        subscription = ExtrinsicStatusSubscription(
            self.substrate,
            extrinsic.to_hex(),
            extrinsic_hash=extrinsic.extrinsic_hash,
            on_abandon=self._mark_stale,
        )
        return subscription.start(timeout=startup_timeout)

    def close(self):
        self.substrate.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
