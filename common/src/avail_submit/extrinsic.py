"""
extrinsic.py

Builds and signs v4 extrinsics for Avail.

substrate-interface only knows the signed extensions of stock Substrate
runtimes, so ``create_signed_extrinsic`` cannot carry Avail's ``CheckAppId``.
Here the signature payload and the extrinsic are laid out from the
runtime's own list of signed extensions and every field is encoded with the
connection's scalecodec runtime configuration.
"""
import hashlib
from typing import Optional

from substrateinterface import Keypair, KeypairType
from substrateinterface.exceptions import ConfigurationError

from .exceptions import SigningError, UnsupportedSignedExtensionError
from .types import SignatureOptions

SIGNED_EXTRINSIC_V4 = 0x84
IMMORTAL_ERA = b"\x00"
MULTI_ADDRESS_ID = 0x00
MAX_UNHASHED_PAYLOAD = 256

MULTI_SIGNATURE_TAGS = {
    KeypairType.ED25519: 0x00,
    KeypairType.SR25519: 0x01,
}

# ------------- signed extensions -------------
# name -> (extra fields, additional signed fields)
# each field is (scale type, SignatureOptions attribute); "Era" is the immortal era byte
SIGNED_EXTENSIONS = {
    "CheckNonZeroSender": ((), ()),
    "CheckSpecVersion": ((), (("u32", "spec_version"),)),
    "CheckTxVersion": ((), (("u32", "transaction_version"),)),
    "CheckGenesis": ((), (("H256", "genesis_hash"),)),
    "CheckMortality": ((("Era", None),), (("H256", "block_hash"),)),
    "CheckEra": ((("Era", None),), (("H256", "block_hash"),)),
    "CheckNonce": ((("Compact<u32>", "nonce"),), ()),
    "CheckWeight": ((), ()),
    "CheckBatchTransactions": ((), ()),
    "ChargeTransactionPayment": ((("Compact<u128>", "tip"),), ()),
    "CheckAppId": ((("Compact<u32>", "app_id"),), ()),
}


def blake2_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def check_key_type(keypair: Keypair):
    # the account id is the raw public key, which holds for sr25519 and ed25519 only
    if keypair.crypto_type not in MULTI_SIGNATURE_TAGS:
        raise SigningError(f"Unsupported key type: {keypair.crypto_type}")


class Extrinsic:
    """
    An extrinsic wrapping a composed call. Unsigned until ``sign`` is called.

    Args:
        call: a composed ``GenericCall`` (anything with an encoded ``data``)
        metadata: decoded runtime metadata, source of the signed extension order
        runtime_config: scalecodec runtime configuration used for encoding
    """

    def __init__(self, call, metadata, runtime_config):
        self.call = call
        self.metadata = metadata
        self.runtime_config = runtime_config
        self.data: Optional[bytes] = None
        self.signer: Optional[str] = None

    @property
    def is_signed(self) -> bool:
        return self.data is not None

    @property
    def extrinsic_hash(self) -> str:
        if self.data is None:
            raise SigningError("Extrinsic is not signed")
        return "0x" + blake2_256(self.data).hex()

    def to_hex(self) -> str:
        if self.data is None:
            raise SigningError("Extrinsic is not signed")
        return "0x" + self.data.hex()

    def _encode(self, type_string: str, value) -> bytes:
        scale_obj = self.runtime_config.create_scale_object(type_string)
        return bytes(scale_obj.encode(value).data)

    def _call_bytes(self) -> bytes:
        return bytes(self.call.data.data)

    def _extensions(self):
        for name in self.metadata.get_signed_extensions():
            if name not in SIGNED_EXTENSIONS:
                raise UnsupportedSignedExtensionError(name)
            yield SIGNED_EXTENSIONS[name]

    def _encode_fields(self, fields, options: SignatureOptions) -> bytes:
        out = b""
        for type_string, attr in fields:
            if type_string == "Era":
                out += IMMORTAL_ERA
            else:
                out += self._encode(type_string, getattr(options, attr))
        return out

    def extra(self, options: SignatureOptions) -> bytes:
        return b"".join(self._encode_fields(extra, options) for extra, _ in self._extensions())

    def additional_signed(self, options: SignatureOptions) -> bytes:
        return b"".join(self._encode_fields(additional, options) for _, additional in self._extensions())

    def signature_payload(self, options: SignatureOptions) -> bytes:
        """call ++ extra ++ additional signed, hashed when longer than 256 bytes."""
        payload = self._call_bytes() + self.extra(options) + self.additional_signed(options)
        if len(payload) > MAX_UNHASHED_PAYLOAD:
            return blake2_256(payload)
        return payload

    def sign(self, keypair: Keypair, options: SignatureOptions) -> "Extrinsic":
        check_key_type(keypair)

        payload = self.signature_payload(options)
        try:
            signature = keypair.sign(payload)
        except (ConfigurationError, ValueError, TypeError) as e:
            raise SigningError(f"Signing failed: {e}") from e

        body = (
            bytes([SIGNED_EXTRINSIC_V4, MULTI_ADDRESS_ID])
            + keypair.public_key
            + bytes([MULTI_SIGNATURE_TAGS[keypair.crypto_type]])
            + signature
            + self.extra(options)
            + self._call_bytes()
        )
        self.data = self._encode("Compact<u32>", len(body)) + body
        self.signer = keypair.ss58_address
        return self
