"""
Value types shared by the submission adapter, the chain connection and the
status subscription.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


@dataclass(frozen=True)
class ExtrinsicUniqueId:
    """Where a submitted extrinsic landed: block hash + index inside the block."""
    block: str
    index: int

    def __str__(self) -> str:
        return f"{self.block}-{self.index}"


@dataclass(frozen=True)
class RuntimeVersion:
    spec_name: str
    spec_version: int
    transaction_version: int

    @classmethod
    def from_rpc(cls, result: dict) -> "RuntimeVersion":
        return cls(
            spec_name=result.get("specName", ""),
            spec_version=int(result["specVersion"]),
            transaction_version=int(result.get("transactionVersion", 0)),
        )


@dataclass(frozen=True)
class SignatureOptions:
    """
    Everything that goes into a signature besides the call itself.

    Computed fresh for every submission. The era is always immortal, so
    ``block_hash`` is the genesis hash.
    """
    block_hash: str
    genesis_hash: str
    nonce: int
    spec_version: int
    transaction_version: int
    app_id: int
    tip: int = 0


class StatusKind(str, Enum):
    """Transaction pool statuses as reported by author_submitAndWatchExtrinsic."""
    FUTURE = "future"
    READY = "ready"
    BROADCAST = "broadcast"
    IN_BLOCK = "inBlock"
    RETRACTED = "retracted"
    FINALITY_TIMEOUT = "finalityTimeout"
    FINALIZED = "finalized"
    USURPED = "usurped"
    DROPPED = "dropped"
    INVALID = "invalid"


# The node closes the subscription after any of these.
TERMINAL_KINDS = frozenset({
    StatusKind.FINALIZED,
    StatusKind.FINALITY_TIMEOUT,
    StatusKind.USURPED,
    StatusKind.DROPPED,
    StatusKind.INVALID,
})

FAILED_KINDS = frozenset({
    StatusKind.FINALITY_TIMEOUT,
    StatusKind.USURPED,
    StatusKind.DROPPED,
    StatusKind.INVALID,
})


@dataclass(frozen=True)
class ExtrinsicStatus:
    kind: StatusKind
    block_hash: Optional[str] = None
    peers: Optional[List[str]] = None
    raw: Any = field(default=None, compare=False)

    @classmethod
    def from_rpc(cls, result: Any) -> "ExtrinsicStatus":
        """
        Parse one status notification.

        Simple statuses arrive as bare strings (``"ready"``), the others as a
        single-key object (``{"inBlock": "0x..."}``, ``{"broadcast": [...]}``).
        """
        if isinstance(result, str):
            return cls(kind=StatusKind(result), raw=result)

        if not isinstance(result, dict) or len(result) != 1:
            raise ValueError(f"Unrecognised extrinsic status: {result!r}")

        (key, value), = result.items()
        kind = StatusKind(key)
        if kind is StatusKind.BROADCAST:
            return cls(kind=kind, peers=list(value or []), raw=result)
        return cls(kind=kind, block_hash=value, raw=result)

    @property
    def is_in_block(self) -> bool:
        return self.kind is StatusKind.IN_BLOCK

    @property
    def is_finalized(self) -> bool:
        return self.kind is StatusKind.FINALIZED

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    @property
    def is_failure(self) -> bool:
        return self.kind in FAILED_KINDS

    def __str__(self) -> str:
        if self.block_hash:
            return f"{self.kind.value}({self.block_hash})"
        if self.peers is not None:
            return f"{self.kind.value}({len(self.peers)} peers)"
        return self.kind.value


@dataclass(frozen=True)
class Cell:
    """A (row, column) position in a block's data matrix."""
    row: int
    col: int

    def to_rpc(self) -> dict:
        return {"row": self.row, "col": self.col}


@dataclass(frozen=True)
class BlockLength:
    """Block size limits and data matrix dimensions reported by ``kate_blockLength``."""
    max_normal: int
    max_operational: int
    max_mandatory: int
    rows: int
    cols: int
    chunk_size: int

    @classmethod
    def from_rpc(cls, result: dict) -> "BlockLength":
        limits = result["max"]
        return cls(
            max_normal=int(limits["normal"]),
            max_operational=int(limits["operational"]),
            max_mandatory=int(limits["mandatory"]),
            rows=int(result["rows"]),
            cols=int(result["cols"]),
            chunk_size=int(result["chunkSize"] if "chunkSize" in result else result["chunk_size"]),
        )

    @property
    def max_cells(self) -> int:
        return self.rows * self.cols
