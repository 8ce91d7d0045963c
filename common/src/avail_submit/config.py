"""
Settings for talking to an Avail node, read from the environment.

A ``.env`` file in the working directory is loaded first, so the usual setup is:

    ENDPOINT=wss://turing-rpc.avail.so/ws
    SEED="bottom drive obey lake curtain smoke basket hold race lonely fit walk"
    APP_ID=463
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from substrateinterface import Keypair

DEFAULT_ENDPOINT = "ws://127.0.0.1:9944"
DEFAULT_SEED = "//Alice"
TRUTHY = ("1", "true", "yes", "on")


@dataclass
class Settings:
    endpoint: str = DEFAULT_ENDPOINT
    seed: str = DEFAULT_SEED
    app_id: int = 0
    ss58_format: int = 42
    inclusion_timeout: Optional[float] = 180.0
    wait_for_finalization: bool = False


def parse_timeout(value: str) -> Optional[float]:
    # 0 or negative disables the timeout
    seconds = float(value)
    return seconds if seconds > 0 else None


def load_settings(dotenv_path: Optional[str] = None, environ=None) -> Settings:
    if environ is None:
        load_dotenv(dotenv_path)
        environ = os.environ

    return Settings(
        endpoint=environ.get("ENDPOINT", DEFAULT_ENDPOINT),
        seed=environ.get("SEED", DEFAULT_SEED),
        app_id=int(environ.get("APP_ID", "0")),
        ss58_format=int(environ.get("SS58_FORMAT", "42")),
        inclusion_timeout=parse_timeout(environ.get("INCLUSION_TIMEOUT", "180")),
        wait_for_finalization=environ.get("WAIT_FOR_FINALIZATION", "").strip().lower() in TRUTHY,
    )


def load_keypair(seed: str, ss58_format: int = 42) -> Keypair:
    """Keypair from a derivation URI (``//Alice``) or a mnemonic phrase."""
    if seed.startswith("//") or "/" in seed or seed.count(" ") < 2:
        return Keypair.create_from_uri(seed, ss58_format=ss58_format)
    return Keypair.create_from_mnemonic(seed, ss58_format=ss58_format)
