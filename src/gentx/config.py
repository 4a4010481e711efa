import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

ENV_FILE = "config/.env"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class PoolSettings:
    pool_tag: str
    extranonce1_bytes: int
    extranonce2_bytes: int
    tx_comments: bool
    tx_comment: str
    payout_address: Optional[str]

    @property
    def extranonce_size(self) -> int:
        # the slot holds the session's extranonce1 followed by the miner's extranonce2
        return self.extranonce1_bytes + self.extranonce2_bytes


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if v < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {v}")
    return v


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUE: return True
    if v in _FALSE: return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def load_settings(env_file: str = ENV_FILE) -> PoolSettings:
    load_dotenv(env_file)
    return PoolSettings(
        pool_tag=os.getenv("COINBASE_TAG", "/gentx/"),
        extranonce1_bytes=_int("EXTRANONCE1_BYTES", 4),
        extranonce2_bytes=_int("EXTRANONCE2_BYTES", 4),
        tx_comments=_bool("TX_COMMENTS", False),
        tx_comment=os.getenv("TX_COMMENT", ""),
        payout_address=os.getenv("PAYOUT_ADDRESS") or None,
    )
