from dataclasses import dataclass

from .errors import ConfigurationError, ValidationError
from .utils import script_number, var_string

# consensus bounds on the coinbase scriptSig
MIN_SCRIPT_LEN = 2
MAX_SCRIPT_LEN = 100
MIN_EXTRANONCE_SIZE = 2


@dataclass(frozen=True)
class ScriptParts:
    """
    The coinbase scriptSig as two halves around the extra-nonce slot.

    Miners insert exactly `extranonce_size` bytes at `insert_offset`, i.e.
    script = part1 + extranonce + part2. Both halves are shared unchanged by
    every miner session.
    """
    part1: bytes
    part2: bytes
    extranonce_size: int

    def __post_init__(self):
        object.__setattr__(self, "part1", bytes(self.part1))
        object.__setattr__(self, "part2", bytes(self.part2))

    @property
    def insert_offset(self) -> int:
        return len(self.part1)

    @property
    def script_length(self) -> int:
        return len(self.part1) + self.extranonce_size + len(self.part2)


def build_script_parts(height: int, aux_flags: bytes, now: int,
                       extranonce_size: int, pool_tag: str) -> ScriptParts:
    # scriptSig: <BIP34 height> <aux flags> <time push> <zero placeholder> | slot | <tag>
    if not isinstance(height, int) or height < 0:
        raise ValidationError(f"bad block height: {height!r}")
    if not isinstance(aux_flags, (bytes, bytearray)):
        raise ValidationError(f"coinbase aux flags must be bytes, got {type(aux_flags).__name__}")
    if not isinstance(now, int) or now < 0:
        raise ValidationError(f"bad timestamp: {now!r}")
    if not isinstance(pool_tag, (str, bytes, bytearray)):
        raise ValidationError(f"pool tag must be str or bytes, got {type(pool_tag).__name__}")
    if not isinstance(extranonce_size, int) or isinstance(extranonce_size, bool):
        raise ConfigurationError(f"extranonce size must be an int, got {extranonce_size!r}")
    if extranonce_size < MIN_EXTRANONCE_SIZE:
        raise ConfigurationError(f"extranonce size {extranonce_size} below minimum {MIN_EXTRANONCE_SIZE}")

    part1 = script_number(height) + bytes(aux_flags) + script_number(now) + b"\x00" * extranonce_size
    part2 = var_string(pool_tag)
    parts = ScriptParts(part1, part2, extranonce_size)

    if not MIN_SCRIPT_LEN <= parts.script_length <= MAX_SCRIPT_LEN:
        raise ConfigurationError(
            f"coinbase script would be {parts.script_length} bytes "
            f"(part1={len(part1)} slot={extranonce_size} part2={len(part2)}), "
            f"allowed {MIN_SCRIPT_LEN}..{MAX_SCRIPT_LEN}")
    return parts


def max_extranonce_size(height: int, aux_flags: bytes, now: int, pool_tag: str) -> int:
    """Largest slot that still fits the script budget for these inputs."""
    fixed = len(script_number(height)) + len(aux_flags) + len(script_number(now)) + len(var_string(pool_tag))
    # the slot is counted twice: zero placeholder in part1 plus the inserted bytes
    return (MAX_SCRIPT_LEN - fixed) // 2
