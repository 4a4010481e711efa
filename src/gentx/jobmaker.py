import logging, threading, time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from .coinbase import build_script_parts
from .errors import ValidationError
from .tx import GenerationTransaction, OutPoint, TxIn, TxOut
from .utils import U64_MAX, var_string

log = logging.getLogger(__name__)

TX_VERSION = 1
TX_VERSION_COMMENTS = 2
COINBASE_SEQUENCE = 0

AllocateOutputs = Callable[["BlockTemplate"], Sequence[TxOut]]


def _hex(key: str, value) -> bytes:
    if not isinstance(value, str):
        raise ValidationError(f"template field {key} must be a hex string, got {type(value).__name__}")
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise ValidationError(f"template field {key} is not valid hex: {value!r}") from e


def _uint(tpl: Dict[str, Any], key: str, hi: int) -> int:
    if key not in tpl:
        raise ValidationError(f"template missing {key}")
    v = tpl[key]
    if not isinstance(v, int) or isinstance(v, bool) or v < 0 or v > hi:
        raise ValidationError(f"template field {key} out of range: {v!r}")
    return v


@dataclass(frozen=True)
class BlockTemplate:
    height: int
    coinbase_aux_flags: bytes
    coinbase_value: int
    previous_block_hash: bytes
    default_witness_commitment: Optional[bytes] = None

    @classmethod
    def from_gbt(cls, tpl: Dict[str, Any]) -> "BlockTemplate":
        """Validate a getblocktemplate result."""
        if not isinstance(tpl, dict):
            raise ValidationError(f"template must be a dict, got {type(tpl).__name__}")
        height = _uint(tpl, "height", 0xffffffff)
        value = _uint(tpl, "coinbasevalue", U64_MAX)

        if "previousblockhash" not in tpl:
            raise ValidationError("template missing previousblockhash")
        prev = _hex("previousblockhash", tpl["previousblockhash"])
        if len(prev) != 32:
            raise ValidationError(f"previousblockhash must be 32 bytes, got {len(prev)}")

        # daemons that still emit coinbaseaux put everything under "flags"
        aux = tpl.get("coinbaseaux")
        if not isinstance(aux, dict):
            raise ValidationError("template missing coinbaseaux")
        keys = sorted(aux, key=lambda k: (k != "flags", k))
        flags = b"".join(_hex(f"coinbaseaux.{k}", aux[k]) for k in keys)

        commit = tpl.get("default_witness_commitment")
        commit_spk = _hex("default_witness_commitment", commit) if commit is not None else None
        return cls(height, flags, value, prev, commit_spk)


class GenerationTxBuilder:
    """
    Builds one GenerationTransaction per block template.

    `allocate_outputs` is the pool's payout policy; it is called once per
    build and its outputs are stored as returned. `clock` returns epoch
    seconds. Embedded timestamps never go backwards on one builder.

    The last embedded second is the only state shared between builds on an
    instance. Builders for different chains or coins each need their own
    instance so one chain's clamp never holds back another's time.
    """

    def __init__(self, allocate_outputs: Optional[AllocateOutputs] = None,
                 clock: Callable[[], float] = time.time, tx_comment: str = ""):
        self.allocate_outputs = allocate_outputs
        self.clock = clock
        self.tx_comment = tx_comment
        self._last_ts = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        ts = int(self.clock())
        with self._lock:
            if ts < self._last_ts:
                log.warning("clock went backwards (%d < %d), keeping last coinbase time", ts, self._last_ts)
                ts = self._last_ts
            self._last_ts = ts
        return ts

    def build(self, template: BlockTemplate, supports_tx_comments: bool,
              extranonce_size: int, pool_tag: str) -> GenerationTransaction:
        version = TX_VERSION_COMMENTS if supports_tx_comments else TX_VERSION
        parts = build_script_parts(template.height, template.coinbase_aux_flags, self.now(),
                                   extranonce_size, pool_tag)
        tx_in = TxIn(OutPoint(), parts.part1, parts.part2, parts.extranonce_size, COINBASE_SEQUENCE)

        outputs = ()
        if self.allocate_outputs is not None:
            outputs = tuple(self.allocate_outputs(template))
            for o in outputs:
                if not isinstance(o, TxOut):
                    raise ValidationError(f"allocator returned {type(o).__name__}, expected TxOut")

        message = var_string(self.tx_comment) if supports_tx_comments else b""
        tx = GenerationTransaction(version, (tx_in,), outputs, 0, message)
        log.debug("built generation tx height=%d version=%d script_len=%d outputs=%d",
                  template.height, version, tx_in.script_length, len(outputs))
        return tx


def builder_from_settings(settings) -> GenerationTxBuilder:
    """Builder paying the whole reward to settings.payout_address, if set."""
    from .payout import SingleAddressAllocator
    allocate = SingleAddressAllocator(settings.payout_address) if settings.payout_address else None
    return GenerationTxBuilder(allocate, tx_comment=settings.tx_comment)
