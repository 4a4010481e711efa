from typing import Tuple

from base58 import b58decode_check
from bech32 import decode as segwit_decode

from .errors import ConfigurationError
from .jobmaker import BlockTemplate
from .tx import TxOut

# base58 version byte -> script kind
P2PKH_VERSIONS = {0x00, 0x6f}
P2SH_VERSIONS = {0x05, 0xc4}
SEGWIT_HRPS = ("bc", "tb", "bcrt")


def address_to_script(address: str) -> bytes:
    lower = address.lower()
    for hrp in SEGWIT_HRPS:
        if lower.startswith(hrp + "1"):
            witver, prog = segwit_decode(hrp, address)
            if witver is None:
                continue
            prog = bytes(prog)
            if witver == 0 and len(prog) not in (20, 32):
                raise ConfigurationError(f"bad v0 witness program length in {address}")
            # OP_0 / OP_1..OP_16, then a direct push of the program
            op = 0 if witver == 0 else 0x50 + witver
            return bytes([op, len(prog)]) + prog
    try:
        raw = b58decode_check(address)
    except ValueError as e:
        raise ConfigurationError(f"bad payout address {address!r}: {e}") from e
    if len(raw) != 21:
        raise ConfigurationError(f"bad payout address {address!r}: payload is {len(raw)} bytes")
    ver, h160 = raw[0], raw[1:]
    if ver in P2PKH_VERSIONS:
        return b"\x76\xa9" + bytes([len(h160)]) + h160 + b"\x88\xac"
    if ver in P2SH_VERSIONS:
        return b"\xa9" + bytes([len(h160)]) + h160 + b"\x87"
    raise ConfigurationError(f"unsupported address version 0x{ver:02x} for {address!r}")


class SingleAddressAllocator:
    """Whole coinbase value to one address, plus the witness commitment if any."""

    def __init__(self, address: str):
        self.address = address
        self.script = address_to_script(address)

    def __call__(self, template: BlockTemplate) -> Tuple[TxOut, ...]:
        outs = [TxOut(template.coinbase_value, self.script)]
        if template.default_witness_commitment is not None:
            outs.append(TxOut(0, template.default_witness_commitment))
        return tuple(outs)
