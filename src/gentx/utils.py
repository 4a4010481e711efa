import struct, hashlib
from typing import BinaryIO, Tuple, Union

from .errors import EncodingError, ValidationError

U32_MAX = 0xffffffff
U64_MAX = 0xffffffffffffffff
# largest payload a single length byte can push directly (OP_PUSHBYTES_75)
MAX_DIRECT_PUSH = 0x4b

# === Hash helpers ===
def sha256(b: bytes) -> bytes: return hashlib.sha256(b).digest()
def dblsha(b: bytes) -> bytes: return sha256(sha256(b))

# === Fixed width ===
def _check_range(n: int, hi: int, what: str):
    if not isinstance(n, int) or isinstance(n, bool):
        raise EncodingError(f"{what} must be an int, got {type(n).__name__}")
    if n < 0 or n > hi:
        raise EncodingError(f"{what} out of range: {n}")

def u32le(n: int) -> bytes:
    _check_range(n, U32_MAX, "uint32")
    return struct.pack("<L", n)

def u64le(n: int) -> bytes:
    _check_range(n, U64_MAX, "uint64")
    return struct.pack("<Q", n)

# === Compact size ===
def varint(n: int) -> bytes:
    _check_range(n, U64_MAX, "varint")
    if n < 0xfd: return bytes([n])
    if n <= 0xffff: return b"\xfd" + struct.pack("<H", n)
    if n <= 0xffffffff: return b"\xfe" + struct.pack("<L", n)
    return b"\xff" + struct.pack("<Q", n)

def var_string(s: Union[str, bytes]) -> bytes:
    if isinstance(s, str):
        b = s.encode("utf-8")
    elif isinstance(s, (bytes, bytearray)):
        b = bytes(s)
    else:
        raise ValidationError(f"var_string needs str or bytes, got {type(s).__name__}")
    return varint(len(b)) + b

# === Script numbers (BIP34 height push) ===
def script_number(n: int) -> bytes:
    """
    Minimal little-endian push of a non-negative integer: payload bytes,
    a trailing 0x00 when the top bit of the last byte is set (so it does not
    read as negative), prefixed with one length byte. 0 is the empty push.

    Heights 1..16 come out as 01 0N, not OP_1..OP_16. Chains that check
    BIP34 against CScript() << height (regtest below height 17) reject
    those coinbases.
    """
    if not isinstance(n, int) or isinstance(n, bool):
        raise EncodingError(f"script number must be an int, got {type(n).__name__}")
    if n < 0:
        raise EncodingError(f"script number must be non-negative: {n}")
    enc = bytearray()
    while n:
        enc.append(n & 0xff); n >>= 8
    if enc and enc[-1] & 0x80:
        enc.append(0)
    if len(enc) > MAX_DIRECT_PUSH:
        raise EncodingError(f"script number needs {len(enc)} bytes, max {MAX_DIRECT_PUSH}")
    return bytes([len(enc)]) + bytes(enc)

def decode_script_number(b: bytes) -> Tuple[int, int]:
    """Returns (value, bytes consumed) for a push produced by script_number."""
    if not b:
        raise ValidationError("empty script number")
    l = b[0]
    if l > MAX_DIRECT_PUSH:
        raise ValidationError(f"not a direct push: opcode 0x{l:02x}")
    if len(b) < 1 + l:
        raise ValidationError(f"truncated script number: need {l} bytes, have {len(b) - 1}")
    payload = b[1:1 + l]
    if payload and payload[-1] & 0x80:
        raise ValidationError("negative script number")
    return int.from_bytes(payload, "little"), 1 + l

# === Stream readers ===
def read_exact(s: BinaryIO, n: int) -> bytes:
    b = s.read(n)
    if len(b) != n:
        raise ValidationError(f"unexpected end of data: wanted {n} bytes, got {len(b)}")
    return b

def read_u32le(s: BinaryIO) -> int: return struct.unpack("<L", read_exact(s, 4))[0]
def read_u64le(s: BinaryIO) -> int: return struct.unpack("<Q", read_exact(s, 8))[0]

def read_varint(s: BinaryIO) -> int:
    fb = read_exact(s, 1)[0]
    if fb < 0xfd: return fb
    if fb == 0xfd: return struct.unpack("<H", read_exact(s, 2))[0]
    if fb == 0xfe: return struct.unpack("<L", read_exact(s, 4))[0]
    return struct.unpack("<Q", read_exact(s, 8))[0]

def read_var_bytes(s: BinaryIO) -> bytes:
    return read_exact(s, read_varint(s))
