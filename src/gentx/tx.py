"""
Generation (coinbase) transaction records and their wire encoding.

Layout (https://en.bitcoin.it/wiki/Protocol_documentation#tx):

    version:u32 | vin:varint | prev_hash:32 prev_index:u32 script_len:varint
    script seq:u32 | vout:varint | (value:u64 script_len:varint script)* |
    lock_time:u32 [| comment:var_str]

The stratum job splits this right where the extra-nonce goes:
coinb1 ends with script part 1, coinb2 starts with script part 2.
"""
import io
from dataclasses import dataclass
from typing import Dict, Tuple, Union

from .errors import ValidationError
from .utils import (U32_MAX, dblsha, read_exact, read_u32le, read_u64le,
                    read_var_bytes, read_varint, u32le, u64le, varint)

NULL_HASH = b"\x00" * 32
NULL_INDEX = U32_MAX


@dataclass(frozen=True)
class OutPoint:
    hash: bytes = NULL_HASH
    index: int = NULL_INDEX

    def __post_init__(self):
        object.__setattr__(self, "hash", bytes(self.hash))
        if len(self.hash) != 32:
            raise ValidationError(f"outpoint hash must be 32 bytes, got {len(self.hash)}")

    @property
    def is_null(self) -> bool:
        return self.hash == NULL_HASH and self.index == NULL_INDEX

    def serialize(self) -> bytes:
        return bytes(self.hash) + u32le(self.index)

    @classmethod
    def parse(cls, s) -> "OutPoint":
        return cls(read_exact(s, 32), read_u32le(s))


@dataclass(frozen=True)
class TxIn:
    """
    Coinbase input. The scriptSig is kept as two halves with an
    `extranonce_size`-byte gap between them; parsed inputs carry the whole
    script in script_part1 and no gap.
    """
    prev_out: OutPoint
    script_part1: bytes
    script_part2: bytes = b""
    extranonce_size: int = 0
    sequence: int = 0

    def __post_init__(self):
        # copy caller buffers so a shared bytearray cannot change the script
        object.__setattr__(self, "script_part1", bytes(self.script_part1))
        object.__setattr__(self, "script_part2", bytes(self.script_part2))

    @property
    def script_length(self) -> int:
        return len(self.script_part1) + self.extranonce_size + len(self.script_part2)

    def serialize(self, extranonce: bytes = b"") -> bytes:
        if len(extranonce) != self.extranonce_size:
            raise ValidationError(f"extranonce must be {self.extranonce_size} bytes, got {len(extranonce)}")
        return (self.prev_out.serialize() + varint(self.script_length) +
                self.script_part1 + bytes(extranonce) + self.script_part2 + u32le(self.sequence))

    @classmethod
    def parse(cls, s) -> "TxIn":
        prev_out = OutPoint.parse(s)
        script = read_var_bytes(s)
        return cls(prev_out, script, sequence=read_u32le(s))


@dataclass(frozen=True)
class TxOut:
    value: int
    script: bytes

    def __post_init__(self):
        object.__setattr__(self, "script", bytes(self.script))

    def serialize(self) -> bytes:
        return u64le(self.value) + varint(len(self.script)) + self.script

    @classmethod
    def parse(cls, s) -> "TxOut":
        value = read_u64le(s)
        return cls(value, read_var_bytes(s))


@dataclass(frozen=True)
class GenerationTransaction:
    version: int
    inputs: Tuple[TxIn, ...]
    outputs: Tuple[TxOut, ...] = ()
    lock_time: int = 0
    # serialized var_str, only present on coins with transaction comments
    message: bytes = b""

    def __post_init__(self):
        if len(self.inputs) != 1:
            raise ValidationError(f"generation transaction needs exactly one input, got {len(self.inputs)}")
        if not self.inputs[0].prev_out.is_null:
            raise ValidationError("generation input must spend the null outpoint")
        # accept lists from callers, keep tuples
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))
        object.__setattr__(self, "message", bytes(self.message))

    @property
    def tx_in(self) -> TxIn:
        return self.inputs[0]

    @property
    def extranonce_size(self) -> int:
        return self.tx_in.extranonce_size

    def coinb1(self) -> bytes:
        i = self.tx_in
        return (u32le(self.version) + varint(len(self.inputs)) + i.prev_out.serialize() +
                varint(i.script_length) + i.script_part1)

    def coinb2(self) -> bytes:
        i = self.tx_in
        outs = b"".join(o.serialize() for o in self.outputs)
        return (i.script_part2 + u32le(i.sequence) + varint(len(self.outputs)) + outs +
                u32le(self.lock_time) + self.message)

    def job_fields(self) -> Dict[str, Union[str, int]]:
        return {
            "coinb1": self.coinb1().hex(),
            "coinb2": self.coinb2().hex(),
            "extranonce_size": self.extranonce_size,
        }

    def serialize(self, extranonce: bytes = None) -> bytes:
        """
        Full transaction bytes with `extranonce` in the slot (zeros when
        omitted). Only for block submission; jobs ship coinb1/coinb2.
        """
        if extranonce is None:
            extranonce = b"\x00" * self.extranonce_size
        outs = b"".join(o.serialize() for o in self.outputs)
        return (u32le(self.version) + varint(len(self.inputs)) + self.tx_in.serialize(extranonce) +
                varint(len(self.outputs)) + outs + u32le(self.lock_time) + self.message)

    def txid(self, extranonce: bytes = None) -> str:
        return dblsha(self.serialize(extranonce))[::-1].hex()

    @classmethod
    def parse(cls, data: bytes, tx_comments: bool = False) -> "GenerationTransaction":
        s = io.BytesIO(data)
        version = read_u32le(s)
        n_in = read_varint(s)
        if n_in != 1:
            raise ValidationError(f"generation transaction needs exactly one input, got {n_in}")
        inputs = (TxIn.parse(s),)
        if not 2 <= inputs[0].script_length <= 100:
            raise ValidationError(f"coinbase script length {inputs[0].script_length} outside 2..100")
        n_out = read_varint(s)
        if n_out > len(data):
            raise ValidationError(f"output count {n_out} exceeds data length")
        outputs = tuple(TxOut.parse(s) for _ in range(n_out))
        lock_time = read_u32le(s)
        message = b""
        if tx_comments and version >= 2:
            body = read_var_bytes(s)
            message = varint(len(body)) + body
        rest = s.read()
        if rest:
            raise ValidationError(f"{len(rest)} trailing bytes after transaction")
        return cls(version, inputs, outputs, lock_time, message)
