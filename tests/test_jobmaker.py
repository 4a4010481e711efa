import pytest

from gentx.config import PoolSettings
from gentx.errors import ValidationError
from gentx.jobmaker import BlockTemplate, GenerationTxBuilder, builder_from_settings
from gentx.tx import GenerationTransaction, TxOut
from gentx.utils import var_string

PREV = "00000000000000000009f0b1c2d3e4f5a6b7c8d9e0f1a2b3c4d5e6f708192a3b"
P2PKH = bytes.fromhex("76a91462e907b15cbf27d5425399ebf6f0fb50ebb88f1888ac")


def gbt(**kw):
    tpl = {
        "height": 277316,
        "coinbasevalue": 2500000000,
        "previousblockhash": PREV,
        "coinbaseaux": {"flags": ""},
    }
    tpl.update(kw)
    return tpl


def fixed_clock(*times):
    it = iter(times)
    return lambda: next(it)


def test_template_from_gbt():
    t = BlockTemplate.from_gbt(gbt(coinbaseaux={"flags": "062f503253482f"},
                                   default_witness_commitment="6a24aa21a9ed" + "00" * 32))
    assert t.height == 277316
    assert t.coinbase_value == 2500000000
    assert t.previous_block_hash == bytes.fromhex(PREV)
    assert t.coinbase_aux_flags == bytes.fromhex("062f503253482f")
    assert t.default_witness_commitment.startswith(b"\x6a\x24")


def test_template_empty_coinbaseaux():
    assert BlockTemplate.from_gbt(gbt(coinbaseaux={})).coinbase_aux_flags == b""


@pytest.mark.parametrize("bad", [
    {"height": -1},
    {"height": "277316"},
    {"coinbasevalue": None},
    {"previousblockhash": "abcd"},
    {"previousblockhash": "zz" * 32},
    {"coinbaseaux": {"flags": "0g"}},
    {"coinbaseaux": None},
])
def test_template_rejects_bad_fields(bad):
    with pytest.raises(ValidationError):
        BlockTemplate.from_gbt(gbt(**bad))


def test_template_rejects_missing_fields():
    for key in ("height", "coinbasevalue", "previousblockhash", "coinbaseaux"):
        tpl = gbt()
        del tpl[key]
        with pytest.raises(ValidationError):
            BlockTemplate.from_gbt(tpl)


def test_golden_vector():
    t = BlockTemplate.from_gbt(gbt())
    tx = GenerationTxBuilder(clock=fixed_clock(1700000000.7)).build(t, False, 8, "pool-test")
    part1 = bytes.fromhex("03443b04" "0400f15365") + b"\x00" * 8
    part2 = b"\x09pool-test"
    assert tx.coinb1() == (b"\x01\x00\x00\x00" + b"\x01" + b"\x00" * 32 + b"\xff\xff\xff\xff" +
                           bytes([len(part1) + 8 + len(part2)]) + part1)
    assert tx.coinb2() == part2 + b"\x00" * 4 + b"\x00" + b"\x00" * 4
    assert tx.outputs == ()


@pytest.mark.parametrize("comments,version", [(False, 1), (True, 2)])
def test_version_follows_tx_comments(comments, version):
    tx = GenerationTxBuilder(tx_comment="hi").build(BlockTemplate.from_gbt(gbt()), comments, 8, "t")
    assert tx.version == version
    assert tx.message == (var_string("hi") if comments else b"")


def test_input_is_always_the_sentinel():
    for tpl in (gbt(), gbt(height=0), gbt(coinbaseaux={"flags": "ff" * 10})):
        tx = GenerationTxBuilder().build(BlockTemplate.from_gbt(tpl), False, 4, "t")
        assert len(tx.inputs) == 1
        assert tx.tx_in.prev_out.hash == b"\x00" * 32
        assert tx.tx_in.prev_out.index == 0xffffffff
        assert tx.tx_in.sequence == 0
        assert tx.lock_time == 0


def test_same_second_is_deterministic():
    t = BlockTemplate.from_gbt(gbt())
    b = GenerationTxBuilder(clock=fixed_clock(1700000000.1, 1700000000.9))
    a, c = b.build(t, False, 8, "t"), b.build(t, False, 8, "t")
    assert a.coinb1() == c.coinb1()
    assert a.coinb2() == c.coinb2()


def test_timestamp_never_goes_backwards():
    t = BlockTemplate.from_gbt(gbt())
    b = GenerationTxBuilder(clock=fixed_clock(1700000005, 1700000001, 1700000009))
    first, second, third = (b.build(t, False, 8, "t") for _ in range(3))
    assert first.coinb1() == second.coinb1()
    assert first.coinb1()[:-13] == third.coinb1()[:-13]
    assert first.coinb2() == third.coinb2()
    assert first.coinb1()[-13:-8] == bytes.fromhex("0405f15365")
    assert third.coinb1()[-13:-8] == bytes.fromhex("0409f15365")


def test_allocator_called_once_and_stored_verbatim():
    calls = []
    outs = [TxOut(2400000000, P2PKH), TxOut(100000000, b"\x51")]

    def allocate(template):
        calls.append(template)
        return outs

    t = BlockTemplate.from_gbt(gbt())
    tx = GenerationTxBuilder(allocate).build(t, False, 8, "pool-test")
    assert calls == [t]
    assert tx.outputs == tuple(outs)

    raw = tx.coinb1() + b"\x00" * 8 + tx.coinb2()
    parsed = GenerationTransaction.parse(raw)
    assert len(parsed.inputs) == 1
    assert parsed.outputs == tuple(outs)


def test_allocator_must_return_txouts():
    with pytest.raises(ValidationError):
        GenerationTxBuilder(lambda t: [("value", b"")]).build(BlockTemplate.from_gbt(gbt()), False, 8, "t")


def test_builder_from_settings():
    settings = PoolSettings("/p/", 4, 4, True, "hello", "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")
    b = builder_from_settings(settings)
    tx = b.build(BlockTemplate.from_gbt(gbt()), settings.tx_comments, settings.extranonce_size, settings.pool_tag)
    assert tx.outputs == (TxOut(2500000000, P2PKH),)
    assert tx.message == b"\x05hello"
    assert tx.extranonce_size == 8
