import pytest

from mini_miner.block import Block
from mini_miner.pow import (
    DIGEST_BITS,
    is_block_valid,
    leading_bit_mask,
    leading_zero_bits,
    meets_difficulty,
    sha256_digest,
    sha256_hex,
)


def test_mask_table():
    assert [leading_bit_mask(n) for n in range(10)] == [
        0x00, 0x80, 0xC0, 0xE0, 0xF0, 0xF8, 0xFC, 0xFE, 0xFF, 0xFF,
    ]


def test_difficulty_boundary_on_byte_edge():
    digest = bytes([0x00, 0x00, 0x00, 0xFF])
    for d in range(0, 25):
        assert meets_difficulty(digest, d)
    for d in range(25, 33):
        assert not meets_difficulty(digest, d)


def test_high_nibble_set_stops_at_byte_edge():
    # 0xF0 = 1111_0000: the top bit is set, so only 24 zero bits.
    digest = bytes([0x00, 0x00, 0x00, 0xF0])
    assert leading_zero_bits(digest) == 24
    for d in range(0, 25):
        assert meets_difficulty(digest, d)
    for d in range(25, 33):
        assert not meets_difficulty(digest, d)


def test_difficulty_boundary_inside_a_byte():
    # 0x0F = 0000_1111: 28 zero bits.
    digest = bytes([0x00, 0x00, 0x00, 0x0F])
    assert leading_zero_bits(digest) == 28
    for d in range(0, 29):
        assert meets_difficulty(digest, d)
    for d in range(29, 33):
        assert not meets_difficulty(digest, d)


@pytest.mark.parametrize("k", [0, 1, 7, 8, 9, 15, 20, 31])
def test_boundary_matches_leading_zero_count(k):
    value = 1 << (31 - k)
    digest = value.to_bytes(4, "big")
    assert leading_zero_bits(digest) == k
    assert meets_difficulty(digest, k)
    assert not meets_difficulty(digest, k + 1)


def test_zero_difficulty_always_met():
    assert meets_difficulty(b"\xff" * 32, 0)
    assert meets_difficulty(b"", 0)


def test_difficulty_beyond_digest_never_met():
    zeros = bytes(32)
    assert leading_zero_bits(zeros) == 256
    assert meets_difficulty(zeros, DIGEST_BITS)
    assert not meets_difficulty(zeros, DIGEST_BITS + 1)


def test_hash_helpers_agree():
    assert sha256_digest(b"abc").hex() == sha256_hex(b"abc")
    assert sha256_hex(b"abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_empty_block_with_known_nonce():
    block = Block(entries=(), nonce=45)
    digest = sha256_digest(block.encode())
    assert leading_zero_bits(digest) >= 8
    assert meets_difficulty(digest, 8)
    assert is_block_valid(block, 8)
