import hashlib

DIGEST_SIZE = hashlib.sha256().digest_size
DIGEST_BITS = DIGEST_SIZE * 8

# Mask covering the first `n` most significant bits of a byte, for n in 0..8.
_MASKS = (0x00, 0x80, 0xC0, 0xE0, 0xF0, 0xF8, 0xFC, 0xFE, 0xFF)


def sha256_digest(data: bytes) -> bytes:
    """
    Compute SHA-256 and return the raw 32-byte digest.
    """
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    """
    Compute SHA-256 and return the digest as a hex string.
    """
    return hashlib.sha256(data).hexdigest()


def leading_bit_mask(required: int) -> int:
    """
    Mask for the bits of one byte that must be zero when `required` leading
    bits are still outstanding (8 or more means the whole byte).
    """
    if required <= 0:
        return _MASKS[0]
    return _MASKS[min(required, 8)]


def meets_difficulty(digest: bytes, difficulty: int) -> bool:
    """
    Proof-of-Work check: the first `difficulty` bits of the digest, read from
    the most significant byte, must all be zero.

    The digest is walked byte by byte; every byte consumes up to 8 bits of the
    remaining requirement. A requirement larger than the digest can never be
    met and simply returns False.
    """
    remaining = difficulty
    index = 0

    while remaining > 0 and index < len(digest):
        if digest[index] & leading_bit_mask(remaining):
            return False

        remaining = max(remaining - 8, 0)
        index += 1

    return remaining <= 0


def leading_zero_bits(digest: bytes) -> int:
    """
    Number of zero bits before the first set bit of the digest.
    """
    count = 0
    for byte in digest:
        if byte:
            return count + 8 - byte.bit_length()
        count += 8
    return count


def is_block_valid(block, difficulty: int) -> bool:
    """
    Hash the canonical encoding of `block` and check it against `difficulty`.
    """
    return meets_difficulty(sha256_digest(block.encode()), difficulty)
