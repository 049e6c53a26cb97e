import json
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Iterable, NamedTuple, Optional, Tuple

from .errors import EncodingError

# Version of the byte layout below. The remote verifier hashes exactly this
# form, so any change to it must bump the version.
ENCODING_VERSION = 1

_HEAD = b'{"data":'
_NONCE_KEY = b',"nonce":'
_TAIL = b"}"


def _dumps(value: Any) -> bytes:
    return json.dumps(
        value, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    ).encode("utf-8")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class Entry(NamedTuple):
    """
    One `[payload, value]` pair of the puzzle data.
    """
    payload: str
    value: int


@dataclass(frozen=True)
class Block:
    """
    Puzzle block: the fixed entries plus a nonce.

    Canonical encoding (UTF-8, no whitespace, keys in this order):

        {"data":[["<payload>",<value>],...],"nonce":<nonce or null>}

    The entries tuple is shared between all candidates of a search; only the
    nonce differs.
    """
    entries: Tuple[Entry, ...]
    nonce: Optional[int] = None

    @classmethod
    def from_problem(cls, data: Iterable[Iterable[Any]]) -> "Block":
        """
        Build the block template from the problem's list of pairs.
        The problem's own nonce is ignored.
        """
        entries = []
        for pair in data:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                raise EncodingError(f"entry is not a [payload, value] pair: {pair!r}")
            entries.append(Entry(*pair))
        return cls(entries=tuple(entries))

    def with_nonce(self, nonce: int) -> "Block":
        """
        Same entries (the very same tuple object), different nonce.
        """
        return Block(entries=self.entries, nonce=nonce)

    @cached_property
    def _data_bytes(self) -> bytes:
        for entry in self.entries:
            if not isinstance(entry.payload, str):
                raise EncodingError(f"payload must be a string, got {entry.payload!r}")
            if not _is_int(entry.value):
                raise EncodingError(f"value must be an integer, got {entry.value!r}")
        try:
            return _dumps([[e.payload, e.value] for e in self.entries])
        except (TypeError, ValueError) as e:
            raise EncodingError(f"cannot serialize block entries: {e}") from e

    def nonce_template(self) -> Tuple[bytes, bytes]:
        """
        Return `(head, tail)` such that

            head + str(n).encode() + tail == self.with_nonce(n).encode()

        for every integer n. The search loop hashes candidates this way so the
        entries are serialized once per search, not once per nonce.
        """
        return _HEAD + self._data_bytes + _NONCE_KEY, _TAIL

    def encode(self) -> bytes:
        """
        Canonical bytes hashed by the proof-of-work check.
        """
        if self.nonce is not None and not _is_int(self.nonce):
            raise EncodingError(f"nonce must be an integer or None, got {self.nonce!r}")
        head, tail = self.nonce_template()
        return head + _dumps(self.nonce) + tail

    @classmethod
    def decode(cls, raw: bytes) -> "Block":
        """
        Parse a canonical encoding back into a Block (entry order preserved).
        """
        try:
            obj = json.loads(raw)
        except ValueError as e:
            raise EncodingError(f"not a JSON document: {e}") from e

        if not isinstance(obj, dict) or list(obj) != ["data", "nonce"]:
            raise EncodingError("expected an object with exactly 'data' and 'nonce'")
        if not isinstance(obj["data"], list):
            raise EncodingError("'data' must be a list of pairs")

        nonce = obj["nonce"]
        if nonce is not None and not _is_int(nonce):
            raise EncodingError(f"nonce must be an integer or null, got {nonce!r}")

        block = cls.from_problem(obj["data"])
        # Validates payload/value types.
        block.nonce_template()
        return block.with_nonce(nonce)
