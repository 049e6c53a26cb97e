import hashlib
import logging
import multiprocessing
import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from . import config
from .block import Block
from .errors import InvariantViolation, NotFound
from .pow import is_block_valid, meets_difficulty

logger = logging.getLogger(__name__)

# Workers look at the shared stop flag once every this many candidates.
STOP_CHECK_INTERVAL = 1024

# Chunks queued per worker, so a worker never idles waiting for the dispatcher.
CHUNKS_PER_WORKER = 2

# Worker processes are started fresh rather than forked: the solve service calls
# the engine from a thread pool, and forking a threaded process can deadlock.
START_METHOD = "spawn"


@dataclass(frozen=True)
class SearchResult:
    """
    Outcome of a successful search, with the numbers needed for metrics.
    """
    nonce: int
    checked: int
    elapsed_s: float
    workers: int

    @property
    def hashrate(self) -> float:
        return self.checked / max(self.elapsed_s, 1e-9)


class _Scanner:
    """
    Tests a contiguous range of nonces against one block template.

    The shared entries are already serialized into `head`; the SHA-256 state
    after `head` is computed once and copied for every candidate.
    """

    def __init__(self, head: bytes, tail: bytes, difficulty: int, stop):
        self.base = hashlib.sha256(head)
        self.tail = tail
        self.difficulty = difficulty
        self.stop = stop

    def scan(self, first: int, last: int) -> Tuple[Optional[int], int]:
        """
        Return `(nonce, checked)`; nonce is None when nothing in
        `first..=last` matched or the stop flag was raised.
        """
        base, tail, difficulty, stop = self.base, self.tail, self.difficulty, self.stop
        checked = 0

        for nonce in range(first, last + 1):
            # Another worker may already have won: give up on this chunk.
            if checked % STOP_CHECK_INTERVAL == 0 and stop.is_set():
                break

            # Resume from the hashed prefix and append only the nonce digits.
            h = base.copy()
            h.update(b"%d" % nonce + tail)
            checked += 1

            # Valid Proof-of-Work: tell every other worker to stop.
            if meets_difficulty(h.digest(), difficulty):
                stop.set()
                return nonce, checked

        return None, checked


# Per-process scanner, installed once by the pool initializer.
_scanner: Optional[_Scanner] = None


def _init_process(head: bytes, tail: bytes, difficulty: int, stop) -> None:
    global _scanner
    _scanner = _Scanner(head, tail, difficulty, stop)


def _scan_in_process(first: int, last: int) -> Tuple[Optional[int], int]:
    return _scanner.scan(first, last)


def _chunks(first: int, last: int, size: int) -> Iterator[Tuple[int, int]]:
    lo = first
    while lo <= last:
        hi = min(lo + size - 1, last)
        yield lo, hi
        lo = hi + 1


def _verify(block: Block, difficulty: int, nonce, first: int, last: int) -> int:
    if not isinstance(nonce, int) or not first <= nonce <= last:
        raise InvariantViolation(f"search succeeded with an unusable nonce: {nonce!r}")
    if not is_block_valid(block.with_nonce(nonce), difficulty):
        raise InvariantViolation(f"nonce {nonce} does not satisfy difficulty {difficulty}")
    return nonce


def run_search(
    block: Block,
    difficulty: int,
    *,
    workers: Optional[int] = None,
    chunk_size: Optional[int] = None,
    start: int = 0,
    max_nonce: Optional[int] = None,
    timeout: Optional[float] = None,
    use_processes: Optional[bool] = None,
) -> SearchResult:
    """
    Find any nonce in `start..=max_nonce` whose block hash has `difficulty`
    leading zero bits.

    The range is cut into chunks which are handed out to a worker pool as
    workers free up. The first chunk reporting a hit wins: the stop flag is
    raised, pending chunks are cancelled and results still in flight are
    ignored. Which nonce wins is not deterministic when several qualify.

    Raises NotFound when the range is exhausted or `timeout` seconds have
    passed, EncodingError when the block cannot be serialized.
    """
    if workers is None:
        workers = config.WORKERS or os.cpu_count() or 1
    if chunk_size is None:
        chunk_size = config.CHUNK_SIZE
    max_nonce = config.MAX_NONCE if max_nonce is None else max_nonce
    timeout = config.TIMEOUT_S if timeout is None else timeout
    use_processes = config.USE_PROCESSES if use_processes is None else use_processes

    if difficulty < 0:
        raise ValueError(f"difficulty must be non-negative, got {difficulty}")
    if workers < 1 or chunk_size < 1:
        raise ValueError("workers and chunk_size must be positive")
    if start < 0 or max_nonce > config.NONCE_MAX:
        raise ValueError(f"nonce range must lie within 0..={config.NONCE_MAX}")

    head, tail = block.nonce_template()
    t0 = time.perf_counter()

    if start > max_nonce:
        raise NotFound(f"empty nonce range {start}..={max_nonce}")

    # Zero required bits: the first candidate always qualifies.
    if difficulty == 0:
        return SearchResult(nonce=start, checked=1, elapsed_s=time.perf_counter() - t0, workers=0)

    if use_processes:
        ctx = multiprocessing.get_context(START_METHOD)
        stop = ctx.Event()
        executor = ProcessPoolExecutor(
            max_workers=workers,
            mp_context=ctx,
            initializer=_init_process,
            initargs=(head, tail, difficulty, stop),
        )
        scan = _scan_in_process
    else:
        stop = threading.Event()
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="miner")
        scan = _Scanner(head, tail, difficulty, stop).scan

    logger.debug(
        "searching %d..=%d difficulty=%d workers=%d chunk=%d mode=%s",
        start, max_nonce, difficulty, workers, chunk_size,
        "process" if use_processes else "thread",
    )

    deadline = None if timeout is None else time.monotonic() + timeout
    chunks = _chunks(start, max_nonce, chunk_size)
    pending = set()
    found = None
    checked = 0
    timed_out = False

    def dispatch() -> None:
        while len(pending) < workers * CHUNKS_PER_WORKER:
            chunk = next(chunks, None)
            if chunk is None:
                return
            pending.add(executor.submit(scan, *chunk))

    try:
        # Fill the queue: every worker gets a chunk plus one in reserve.
        dispatch()
        while pending:
            # Time budget left for this round (None means wait forever).
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    timed_out = True
                    break

            # Wake up as soon as any chunk completes.
            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            for fut in done:
                nonce, n = fut.result()
                checked += n
                if nonce is not None and found is None:
                    found = nonce

            # Find-any: the first hit ends the search.
            if found is not None:
                break

            # Replace the finished chunks with the next ones in the range.
            dispatch()
    finally:
        # Stop workers mid-chunk and drop everything not yet started.
        stop.set()
        for fut in pending:
            fut.cancel()
        executor.shutdown(wait=True, cancel_futures=True)

    elapsed = time.perf_counter() - t0

    if found is None:
        if timed_out:
            raise NotFound(f"no nonce found within {timeout}s", checked=checked)
        raise NotFound(
            f"no nonce in {start}..={max_nonce} meets difficulty {difficulty}",
            checked=checked,
        )

    nonce = _verify(block, difficulty, found, start, max_nonce)
    return SearchResult(nonce=nonce, checked=checked, elapsed_s=elapsed, workers=workers)


def search(block: Block, difficulty: int, **options) -> int:
    """
    Same as `run_search`, returning only the nonce.
    """
    return run_search(block, difficulty, **options).nonce
