import logging

from .block import Block
from .models import MiniMinerAnswer, MiniMinerProblem
from .pow import leading_zero_bits, sha256_digest
from .search import SearchResult, run_search

logger = logging.getLogger(__name__)


def solve_with_result(problem: MiniMinerProblem, **options) -> SearchResult:
    """
    Build the block template from the problem and search for a nonce.

    `options` are forwarded to `run_search` (workers, chunk_size, max_nonce,
    timeout, use_processes); anything not given falls back to config.
    """
    block = Block.from_problem(problem.block.data)
    logger.info(
        "mining block with %d entries at difficulty %d",
        len(block.entries), problem.difficulty,
    )

    result = run_search(block, problem.difficulty, **options)

    found = block.with_nonce(result.nonce)
    digest = sha256_digest(found.encode())
    logger.info(
        "found nonce=%d hash=%s zero_bits=%d checked=%d time=%.2fs hashrate=%.0f/s",
        result.nonce, digest.hex()[:16], leading_zero_bits(digest),
        result.checked, result.elapsed_s, result.hashrate,
    )
    logger.debug("%r", found)
    return result


def solve(problem: MiniMinerProblem, **options) -> MiniMinerAnswer:
    return MiniMinerAnswer(nonce=solve_with_result(problem, **options).nonce)
