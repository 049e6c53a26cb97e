import argparse
import json
import logging
import sys
import time

import requests
from pydantic import ValidationError

from mini_miner import config
from mini_miner.errors import MinerError
from mini_miner.logs import setup_logging
from mini_miner.models import MiniMinerAnswer, MiniMinerProblem
from mini_miner.solver import solve

logger = logging.getLogger(__name__)


def load_problem(path: str) -> MiniMinerProblem:
    """
    Read a problem JSON document from `path` ("-" for stdin).
    """
    if path == "-":
        raw = sys.stdin.read()
    else:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    return MiniMinerProblem.model_validate_json(raw)


def solve_remote(coordinator_url: str, problem: MiniMinerProblem, timeout: float) -> MiniMinerAnswer:
    """
    Let a running solve service do the work.

    Service-side failures come back as a SolveError body and are re-raised
    as MinerError.
    """
    r = requests.post(
        f"{coordinator_url}/solve",
        json=problem.model_dump(),
        timeout=timeout,
    )
    if r.status_code != 200:
        body = r.json()
        raise MinerError(f"{body.get('error', r.status_code)}: {body.get('detail', r.text)}")
    return MiniMinerAnswer.model_validate(r.json())


def main(argv=None) -> int:
    """
    Miner entry point: read a problem, find a nonce, print the answer JSON.
    """
    parser = argparse.ArgumentParser(description="Proof-of-work nonce search")
    parser.add_argument("--problem", default="-", help="problem JSON file, '-' for stdin")
    parser.add_argument("--coordinator", default=None,
                        help=f"solve through a running service (e.g. {config.COORDINATOR_URL})")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--max-nonce", type=int, default=None)
    parser.add_argument("--timeout", type=float, default=None, help="seconds")
    parser.add_argument("--threads", action="store_true", help="use threads instead of processes")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    args = parser.parse_args(argv)

    # Log lines go to stderr so stdout carries only the answer.
    setup_logging(args.log_level, stream=sys.stderr)

    # Parse and validate the problem before spending any CPU on it.
    try:
        problem = load_problem(args.problem)
    except (OSError, ValidationError) as e:
        print(f"[miner] ❌ cannot read problem: {e}", file=sys.stderr)
        return 1

    # Start time used to measure the whole solve, remote or local.
    start = time.time()
    try:
        if args.coordinator:
            # The service runs the search; we only forward the problem.
            answer = solve_remote(args.coordinator, problem, timeout=args.timeout or 3600)
        else:
            # Local search on this machine's worker pool.
            answer = solve(
                problem,
                workers=args.workers,
                chunk_size=args.chunk_size,
                max_nonce=args.max_nonce,
                timeout=args.timeout,
                use_processes=False if args.threads else None,
            )
    except (MinerError, requests.RequestException) as e:
        print(f"[miner] ❌ {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    elapsed = time.time() - start

    # Status line on stderr, answer JSON alone on stdout.
    print(
        f"[miner] ✅ difficulty={problem.difficulty} nonce={answer.nonce} time={elapsed:.2f}s",
        file=sys.stderr,
    )
    print(answer.model_dump_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
