import threading
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import EncodingError, InvariantViolation, MinerError, NotFound
from .models import Metrics, MiniMinerAnswer, MiniMinerProblem, SolveError
from .search import SearchResult
from .solver import solve_with_result

# FastAPI app the orchestrator calls with a parsed problem.
app = FastAPI(title="Mini Miner - Solver", version="0.1.0")


class SolveStats:
    """
    In-memory counters for the /metrics endpoint.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.solved_total = 0
        self.not_found_total = 0
        self.errors_total = 0
        self.last_difficulty: Optional[int] = None
        self.last_result: Optional[SearchResult] = None
        self.start_time_ms = int(time.time() * 1000)

    def record_solved(self, difficulty: int, result: SearchResult) -> None:
        with self._lock:
            self.solved_total += 1
            self.last_difficulty = difficulty
            self.last_result = result

    def record_failure(self, exc: MinerError) -> None:
        with self._lock:
            if isinstance(exc, NotFound):
                self.not_found_total += 1
            else:
                self.errors_total += 1

    def snapshot(self) -> Metrics:
        with self._lock:
            last = self.last_result
            return Metrics(
                solved_total=self.solved_total,
                not_found_total=self.not_found_total,
                errors_total=self.errors_total,
                last_difficulty=self.last_difficulty,
                last_nonce=last.nonce if last else None,
                last_elapsed_ms=int(last.elapsed_s * 1000) if last else None,
                last_hashrate=last.hashrate if last else None,
                uptime_ms=int(time.time() * 1000) - self.start_time_ms,
            )


stats = SolveStats()

# NotFound is a regular outcome (difficulty too high); the others are bugs or
# malformed input.
_STATUS = {
    NotFound: 404,
    EncodingError: 422,
    InvariantViolation: 500,
}


@app.exception_handler(MinerError)
async def miner_error_handler(request: Request, exc: MinerError) -> JSONResponse:
    stats.record_failure(exc)
    body = SolveError(
        error=type(exc).__name__,
        detail=str(exc),
        checked=getattr(exc, "checked", None),
    )
    return JSONResponse(status_code=_STATUS.get(type(exc), 500), content=body.model_dump())


@app.post("/solve", response_model=MiniMinerAnswer)
def post_solve(problem: MiniMinerProblem) -> MiniMinerAnswer:
    """
    Search for a nonce satisfying the problem's difficulty.

    Blocks until the search ends; the worker pool does the CPU work.
    """
    result = solve_with_result(problem)
    stats.record_solved(problem.difficulty, result)
    return MiniMinerAnswer(nonce=result.nonce)


@app.get("/metrics", response_model=Metrics)
def get_metrics() -> Metrics:
    return stats.snapshot()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


def run() -> None:
    """
    Serve the app with uvicorn: `mini-miner-service`.
    """
    import argparse

    import uvicorn

    from . import config
    from .logs import setup_logging

    parser = argparse.ArgumentParser(description="Mini miner solve service")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    setup_logging(config.LOG_LEVEL)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
