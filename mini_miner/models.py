from pydantic import BaseModel, Field, StrictInt, StrictStr
from typing import Optional, List, Tuple


class BlockData(BaseModel):
    """
    Block as delivered with the problem.

    `data` keeps the original order of the `[payload, value]` pairs. Types are
    strict: coercing "5" into 5 would change the hashed bytes. The
    incoming nonce is ignored by the solver.
    """
    data: List[Tuple[StrictStr, StrictInt]]
    nonce: Optional[int] = None


class MiniMinerProblem(BaseModel):
    """
    Problem handed over by the orchestrator.
    """
    # Required count of leading zero bits of the SHA-256 digest.
    difficulty: int = Field(..., ge=0)
    block: BlockData


class MiniMinerAnswer(BaseModel):
    """
    Answer returned to the orchestrator.
    """
    nonce: int


class SolveError(BaseModel):
    """
    Error body returned by the solve service.
    """
    error: str
    detail: str
    checked: Optional[int] = None


class Metrics(BaseModel):
    """
    Runtime metrics exposed by the solve service.
    """
    solved_total: int
    not_found_total: int
    errors_total: int
    last_difficulty: Optional[int] = None
    last_nonce: Optional[int] = None
    last_elapsed_ms: Optional[int] = None
    last_hashrate: Optional[float] = None
    uptime_ms: int
