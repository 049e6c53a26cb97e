class MinerError(Exception):
    """
    Base class for every failure reported by the mining core.
    """


class EncodingError(MinerError):
    """
    The block entries cannot be serialized to the canonical encoding.
    """


class NotFound(MinerError):
    """
    The nonce range was exhausted (or the time budget expired) without
    finding a candidate that satisfies the difficulty.
    """

    def __init__(self, message: str, checked: int = 0):
        super().__init__(message)
        self.checked = checked


class InvariantViolation(MinerError):
    """
    The search reported success but the winning nonce is unusable.
    """
