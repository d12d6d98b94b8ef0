"""Exception types raised by TRANSMUTE."""


class TransmuteError(Exception):
    """Base class for transmute errors."""


class InvalidRuleError(TransmuteError, ValueError):
    """A rule violates a construction invariant."""


class IterationLimitExceeded(TransmuteError, RuntimeError):
    """Rewriting did not reach a fixpoint within the iteration cap."""

    def __init__(self, message: str, inputs=(), max_iterations: int = 0):
        super().__init__(message)
        self.inputs = tuple(inputs)
        self.max_iterations = max_iterations
