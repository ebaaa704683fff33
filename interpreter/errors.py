"""Evaluation errors."""


class EvalError(Exception):
    """Base class of errors raised while evaluating a tree."""


class NotFoundError(EvalError):
    """A referenced binding, register, variable or method does not exist."""


class UnexpectedValueError(EvalError):
    """A runtime value has a different type tag than the operation needs."""


class ArithmeticEvalError(EvalError):
    """Numeric overflow or division by zero."""


class ArenaError(EvalError):
    """The box arena could not resolve a box id."""


class InvalidArgumentError(EvalError):
    """An operation received an argument outside its domain (bad index, bad point...)."""


class CostError(EvalError):
    """The accumulated cost went over the limit.

    Attributes:
        limit: The limit that was exceeded
    """

    def __init__(self, limit: int):
        super().__init__(f"LimitExceeded({limit})")
        self.limit = limit
