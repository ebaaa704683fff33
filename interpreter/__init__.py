"""Interpreter - cost-bounded evaluation of expression trees."""

from interpreter.config import EvalConfig
from interpreter.context import BoxArena, Context, InMemoryBoxArena
from interpreter.cost import CostAccumulator, CostTable
from interpreter.env import Env
from interpreter.errors import (
    ArenaError,
    ArithmeticEvalError,
    CostError,
    EvalError,
    InvalidArgumentError,
    NotFoundError,
    UnexpectedValueError,
)
from interpreter.evaluator import Evaluator, ReductionResult, evaluate, reduce_to_crypto, reduce_tree

__all__ = [
    # Evaluation
    "evaluate",
    "reduce_to_crypto",
    "reduce_tree",
    "Evaluator",
    "ReductionResult",
    "Env",
    # Context
    "Context",
    "BoxArena",
    "InMemoryBoxArena",
    # Cost and config
    "CostAccumulator",
    "CostTable",
    "EvalConfig",
    # Errors
    "EvalError",
    "NotFoundError",
    "UnexpectedValueError",
    "ArithmeticEvalError",
    "ArenaError",
    "InvalidArgumentError",
    "CostError",
]
