"""Evaluation configuration."""

from dataclasses import dataclass, field
from typing import Optional

from interpreter.cost import CostTable


@dataclass
class EvalConfig:
    """Evaluation parameters."""
    cost_limit: Optional[int] = None  # None: unbounded
    costs: CostTable = field(default_factory=CostTable)
