"""Cost accounting.

Every evaluated node adds its cost to a single accumulator; collection
combinators add a per-item cost on top. Evaluation aborts with CostError the
moment the total goes over the limit, so a script evaluated under limit L
succeeds iff its total cost is <= L.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from interpreter.errors import CostError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostTable:
    """Cost constants.

    Attributes:
        node_cost: Charged once per node visit
        per_item_cost: Charged per element processed by Map, Filter, Fold, ...
    """

    node_cost: int = 1
    per_item_cost: int = 1


class CostAccumulator:
    """Monotone cost counter with an optional limit."""

    def __init__(self, limit: Optional[int] = None):
        if limit is not None and limit < 0:
            raise ValueError(f"Cost limit must be non-negative, got {limit}")
        self.limit = limit
        self._total = 0

    @property
    def total(self) -> int:
        return self._total

    def add(self, cost: int) -> None:
        """Charge cost.

        Raises:
            CostError: If the new total exceeds the limit
        """
        if cost < 0:
            raise ValueError(f"Cost must be non-negative, got {cost}")
        self._total += cost
        if self.limit is not None and self._total > self.limit:
            logger.warning("Cost limit exceeded: total %d > limit %d", self._total, self.limit)
            raise CostError(self.limit)
