"""Optimistic in-memory value with rollback guarded by an operation id."""
import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pending:
    op_id: int
    rollback_value: Any


class OptimisticValue:
    """Holds a value that is updated before its write is confirmed.

    The holder is Idle or Pending(op_id, rollback_value). Only the most
    recently applied operation may commit or roll back; completions of
    superseded operations are ignored.
    """

    def __init__(self, value):
        self.value = value
        self.pending: Optional[Pending] = None
        self._last_op_id = 0

    @property
    def is_idle(self) -> bool:
        return self.pending is None

    def apply(self, new_value) -> int:
        self._last_op_id += 1
        self.pending = Pending(op_id=self._last_op_id, rollback_value=self.value)
        self.value = new_value
        return self._last_op_id

    def commit(self, op_id: int) -> bool:
        if self.pending is None or self.pending.op_id != op_id:
            return False
        self.pending = None
        return True

    def rollback(self, op_id: int) -> bool:
        if self.pending is None or self.pending.op_id != op_id:
            logger.debug("Ignoring rollback of superseded operation %d", op_id)
            return False
        self.value = self.pending.rollback_value
        self.pending = None
        return True

    def reset(self, value) -> None:
        """Replace the value outright, abandoning any pending operation."""
        self.value = value
        self.pending = None
