import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

TARGET_SYMBOL = "✅"
DECOY_SYMBOLS = (
    "❌", "\U0001f525", "\U0001f4a3", "\U0001f602", "\U0001f480", "⚠️",
    "\U0001f355", "\U0001f40d", "\U0001f440", "\U0001f9e0", "\U0001f47b", "\U0001f608",
)


class RoundState(str, Enum):
    IDLE = 'idle'
    WAITING = 'waiting'
    READY = 'ready'
    DONE = 'done'


class RoundOutcome(str, Enum):
    SUCCESS = 'success'
    FAILURE = 'failure'


@dataclass
class Round:
    number: int
    state: RoundState = RoundState.WAITING
    cells: List[str] = field(default_factory=list)
    target_index: Optional[int] = None
    ready_at: Optional[float] = None
    outcome: Optional[RoundOutcome] = None


def generate_grid(size: int, rng: random.Random = None):
    """Return ``(cells, target_index)`` with exactly one target cell.

    Every other cell is an independent uniform draw from the decoys.
    """
    if size < 1:
        raise ValueError(f"grid size must be positive, got {size}")
    rng = rng or random
    target_index = rng.randrange(size)
    cells = [
        TARGET_SYMBOL if i == target_index else rng.choice(DECOY_SYMBOLS)
        for i in range(size)
    ]
    return cells, target_index
