from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Claimed:
    """A stage took the turn. Side effects are applied by the dispatcher in field order."""

    stage: str
    replies: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    handoff_reason: Optional[str] = None

    @property
    def claimed(self) -> bool:
        return True


@dataclass(frozen=True)
class NotClaimed:
    reason: str = ""

    @property
    def claimed(self) -> bool:
        return False


NOT_CLAIMED = NotClaimed()

TurnOutcome = Union[Claimed, NotClaimed]
