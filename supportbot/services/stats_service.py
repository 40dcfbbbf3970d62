from dataclasses import dataclass, field
from typing import Dict

HANDOFF_MANUAL = "manual"
HANDOFF_TIMEOUT = "timeout"
HANDOFF_NO_CONTEXT = "no_context"


@dataclass
class BotStats:
    """Monotonic process counters exposed on /stats."""

    total_incoming: int = 0
    greeted: int = 0
    completion_replies: int = 0
    operator_handoffs: int = 0
    operator_fallbacks: int = 0
    scenarios_started: int = 0
    handoff_reasons: Dict[str, int] = field(
        default_factory=lambda: {HANDOFF_MANUAL: 0, HANDOFF_TIMEOUT: 0, HANDOFF_NO_CONTEXT: 0}
    )

    def record_handoff(self, reason: str) -> None:
        self.operator_handoffs += 1
        self.handoff_reasons[reason] = self.handoff_reasons.get(reason, 0) + 1

    def to_dict(self) -> dict:
        return {
            "total_incoming": self.total_incoming,
            "greeted": self.greeted,
            "completion_replies": self.completion_replies,
            "operator_handoffs": self.operator_handoffs,
            "operator_fallbacks": self.operator_fallbacks,
            "scenarios_started": self.scenarios_started,
            "handoff_reasons": dict(self.handoff_reasons),
        }
