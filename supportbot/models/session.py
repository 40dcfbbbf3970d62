from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ScenarioState:
    name: str
    step: str
    answers: Dict[str, str] = field(default_factory=dict)
    q_index: int = 0
    free_completions_used: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "step": self.step,
            "answers": dict(self.answers),
            "q_index": self.q_index,
            "free_completions_used": self.free_completions_used,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScenarioState":
        return cls(
            name=data["name"],
            step=data["step"],
            answers=dict(data.get("answers") or {}),
            q_index=int(data.get("q_index", 0)),
            free_completions_used=int(data.get("free_completions_used", 0)),
        )


@dataclass
class ConversationSession:
    """Per-conversation state read and updated on every dispatched event."""

    history: List[Dict[str, str]] = field(default_factory=list)
    scenario: Optional[ScenarioState] = None
    greeted: bool = False
    handed_over: bool = False
    handoff_reason: Optional[str] = None

    def add_turn(self, role: str, content: str) -> None:
        self.history.append({"role": role, "content": content})

    def recent_history(self, limit: int) -> List[Dict[str, str]]:
        if limit <= 0:
            return []
        return [dict(turn) for turn in self.history[-limit:]]

    def start_handoff(self, reason: str) -> None:
        self.handed_over = True
        self.handoff_reason = reason

    def end_handoff(self) -> None:
        self.handed_over = False
        self.handoff_reason = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": [dict(turn) for turn in self.history],
            "scenario": self.scenario.to_dict() if self.scenario else None,
            "greeted": self.greeted,
            "handed_over": self.handed_over,
            "handoff_reason": self.handoff_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationSession":
        scenario = data.get("scenario")
        return cls(
            history=[dict(turn) for turn in data.get("history") or []],
            scenario=ScenarioState.from_dict(scenario) if scenario else None,
            greeted=bool(data.get("greeted", False)),
            handed_over=bool(data.get("handed_over", False)),
            handoff_reason=data.get("handoff_reason"),
        )
