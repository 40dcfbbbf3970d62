from typing import List, Optional

from supportbot.services.completion_service import CompletionGateway
from supportbot.services.scenarios.accident import AccidentScenario
from supportbot.services.scenarios.base import Question, QuestionScenario, ScenarioHandler, TurnContext
from supportbot.services.scenarios.breakdown import BreakdownScenario


def default_scenarios(completion: Optional[CompletionGateway]) -> List[ScenarioHandler]:
    """Scenario registry in dispatch priority order."""
    return [
        AccidentScenario(completion),
        BreakdownScenario(),
    ]


__all__ = [
    "AccidentScenario",
    "BreakdownScenario",
    "Question",
    "QuestionScenario",
    "ScenarioHandler",
    "TurnContext",
    "default_scenarios",
]
