from supportbot.models.session import ConversationSession, ScenarioState

__all__ = ["ConversationSession", "ScenarioState"]
