from dataclasses import dataclass
from typing import Optional, Tuple

from supportbot.services.text_service import contains_any


HUMAN_REQUEST_PHRASES = (
    "оператор",
    "человек",
    "соед",
    "менеджер",
    "поддерж",
)


@dataclass(frozen=True)
class FixedRule:
    name: str
    phrases: Tuple[str, ...]
    response: str


BUSINESS_HOURS_RESPONSE = (
    "Мы на связи ежедневно с 9:00 до 18:00. "
    "Сообщения, отправленные позже, обработаем в начале следующего рабочего дня."
)

FIXED_RULES: Tuple[FixedRule, ...] = (
    FixedRule(
        name="business_hours",
        phrases=(
            "часы работы",
            "график работы",
            "режим работы",
            "во сколько работаете",
            "до скольки работаете",
            "когда работаете",
            "вы работаете сегодня",
        ),
        response=BUSINESS_HOURS_RESPONSE,
    ),
)


def is_human_request_message(message: str) -> bool:
    return contains_any(message, HUMAN_REQUEST_PHRASES)


def match_fixed_rule(message: str, rules: Tuple[FixedRule, ...] = FIXED_RULES) -> Optional[FixedRule]:
    """Return the first rule whose phrase occurs in the message."""
    for rule in rules:
        if contains_any(message, rule.phrases):
            return rule
    return None
