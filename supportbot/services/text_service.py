import re
from typing import Iterable, List, Optional

YES_TOKENS = frozenset({"да"})
NO_TOKENS = frozenset({"нет"})

MIN_TOKEN_LENGTH = 3

STOP_WORDS = frozenset(
    {
        "как",
        "какой",
        "какая",
        "какие",
        "что",
        "это",
        "для",
        "или",
        "где",
        "когда",
        "почему",
        "зачем",
        "мне",
        "меня",
        "вас",
        "вам",
        "нас",
        "нам",
        "все",
        "так",
        "уже",
        "еще",
        "при",
        "над",
        "под",
        "без",
        "можно",
        "нужно",
        "есть",
        "был",
        "была",
        "будет",
        "если",
        "чтобы",
        "the",
        "and",
        "for",
        "what",
        "how",
    }
)

_NON_WORD_RE = re.compile(r"[^a-zа-я0-9\s]")
_SPACES_RE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, fold ё, drop punctuation and collapse whitespace."""
    normalized = str(text or "").lower().replace("ё", "е")
    normalized = _NON_WORD_RE.sub(" ", normalized)
    return _SPACES_RE.sub(" ", normalized).strip()


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Substring match of any phrase against the normalized text."""
    normalized = normalize_text(text)
    if not normalized:
        return False
    return any(phrase in normalized for phrase in phrases)


def classify_yes_no(text: str) -> Optional[str]:
    """Return "yes", "no" or None when the reply is neither."""
    tokens = normalize_text(text).split()
    if any(token in YES_TOKENS for token in tokens):
        return "yes"
    if any(token in NO_TOKENS for token in tokens):
        return "no"
    return None


def extract_query_tokens(text: str) -> List[str]:
    """Distinct meaningful tokens of a query, in first-seen order."""
    tokens: List[str] = []
    for token in normalize_text(text).split():
        if len(token) < MIN_TOKEN_LENGTH or token in STOP_WORDS:
            continue
        if token not in tokens:
            tokens.append(token)
    return tokens
