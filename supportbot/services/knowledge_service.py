import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

import yaml

from supportbot.logging_config import get_logger
from supportbot.services.text_service import extract_query_tokens

logger = get_logger("knowledge_service")

DEFAULT_LIMIT = 3
TEXT_SUFFIXES = {".md", ".txt"}
YAML_SUFFIXES = {".yaml", ".yml"}

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class KnowledgeSnippet:
    source: str
    text: str


@dataclass(frozen=True)
class RetrievedSnippet:
    source: str
    text: str
    score: int


def score_snippet(tokens: Iterable[str], text: str) -> int:
    """One point per distinct token found anywhere in the snippet."""
    haystack = (text or "").casefold()
    return sum(1 for token in set(tokens) if token.casefold() in haystack)


def _snippets_from_yaml(path: Path) -> List[KnowledgeSnippet]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or []

    if isinstance(data, dict):
        data = data.get("snippets") or []

    snippets = []
    for item in data:
        if isinstance(item, str):
            text, source = item, path.name
        elif isinstance(item, dict):
            text, source = item.get("text"), item.get("source") or path.name
        else:
            continue
        if text and str(text).strip():
            snippets.append(KnowledgeSnippet(source=str(source), text=str(text).strip()))
    return snippets


def _snippets_from_text(path: Path) -> List[KnowledgeSnippet]:
    content = path.read_text(encoding="utf-8")
    return [
        KnowledgeSnippet(source=path.name, text=paragraph.strip())
        for paragraph in _PARAGRAPH_SPLIT_RE.split(content)
        if paragraph.strip()
    ]


def load_snippets(path: Union[str, Path]) -> List[KnowledgeSnippet]:
    """Load snippets from a YAML file, a text file or a directory of them."""
    path = Path(path)
    if not path.exists():
        logger.warning(f"Knowledge path not found: {path}")
        return []

    files = sorted(p for p in path.iterdir() if p.is_file()) if path.is_dir() else [path]

    snippets: List[KnowledgeSnippet] = []
    for file_path in files:
        suffix = file_path.suffix.lower()
        if suffix in YAML_SUFFIXES:
            snippets.extend(_snippets_from_yaml(file_path))
        elif suffix in TEXT_SUFFIXES:
            snippets.extend(_snippets_from_text(file_path))
    return snippets


class KnowledgeBase:
    """Small local knowledge base searched by keyword overlap."""

    def __init__(self, snippets: Optional[Iterable[KnowledgeSnippet]] = None):
        self.snippets: List[KnowledgeSnippet] = list(snippets or [])

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "KnowledgeBase":
        knowledge = cls(load_snippets(path))
        logger.info(f"Knowledge base loaded: {len(knowledge)} snippets from {path}")
        return knowledge

    def __len__(self) -> int:
        return len(self.snippets)

    def retrieve(self, query: str, limit: int = DEFAULT_LIMIT) -> List[RetrievedSnippet]:
        tokens = extract_query_tokens(query)
        if not tokens:
            return []

        scored = []
        for snippet in self.snippets:
            score = score_snippet(tokens, snippet.text)
            if score > 0:
                scored.append(RetrievedSnippet(source=snippet.source, text=snippet.text, score=score))

        # sorted() is stable, ties keep insertion order
        ranked = sorted(scored, key=lambda r: r.score, reverse=True)[:limit]
        logger.info(f"Knowledge search: found {len(ranked)} results for '{query[:30]}'")
        return ranked


def format_knowledge_context(results: List[RetrievedSnippet]) -> str:
    """Format retrieved snippets for LLM context."""
    if not results:
        return ""

    context_parts = ["Релевантная информация из базы знаний:"]
    for i, r in enumerate(results, 1):
        if r.text:
            context_parts.append(f"{i}. {r.text}")

    return "\n".join(context_parts)
