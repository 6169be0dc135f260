"""
Question catalog loaded once at start-up.

The catalog is ordered and immutable: the answer stored at position ``i``
is the answer to question ``i``, so file order is kept exactly.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from voicesurvey.shared.exceptions import CatalogEmpty, CatalogLoadError
from voicesurvey.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Question:
    """A single survey question."""

    index: int
    text: str


class QuestionCatalog:
    """Ordered, read-only sequence of survey questions."""

    __slots__ = ("_questions",)

    def __init__(self, questions: Iterable[Question]) -> None:
        items = tuple(questions)
        if not items:
            raise CatalogEmpty()
        for expected, question in enumerate(items):
            if question.index != expected:
                raise CatalogLoadError(
                    "Question indices must be 0-based and contiguous",
                    details={"expected": expected, "found": question.index},
                )
        self._questions = items

    @classmethod
    def from_texts(cls, texts: Iterable[str]) -> QuestionCatalog:
        return cls(Question(index=i, text=text) for i, text in enumerate(texts))

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __getitem__(self, index: int) -> Question:
        return self._questions[index]

    def text_at(self, index: int) -> str:
        return self._questions[index].text

    @property
    def texts(self) -> list[str]:
        return [q.text for q in self._questions]


def _question_text(entry: Any, position: int) -> str:
    if isinstance(entry, str):
        text = entry
    elif isinstance(entry, dict) and isinstance(entry.get("text"), str):
        text = entry["text"]
    else:
        raise CatalogLoadError(
            "Question entries must be strings or objects with a 'text' field",
            details={"position": position},
        )
    if not text.strip():
        raise CatalogLoadError("Question text must not be blank", details={"position": position})
    return text


def load_question_catalog(path: str | Path) -> QuestionCatalog:
    """Load the question catalog from a JSON array.

    Args:
        path: Path to a JSON file holding a list of question strings
            (or objects with a ``text`` key).

    Returns:
        The loaded catalog, in file order.

    Raises:
        CatalogEmpty: The file holds an empty list.
        CatalogLoadError: The file is missing, unreadable, or not a list.
    """
    source = Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogLoadError(
            f"Cannot read question file: {source}",
            details={"path": str(source)},
        ) from exc
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(
            f"Question file is not valid JSON: {source}",
            details={"path": str(source), "error": str(exc)},
        ) from exc

    if not isinstance(raw, list):
        raise CatalogLoadError(
            "Question file must contain a JSON array",
            details={"path": str(source)},
        )

    catalog = QuestionCatalog.from_texts(_question_text(entry, i) for i, entry in enumerate(raw))

    logger.info(
        "Question catalog loaded",
        extra={"path": str(source), "question_count": len(catalog)},
    )
    return catalog
