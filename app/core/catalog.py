from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List
import csv, logging

log = logging.getLogger("catalog")

OPTION_KEYS = ("A", "B", "C", "D")

# Columnas del export CSV. La C viene etiquetada "(Correct)" en el archivo original.
COL_ID = "Question ID"
COL_TEXT = "Question"
COL_ANSWER = "Correct Answer"
COL_TOPIC = "Topic"
OPTION_COLUMNS = {
    "A": ("Option A",),
    "B": ("Option B",),
    "C": ("Option C", "Option C (Correct)"),
    "D": ("Option D",),
}

class QuestionNotFound(Exception): ...
class CatalogError(Exception): ...

@dataclass(frozen=True)
class CatalogEntry:
    id: str
    text: str
    options: Dict[str, str]
    correct_answer: str
    topic: str

    def public(self) -> dict:
        return {"id": self.id, "text": self.text, "options": dict(self.options), "topic": self.topic}

def _pick(row: dict, names: Iterable[str]) -> str:
    for n in names:
        if n in row and row[n] is not None:
            return row[n].strip()
    return ""

class QuestionCatalog:
    """
    Banco de preguntas inmutable, cargado una sola vez al arrancar.
    La clave correcta nunca sale por list_public().
    """

    def __init__(self, entries: Iterable[CatalogEntry]):
        self._entries: List[CatalogEntry] = list(entries)
        self._by_id: Dict[str, CatalogEntry] = {e.id: e for e in self._entries}
        if len(self._by_id) != len(self._entries):
            raise CatalogError("IDs de pregunta duplicados en el catálogo")

    @classmethod
    def from_csv(cls, path: Path) -> "QuestionCatalog":
        if not path.exists():
            raise CatalogError(f"CSV de preguntas no encontrado: {path}")
        entries: list[CatalogEntry] = []
        with path.open(newline="", encoding="utf-8-sig") as fh:
            for row in csv.DictReader(fh):
                qid = _pick(row, (COL_ID,))
                if not qid:
                    continue  # filas vacías al final del export
                entries.append(CatalogEntry(
                    id=qid,
                    text=_pick(row, (COL_TEXT,)),
                    options={k: _pick(row, OPTION_COLUMNS[k]) for k in OPTION_KEYS},
                    correct_answer=_pick(row, (COL_ANSWER,)),
                    topic=_pick(row, (COL_TOPIC,)),
                ))
        log.info("Loaded %d questions from %s", len(entries), path.name)
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def count(self) -> int:
        return len(self._entries)

    def list_public(self) -> List[dict]:
        return [e.public() for e in self._entries]

    def check_answer(self, question_id: str, answer: str) -> dict:
        """Igualdad exacta de strings, sin normalizar ni crédito parcial."""
        entry = self._by_id.get(question_id)
        if entry is None:
            raise QuestionNotFound(question_id)
        return {
            "correct": answer == entry.correct_answer,
            "correctAnswer": entry.correct_answer,
            "topic": entry.topic,
            "text": entry.text,
        }
