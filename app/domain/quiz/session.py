"""Quiz session state machine.

One ``QuizSession`` per device: question order, cursor, score accounting and
the per-question answer history. It also reconciles a saved snapshot with the
catalog currently served, including snapshots saved before answer history
existed ("legacy" snapshots: ``answered = N`` but no history; the first N
questions count as already answered).

The session never touches storage; callers persist ``snapshot()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence
import random

OPTION_KEYS = ("A", "B", "C", "D")

SIGNUP_PROMPT_AT = 5
DONATION_PROMPT_AT = 10


class AnswerRejected(Exception):
    """Answer refused without touching the session (already answered, bad key)."""


class SessionExhausted(Exception):
    """No current question: cursor is past the last question."""


class Phase(str, Enum):
    loading = "loading"
    reconciling = "reconciling"
    active = "active"
    complete = "complete"


class ViewMode(str, Enum):
    prompt = "prompt"        # aún sin responder
    review = "review"        # ya respondida: selección original, solo lectura
    legacy = "legacy"        # contada por un snapshot antiguo, sin registro
    exhausted = "exhausted"


class AnswerChecker(Protocol):
    def check_answer(self, question_id: str, answer: str) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    options: Dict[str, str]
    topic: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Question":
        return cls(
            id=str(raw["id"]),
            text=raw.get("text") or raw.get("question") or "",
            options={k: (raw.get("options") or {}).get(k, "") for k in OPTION_KEYS},
            topic=raw.get("topic") or "",
        )


@dataclass(frozen=True)
class AnswerRecord:
    selected_option: str
    correct: bool
    correct_answer: str
    topic: str
    legacy: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectedOption": self.selected_option,
            "correct": self.correct,
            "correctAnswer": self.correct_answer,
            "topic": self.topic,
            "legacy": self.legacy,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AnswerRecord":
        return cls(
            selected_option=raw.get("selectedOption", ""),
            correct=bool(raw.get("correct")),
            correct_answer=raw.get("correctAnswer", ""),
            topic=raw.get("topic", ""),
            legacy=bool(raw.get("legacy", False)),
        )


@dataclass
class TopicStat:
    correct: int = 0
    total: int = 0


@dataclass
class SessionSnapshot:
    question_order: List[str] = field(default_factory=list)
    current_question_index: int = 0
    score: int = 0
    answered: int = 0
    topic_stats: Dict[str, TopicStat] = field(default_factory=dict)
    answer_history: Dict[str, AnswerRecord] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionOrder": list(self.question_order),
            "currentQuestionIndex": self.current_question_index,
            "score": self.score,
            "answered": self.answered,
            "topicStats": {t: {"correct": s.correct, "total": s.total} for t, s in self.topic_stats.items()},
            "answerHistory": {qid: r.to_dict() for qid, r in self.answer_history.items()},
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionSnapshot":
        # Snapshots antiguos no traen answerHistory: se acepta con defaults
        stats = raw.get("topicStats") or {}
        history = raw.get("answerHistory") or {}
        return cls(
            question_order=[str(q) for q in (raw.get("questionOrder") or [])],
            current_question_index=int(raw.get("currentQuestionIndex") or 0),
            score=int(raw.get("score") or 0),
            answered=int(raw.get("answered") or 0),
            topic_stats={
                t: TopicStat(int(s.get("correct") or 0), int(s.get("total") or 0)) for t, s in stats.items()
            },
            answer_history={str(qid): AnswerRecord.from_dict(r) for qid, r in history.items()},
        )


def shuffle_questions(items: Sequence[Question], rng: random.Random) -> List[Question]:
    """Fisher-Yates: every permutation equally likely."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


@dataclass
class AnswerOutcome:
    record: AnswerRecord
    counted: bool
    signup_prompt: bool = False


class QuizSession:
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.phase = Phase.loading
        self.catalog: List[Question] = []
        self.questions: List[Question] = []
        self.current_index = 0
        self.score = 0
        self.answered = 0
        self.topic_stats: Dict[str, TopicStat] = {}
        self.answer_history: Dict[str, AnswerRecord] = {}
        self.legacy_threshold = 0
        # One-shot por objeto de sesión; sobrevive a restart()
        self.signup_prompt_fired = False
        self.signup_prompt_open = False

    # ---- ciclo de vida -------------------------------------------------

    def _reset_counters(self) -> None:
        self.current_index = 0
        self.score = 0
        self.answered = 0
        self.topic_stats = {}
        self.answer_history = {}
        self.legacy_threshold = 0

    def start(self, catalog: Sequence[Question]) -> None:
        self.catalog = list(catalog)
        self.questions = shuffle_questions(self.catalog, self.rng)
        self._reset_counters()
        self._sync_phase()

    def resume(self, snapshot: SessionSnapshot, catalog: Sequence[Question]) -> List[str]:
        """Restore ``snapshot`` over ``catalog``; returns the ids that were dropped."""
        self.catalog = list(catalog)
        by_id = {q.id: q for q in self.catalog}
        self.questions = [by_id[qid] for qid in snapshot.question_order if qid in by_id]
        dropped = [qid for qid in snapshot.question_order if qid not in by_id]

        # Con ids descartados el cursor no puede quedar más allá del final
        self.current_index = min(max(0, snapshot.current_question_index), len(self.questions))
        self.score = snapshot.score
        self.answered = snapshot.answered
        self.topic_stats = {t: TopicStat(s.correct, s.total) for t, s in snapshot.topic_stats.items()}
        self.answer_history = dict(snapshot.answer_history)
        self.legacy_threshold = min(max(self.answered, 0), len(self.questions))
        self._sync_phase()
        return dropped

    def restart(self, catalog: Optional[Sequence[Question]] = None) -> None:
        """Reshuffle the whole catalog, independent of the previous order.

        ``catalog`` is required when the session was never started (a restart
        chosen while a resume offer is pending).
        """
        self.start(self.catalog if catalog is None else catalog)

    def begin_reconcile(self) -> None:
        self.phase = Phase.reconciling

    def end_reconcile(self) -> None:
        self._sync_phase()

    def _sync_phase(self) -> None:
        self.phase = Phase.complete if self.current_index >= len(self.questions) else Phase.active

    # ---- consultas -----------------------------------------------------

    def current_question(self) -> Optional[Question]:
        if self.current_index >= len(self.questions):
            self.phase = Phase.complete
            return None
        return self.questions[self.current_index]

    def is_legacy(self, index: int) -> bool:
        if index >= self.legacy_threshold or index >= len(self.questions):
            return False
        rec = self.answer_history.get(self.questions[index].id)
        return rec is None or rec.legacy

    def legacy_ids(self) -> List[str]:
        return [q.id for i, q in enumerate(self.questions) if self.is_legacy(i)]

    def view_mode(self) -> ViewMode:
        q = self.current_question()
        if q is None:
            return ViewMode.exhausted
        rec = self.answer_history.get(q.id)
        if rec is not None and not rec.legacy:
            return ViewMode.review
        if self.is_legacy(self.current_index):
            return ViewMode.legacy
        return ViewMode.prompt

    @property
    def show_donation_prompt(self) -> bool:
        return self.answered >= DONATION_PROMPT_AT

    # ---- comandos ------------------------------------------------------

    def submit_answer(self, choice: str, checker: AnswerChecker, *, identity_bound: bool = False) -> AnswerOutcome:
        q = self.current_question()
        if q is None:
            raise SessionExhausted()
        if choice not in OPTION_KEYS:
            raise AnswerRejected(f"invalid option {choice!r}")

        existing = self.answer_history.get(q.id)
        if existing is not None:
            if not existing.legacy:
                raise AnswerRejected("question already answered")
            return AnswerOutcome(record=existing, counted=False)

        # Si falla, el estado queda intacto
        result = checker.check_answer(q.id, choice)
        correct = bool(result.get("correct"))
        topic = result.get("topic") or q.topic

        if self.is_legacy(self.current_index):
            record = AnswerRecord(choice, correct, result.get("correctAnswer", ""), topic, legacy=True)
            self.answer_history[q.id] = record
            return AnswerOutcome(record=record, counted=False)

        record = AnswerRecord(choice, correct, result.get("correctAnswer", ""), topic)
        before = self.answered
        stat = self.topic_stats.setdefault(topic, TopicStat())
        self.answered += 1
        stat.total += 1
        if correct:
            self.score += 1
            stat.correct += 1
        self.answer_history[q.id] = record

        fire = (
            before == SIGNUP_PROMPT_AT - 1
            and self.answered == SIGNUP_PROMPT_AT
            and not identity_bound
            and not self.signup_prompt_fired
        )
        if fire:
            self.signup_prompt_fired = True
            self.signup_prompt_open = True
        return AnswerOutcome(record=record, counted=True, signup_prompt=fire)

    def dismiss_signup(self) -> None:
        self.signup_prompt_open = False

    def advance(self, direction: str) -> None:
        if direction == "next":
            self.current_index += 1
        elif direction == "back":
            self.current_index = max(0, self.current_index - 1)
        else:
            raise ValueError(f"unknown direction {direction!r}")
        self._sync_phase()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            question_order=[q.id for q in self.questions],
            current_question_index=self.current_index,
            score=self.score,
            answered=self.answered,
            topic_stats={t: TopicStat(s.correct, s.total) for t, s in self.topic_stats.items()},
            answer_history=dict(self.answer_history),
        )
