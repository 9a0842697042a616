from typing import Any, Callable, Dict, List, Optional, Protocol
import logging

from app.core.catalog import QuestionNotFound, CatalogError
from app.services.progress import StoreUnavailable
from app.domain.quiz.bridge import ProgressBridge
from app.domain.quiz.session import (
    QuizSession,
    SessionSnapshot,
    Question,
    Phase,
    ViewMode,
    AnswerRejected,
    SessionExhausted,
)
from app.domain.quiz import stats

log = logging.getLogger("quiz.controller")

MSG_LOAD_ERROR = "Error loading questions. Please refresh the page."
MSG_CHECK_ERROR = "Error checking answer. Please try again."
MSG_GONE = "This question is no longer available."
MSG_NO_PROGRESS = "No saved progress found for this email."
MSG_REMOTE_DOWN = "Saved progress could not be loaded right now."
MSG_CORRECT = "✓ Correct! Well done!"
MSG_LEGACY = "Previously answered. Your score is unaffected."

class CatalogClient(Protocol):
    def list_questions(self) -> List[Question]: ...
    def check_answer(self, question_id: str, answer: str) -> Dict[str, Any]: ...

class QuizController:
    """
    Recibe intents de la capa de presentación y devuelve un render model
    (dict). Toda la persistencia pasa por el ProgressBridge.

    Intents: load, resume, select, next, back, restart, sign_in, sign_out,
    dismiss_signup.
    """

    def __init__(self, catalog_client: CatalogClient, bridge: ProgressBridge, session: Optional[QuizSession] = None):
        self.catalog_client = catalog_client
        self.bridge = bridge
        self.session = session or QuizSession()
        self.catalog: List[Question] = []
        self.pending_remote: Optional[SessionSnapshot] = None
        self.notice: Optional[str] = None
        self.warning: Optional[str] = None
        self.error: Optional[str] = None
        self._handlers: Dict[str, Callable[[dict], None]] = {
            "load": self._load,
            "resume": self._resume,
            "select": self._select,
            "next": self._next,
            "back": self._back,
            "restart": self._restart,
            "sign_in": self._sign_in,
            "sign_out": self._sign_out,
            "dismiss_signup": self._dismiss_signup,
        }

    def dispatch(self, intent: str, payload: Optional[dict] = None) -> dict:
        handler = self._handlers.get(intent)
        if handler is None:
            raise ValueError(f"unknown intent {intent!r}")
        self.notice = self.warning = self.error = None
        handler(payload or {})
        return self.render()

    # ---- handlers ------------------------------------------------------

    def _load(self, payload: dict) -> None:
        self.bridge.capture_source_tag(payload.get("source"))
        try:
            self.catalog = self.catalog_client.list_questions()
        except CatalogError:
            self.error = MSG_LOAD_ERROR
            return
        log.info("Loaded %d questions", len(self.catalog))

        remote = None
        if self.bridge.identity:
            try:
                remote = self.bridge.load_remote()
            except StoreUnavailable:
                self.warning = MSG_REMOTE_DOWN
        if remote is not None:
            self.pending_remote = remote
            self.session.begin_reconcile()
            return

        local = self.bridge.load_local()
        if local is not None:
            self._apply(local)
        else:
            self.session.start(self.catalog)

    def _apply(self, snapshot: SessionSnapshot) -> None:
        dropped = self.session.resume(snapshot, self.catalog)
        if dropped:
            log.info("resume: skipped %d questions no longer in the catalog", len(dropped))

    def _resume(self, payload: dict) -> None:
        pending, self.pending_remote = self.pending_remote, None
        if pending is None:
            return
        if payload.get("accept", True):
            self._apply(pending)
            self.bridge.save_local(self.session.snapshot())
        elif self.session.questions:
            # Rechazó el remoto: sigue con lo que había en este dispositivo
            self.session.end_reconcile()
            self._save()
        else:
            self.session.start(self.catalog)
            self.bridge.save_local(self.session.snapshot())

    def _select(self, payload: dict) -> None:
        if self.session.phase != Phase.active:
            return
        try:
            self.session.submit_answer(
                payload.get("option", ""),
                self.catalog_client,
                identity_bound=bool(self.bridge.identity),
            )
        except (AnswerRejected, SessionExhausted) as e:
            log.debug("answer ignored: %s", e)
            return
        except QuestionNotFound:
            self.error = MSG_GONE
            return
        except CatalogError:
            self.error = MSG_CHECK_ERROR
            return
        self._save()

    def _next(self, payload: dict) -> None:
        if self.session.phase != Phase.active:
            return
        if self.session.view_mode() == ViewMode.prompt:
            return  # falta responder
        self.session.advance("next")
        self._save()

    def _back(self, payload: dict) -> None:
        if self.session.phase not in (Phase.active, Phase.complete):
            return
        self.session.advance("back")
        self._save()

    def _restart(self, payload: dict) -> None:
        if not self.catalog:
            return
        self.pending_remote = None
        self.session.restart(self.catalog)
        self.warning = self.bridge.reset_progress()
        if self.warning is None:
            self.bridge.save_local(self.session.snapshot())

    def _sign_in(self, payload: dict) -> None:
        try:
            self.bridge.bind_identity(payload.get("email", ""))
        except ValueError:
            self.error = "Please enter an email address."
            return
        self.session.dismiss_signup()
        try:
            remote = self.bridge.load_remote()
        except StoreUnavailable:
            self.warning = MSG_REMOTE_DOWN
            return
        if remote is not None:
            self.pending_remote = remote
            self.session.begin_reconcile()
            return
        self.notice = MSG_NO_PROGRESS
        if self.session.questions:
            self._save()

    def _sign_out(self, payload: dict) -> None:
        self.bridge.clear_identity()

    def _dismiss_signup(self, payload: dict) -> None:
        self.session.dismiss_signup()

    def _save(self) -> None:
        result = self.bridge.save(self.session.snapshot())
        if result.warning:
            self.warning = result.warning

    # ---- render --------------------------------------------------------

    def _question_view(self) -> Optional[dict]:
        s = self.session
        mode = s.view_mode()
        q = s.current_question()
        if q is None:
            return None
        rec = s.answer_history.get(q.id)
        view = {
            "id": q.id,
            "text": q.text,
            "options": dict(q.options),
            "topic": q.topic,
            "mode": mode.value,
            "canSelect": mode == ViewMode.prompt or (mode == ViewMode.legacy and rec is None),
            "canAdvance": mode != ViewMode.prompt,
            "record": rec.to_dict() if rec else None,
            "feedback": None,
        }
        if mode == ViewMode.legacy:
            view["feedback"] = {"kind": "neutral", "text": MSG_LEGACY}
        elif mode == ViewMode.review and rec is not None:
            if rec.correct:
                view["feedback"] = {"kind": "correct", "text": MSG_CORRECT}
            else:
                view["feedback"] = {
                    "kind": "incorrect",
                    "text": f"✗ Incorrect. The correct answer is {rec.correct_answer}.",
                    "searchUrl": stats.search_url(rec.topic, q.text),
                }
        return view

    def render(self) -> dict:
        s = self.session
        total = len(s.questions)
        model = {
            "phase": s.phase.value,
            "identity": self.bridge.identity,
            "score": s.score,
            "answered": s.answered,
            "total": total,
            "questionNumber": min(s.current_index + 1, total),
            "progressPct": stats.progress_pct(s.current_index, total),
            "prompts": {"signup": s.signup_prompt_open, "donation": s.show_donation_prompt},
            "notice": self.notice,
            "warning": self.warning,
            "error": self.error,
            "resumeOffer": None,
            "question": None,
            "results": None,
        }
        if s.phase == Phase.reconciling and self.pending_remote is not None:
            p = self.pending_remote
            model["resumeOffer"] = {
                "answered": p.answered,
                "score": p.score,
                "total": len(p.question_order),
            }
        elif s.phase == Phase.active:
            model["question"] = self._question_view()
        if s.phase == Phase.complete:
            model["results"] = stats.results_summary(s.score, total, s.topic_stats)
        return model
