from dataclasses import dataclass
from typing import Optional, Protocol
import json, logging

from app.services.progress import StoreUnavailable, normalize_identity
from app.domain.quiz.session import SessionSnapshot
from app.domain.quiz.cache import PROGRESS_KEY, IDENTITY_KEY, SOURCE_KEY

log = logging.getLogger("quiz.bridge")

SAVE_WARNING = "Progress saved on this device only; the server could not be reached."
RESET_WARNING = "Could not reset saved progress on the server; try again later."

class KeyValueCache(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def put(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...

class ProgressStore(Protocol):
    def get(self, identity: str) -> Optional[dict]: ...
    def put(self, identity: str, snapshot: dict, source_tag: Optional[str] = None) -> None: ...
    def delete(self, identity: str) -> None: ...

@dataclass
class SaveResult:
    remote_saved: bool
    warning: Optional[str] = None

class ProgressBridge:
    """
    Único punto de acceso a almacenamiento: cache local (siempre) + store
    remoto (solo con identidad). Lo remoto es best-effort: si falla se
    registra y se devuelve un aviso, nunca se toca el estado en memoria.
    """

    def __init__(self, cache: KeyValueCache, remote: Optional[ProgressStore] = None):
        self.cache = cache
        self.remote = remote

    # ---- identidad / atribución ---------------------------------------

    @property
    def identity(self) -> Optional[str]:
        return self.cache.get(IDENTITY_KEY) or None

    def bind_identity(self, email: str) -> str:
        key = normalize_identity(email)
        if not key:
            raise ValueError("email requerido")
        self.cache.put(IDENTITY_KEY, key)
        return key

    def clear_identity(self) -> None:
        self.cache.delete(IDENTITY_KEY)

    def capture_source_tag(self, tag: Optional[str]) -> Optional[str]:
        """Guarda el tag del enlace de entrada; si no viene, reusa el guardado."""
        tag = (tag or "").strip()
        if tag:
            self.cache.put(SOURCE_KEY, tag)
            return tag
        return self.cache.get(SOURCE_KEY) or None

    # ---- lectura -------------------------------------------------------

    def load_local(self) -> Optional[SessionSnapshot]:
        raw = self.cache.get(PROGRESS_KEY)
        if not raw:
            return None
        try:
            return SessionSnapshot.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as e:
            log.warning("local snapshot unreadable (%s), ignoring", e.__class__.__name__)
            return None

    def load_remote(self) -> Optional[SessionSnapshot]:
        """None si no hay identidad o no hay snapshot. Propaga StoreUnavailable."""
        ident = self.identity
        if not ident or self.remote is None:
            return None
        raw = self.remote.get(ident)
        return SessionSnapshot.from_dict(raw) if raw else None

    # ---- escritura -----------------------------------------------------

    def save_local(self, snapshot: SessionSnapshot) -> None:
        self.cache.put(PROGRESS_KEY, json.dumps(snapshot.to_dict()))

    def save(self, snapshot: SessionSnapshot) -> SaveResult:
        self.save_local(snapshot)
        ident = self.identity
        if not ident or self.remote is None:
            return SaveResult(remote_saved=False)
        try:
            self.remote.put(ident, snapshot.to_dict(), self.cache.get(SOURCE_KEY) or None)
        except StoreUnavailable:
            log.warning("remote save failed; kept local copy")
            return SaveResult(remote_saved=False, warning=SAVE_WARNING)
        return SaveResult(remote_saved=True)

    def reset_progress(self) -> Optional[str]:
        """
        Borra remoto y luego local. Si el borrado remoto falla, el cache local
        se conserva para reintentar; devuelve el aviso para la UI.
        """
        ident = self.identity
        if ident and self.remote is not None:
            try:
                self.remote.delete(ident)
            except StoreUnavailable:
                log.warning("remote reset failed; local cache retained")
                return RESET_WARNING
        self.cache.delete(PROGRESS_KEY)
        return None
