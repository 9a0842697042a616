"""
Adaptadores del lado cliente: catálogo (listar / corregir) y store remoto de
progreso. Las versiones HTTP usan requests.Session; en tests se inyecta el
TestClient de FastAPI, que expone la misma interfaz get/post/json.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging
import requests

from app.core.catalog import QuestionCatalog, QuestionNotFound, CatalogError
from app.services.progress import StoreUnavailable, normalize_identity
from app.domain.quiz.session import Question

log = logging.getLogger("quiz.clients")

class LocalCatalogClient:
    """Catálogo en el mismo proceso (scripts, tests)."""

    def __init__(self, catalog: QuestionCatalog):
        self.catalog = catalog

    def list_questions(self) -> List[Question]:
        return [Question.from_dict(q) for q in self.catalog.list_public()]

    def check_answer(self, question_id: str, answer: str) -> Dict[str, Any]:
        return self.catalog.check_answer(question_id, answer)

class HttpCatalogClient:
    def __init__(self, base_url: str = "", http=None):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()

    def list_questions(self) -> List[Question]:
        try:
            r = self.http.get(f"{self.base_url}/api/questions")
        except requests.RequestException as e:
            log.warning("catalog.list failed: %s", e.__class__.__name__)
            raise CatalogError("list") from e
        if r.status_code >= 400:
            log.warning("catalog.list failed: HTTP %s", r.status_code)
            raise CatalogError("list")
        return [Question.from_dict(q) for q in r.json()]

    def check_answer(self, question_id: str, answer: str) -> Dict[str, Any]:
        try:
            r = self.http.post(
                f"{self.base_url}/api/check-answer",
                json={"questionId": question_id, "answer": answer},
            )
        except requests.RequestException as e:
            log.warning("catalog.check_answer failed: %s", e.__class__.__name__)
            raise CatalogError("check_answer") from e
        if r.status_code == 404:
            raise QuestionNotFound(question_id)
        if r.status_code >= 400:
            log.warning("catalog.check_answer failed: HTTP %s", r.status_code)
            raise CatalogError("check_answer")
        return r.json()

class HttpProgressStore:
    """Store remoto por email normalizado. Errores -> StoreUnavailable(op)."""

    def __init__(self, base_url: str = "", http=None):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()

    def _call(self, op: str, method: str, path: str, body: Optional[dict] = None):
        try:
            if method == "GET":
                r = self.http.get(f"{self.base_url}{path}")
            else:
                r = self.http.post(f"{self.base_url}{path}", json=body)
        except requests.RequestException as e:
            # sin snapshot en el log
            log.warning("progress.%s failed: %s", op, e.__class__.__name__)
            raise StoreUnavailable(op) from e
        if r.status_code >= 400:
            log.warning("progress.%s failed: HTTP %s", op, r.status_code)
            raise StoreUnavailable(op)
        return r.json()

    def get(self, identity: str) -> Optional[dict]:
        # La ruta usa {identity:path}: un "/" codificado llega intacto
        key = quote(normalize_identity(identity), safe="@")
        data = self._call("get", "GET", f"/api/progress/{key}")
        if not data.get("exists"):
            return None
        return data.get("snapshot")

    def put(self, identity: str, snapshot: dict, source_tag: Optional[str] = None) -> None:
        self._call("save", "POST", "/api/progress/save", {
            "identity": normalize_identity(identity),
            "sourceTag": source_tag,
            "snapshot": snapshot,
        })

    def delete(self, identity: str) -> None:
        self._call("reset", "POST", "/api/progress/reset", {"identity": normalize_identity(identity)})
