from fastapi import APIRouter, Depends, HTTPException
import logging

from app.deps import get_catalog
from app.core.catalog import QuestionCatalog, QuestionNotFound
from app.schemas.question import QuestionOut, QuestionCount, CheckAnswerIn, CheckAnswerOut

log = logging.getLogger("questions")

router = APIRouter(prefix="/api", tags=["questions"])

@router.get("/questions", response_model=list[QuestionOut])
def list_questions(catalog: QuestionCatalog = Depends(get_catalog)):
    # Sin la respuesta correcta
    return catalog.list_public()

@router.get("/questions/count", response_model=QuestionCount)
def count_questions(catalog: QuestionCatalog = Depends(get_catalog)):
    return {"count": catalog.count()}

@router.post("/check-answer", response_model=CheckAnswerOut)
def check_answer(body: CheckAnswerIn, catalog: QuestionCatalog = Depends(get_catalog)):
    try:
        return catalog.check_answer(body.questionId, body.answer)
    except QuestionNotFound:
        log.info("check-answer: unknown question id %s", body.questionId)
        raise HTTPException(404, "Question not found")
