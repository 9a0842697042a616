from pydantic import BaseModel
from typing import Dict

class QuestionOut(BaseModel):
    id: str
    text: str
    options: Dict[str, str]   # A..D, sin marcar la correcta
    topic: str

class QuestionCount(BaseModel):
    count: int

class CheckAnswerIn(BaseModel):
    questionId: str
    answer: str

class CheckAnswerOut(BaseModel):
    correct: bool
    correctAnswer: str
    topic: str
    text: str
