from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, List
from datetime import datetime

class TopicStatIn(BaseModel):
    correct: int = Field(0, ge=0)
    total: int = Field(0, ge=0)

class AnswerRecordIn(BaseModel):
    selectedOption: str
    correct: bool
    correctAnswer: str
    topic: str
    legacy: bool = False

class SnapshotIn(BaseModel):
    """
    Snapshot de una sesión de quiz. Los campos nuevos tienen default para
    aceptar snapshots antiguos (sin answerHistory).
    """
    questionOrder: List[str] = Field(default_factory=list)
    currentQuestionIndex: int = Field(0, ge=0)
    score: int = Field(0, ge=0)
    answered: int = Field(0, ge=0)
    topicStats: Dict[str, TopicStatIn] = Field(default_factory=dict)
    answerHistory: Dict[str, AnswerRecordIn] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

class ProgressSaveIn(BaseModel):
    identity: Optional[str] = None
    sourceTag: Optional[str] = None
    snapshot: Optional[SnapshotIn] = None

    @field_validator("sourceTag")
    @classmethod
    def trim_source(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()[:120]
        return v or None

class ProgressResetIn(BaseModel):
    identity: Optional[str] = None

class ProgressOut(BaseModel):
    exists: bool
    snapshot: Optional[dict] = None
    sourceTag: Optional[str] = None
    updatedAt: Optional[datetime] = None

class SuccessOut(BaseModel):
    success: bool = True
