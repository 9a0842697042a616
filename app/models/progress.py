from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from app.db import Base

class QuizProgress(Base):
    __tablename__ = "quiz_progress"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)  # normalizado (trim + lower)
    source_tag = Column(String(120), nullable=True)                        # ?source=... del enlace de entrada
    snapshot = Column(JSON, nullable=False)  # {questionOrder, currentQuestionIndex, score, answered, topicStats, answerHistory}
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
