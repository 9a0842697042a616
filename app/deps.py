from functools import lru_cache
from app.db import SessionLocal
from app.core.catalog import QuestionCatalog
from app.core.settings_static import QUESTIONS_CSV

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

@lru_cache(maxsize=1)
def get_catalog() -> QuestionCatalog:
    """Catálogo único por proceso; se carga en el arranque (lifespan)."""
    return QuestionCatalog.from_csv(QUESTIONS_CSV)
