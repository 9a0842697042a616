import os
import tempfile
from pathlib import Path

HERE = Path(__file__).resolve().parent

# Antes de importar app.*: DB en memoria y banco de preguntas de prueba
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["QUESTIONS_CSV"] = str(HERE / "data" / "questions.csv")
os.environ["PUBLIC_DIR"] = tempfile.mkdtemp(prefix="quiz-public-")
