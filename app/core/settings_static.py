from pathlib import Path
import os
from dotenv import load_dotenv

load_dotenv()

# Raíz del paquete app/  ->  .../app
APP_DIR = Path(__file__).resolve().parents[1]
# Raíz del repo (padre de app/)  ->  ...
REPO_ROOT = APP_DIR.parent

# === Banco de preguntas (CSV) ===
# Puedes sobreescribir con la var de entorno QUESTIONS_CSV
QUESTIONS_CSV = Path(os.getenv("QUESTIONS_CSV", REPO_ROOT / "data" / "questions.csv")).resolve()

# === Front estático (index.html, app.js, css) ===
PUBLIC_DIR = Path(os.getenv("PUBLIC_DIR", REPO_ROOT / "public")).resolve()
PUBLIC_DIR.mkdir(parents=True, exist_ok=True)
