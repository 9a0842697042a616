import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
log = logging.getLogger("main")

from app.db import Base, engine
from app.models import progress as _progress_models  # noqa: F401  registra la tabla
from app.deps import get_catalog
from app.core.catalog import CatalogError

from app.routers import questions as questions_router
from app.routers import progress as progress_router

from app.core.settings_static import PUBLIC_DIR

Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # El banco se carga una sola vez; si falla, no arrancamos
    try:
        catalog = app.dependency_overrides.get(get_catalog, get_catalog)()
    except (CatalogError, OSError) as e:
        log.error("Error loading questions: %s", e)
        raise
    log.info("Catalog ready: %d questions", catalog.count())
    yield

app = FastAPI(title="ML Quiz API", lifespan=lifespan)

# ==== CORS ====
origins = os.getenv("CORS_ORIGINS", "")
origins_list = [o.strip() for o in origins.split(",")] if origins else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==== Routers ====
app.include_router(questions_router.router)
app.include_router(progress_router.router)

@app.get("/health")
def health():
    return {"status": "ok"}

# ==== Front estático (index.html) ====
# Al final: el mount en "/" captura todo lo que no sea API
app.mount("/", StaticFiles(directory=str(PUBLIC_DIR), html=True), name="public")
