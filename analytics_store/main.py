# analytics_store/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI

from analytics_store import __version__
from analytics_store.config import get_settings
from analytics_store.database import close_client
from analytics_store.logging_config import configure_logging
from analytics_store.routers import admin_storage_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)
    yield
    close_client()


app = FastAPI(title="Analytics Storage Retention", version=__version__, lifespan=lifespan)

app.include_router(admin_storage_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "analytics-store-retention", "version": __version__}
