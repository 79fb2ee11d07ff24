from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from proposal_engine.core.config import settings
from proposal_engine.core.logging import setup_logging, get_logger
from proposal_engine.db.session import init_db
from proposal_engine.api import decision, quotes, suppliers

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started")
    yield


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(suppliers.router)
app.include_router(quotes.router)
app.include_router(decision.router)


@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.APP_VERSION}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
