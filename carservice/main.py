# carservice/main.py

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import auth, chat, requests
from .store import DocumentStore

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8080",
    "http://localhost:5173",
]


def cors_origins() -> list:
    raw = os.getenv("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or DEFAULT_ORIGINS


def create_app(database_url: Optional[str] = None) -> FastAPI:
    # ────────────────────────────── DOCUMENT STORE ──────────────────────────────

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = DocumentStore.from_url(database_url) if database_url else DocumentStore()
        await store.init()
        app.state.store = store
        yield
        await store.close()

    app = FastAPI(
        title="Car Service API",
        description="Service requests, progress tracking and chat between clients and employees",
        version="1.0.0",
        lifespan=lifespan,
    )

    # ────────────────────────────── CORS ──────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(requests.router)
    app.include_router(chat.router)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
