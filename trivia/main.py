from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trivia.api.routes import games, root
from trivia.api.ws import router as ws_router
from trivia.core.config import settings
from trivia.core.logging import configure_logging
from trivia.dependencies import get_coordinator


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.archive_backend == "sql":
        from trivia.db import init_db

        await init_db()
    yield
    await get_coordinator().aclose()

app = FastAPI(title="Live Trivia", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# HTTP routes
app.include_router(root.router)
app.include_router(games.router)

# WebSocket routes
app.include_router(ws_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("trivia.main:app", host="0.0.0.0", port=8000, reload=True)
