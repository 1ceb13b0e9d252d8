from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api import runtime

runtime.load_environment()

from apps.api.routes import ipc_router, kalkulator_router, rapport_router
from byggbot.infrastructure.config import SETTINGS
from byggbot.infrastructure.db import init_models, session_scope
from byggbot.services.tilbud import seed_produkt_konfigurasjoner

app = FastAPI(title="Byggbot garanti-API")
LOGGER = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    await init_models()
    if SETTINGS.AUTO_SEED_PRODUKTER:
        async with session_scope() as session:
            nye = await seed_produkt_konfigurasjoner(session)
        if nye:
            LOGGER.info("Startup: %d produktkonfigurasjoner lagt inn", nye)


def _cors_origins() -> list[str]:
    raw = os.getenv("API_CORS_ORIGINS")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ipc_router)
app.include_router(kalkulator_router)
app.include_router(rapport_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def main() -> None:
    import uvicorn

    logging.basicConfig(
        level=SETTINGS.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "apps.api.main:app",
        host=os.getenv("API_HOST", "127.0.0.1"),
        port=int(os.getenv("API_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
