import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from torsim.api.deps import SessionRegistry
from torsim.api.routers.combat import router as combat_router
from torsim.api.routers.dice import router as dice_router
from torsim.api.routers.heroes import router as heroes_router
from torsim.config import settings
from torsim.db.init_db import init_db

logger = logging.getLogger("torsim")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    app.state.sessions = SessionRegistry()
    logger.info("torsim ready")
    yield


app = FastAPI(title="The One Ring Combat Simulator", lifespan=lifespan)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(heroes_router)
app.include_router(dice_router)
app.include_router(combat_router)
