import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pytz import utc

import config
from routes import session_router
from routes.sessions import broadcast_state
from services import GameEngine
from services.maintenance import check_coin_field
from stores import init_world_store, close_world_store

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the world store, lay out the first coin field and start the refill job."""
    store = await init_world_store()
    engine = GameEngine(store)
    app.state.engine = engine
    await engine.place_coins()

    scheduler = AsyncIOScheduler(timezone=utc)
    scheduler.add_job(
        check_coin_field,
        trigger="interval",
        seconds=config.REFILL_CHECK_INTERVAL_S,
        args=[engine],
        kwargs={"on_refill": lambda: broadcast_state(engine)},
        id="check-coin-field",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Coin server started with {config.STORE_BACKEND} store")
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        await close_world_store()
        logger.info("Stop Server")


# --- FastAPI setup ---
app = FastAPI(lifespan=lifespan)

# --- Register routes ---
app.include_router(session_router)
