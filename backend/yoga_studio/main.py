import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import Base, engine
from .dependencies import catalog_state
from .errors import StoreError
from .logging_config import configure_logging
from .routers import bookings, cart, classes

configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create DB tables (DEV ONLY; use migrations in production)
    Base.metadata.create_all(bind=engine)
    try:
        catalog_state.refresh()
    except StoreError as e:
        # endpoints answer 503 until a refresh succeeds
        logger.warning("Initial catalog load failed: %s", e)
    yield


app = FastAPI(title="Yoga Studio Booking API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --------------------------------------------------------
# ROUTES
# --------------------------------------------------------
app.include_router(classes.catalog_router)
app.include_router(classes.router)
app.include_router(cart.router)
app.include_router(bookings.router)

# --------------------------------------------------------
# ROOT ENDPOINT (for testing)
# --------------------------------------------------------
@app.get("/")
def root():
    snapshot = catalog_state.snapshot
    return {
        "message": "Backend is running!",
        "catalog_version": snapshot.version if snapshot else None,
    }
