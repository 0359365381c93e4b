from logging_config import setup_logging

# Initialize logging BEFORE anything else
setup_logging()

from contextlib import asynccontextmanager
from logging_config import get_logger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from middleware import RequestLifecycleMiddleware
from routes import notifications
from feed.hub import notification_hub
from config import config

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Stop every poller and close upstream clients
    await notification_hub.shutdown()
    logger.info("Notification sessions shut down")


app = FastAPI(title="HRMS Notification Hub", lifespan=lifespan)

# CORS remains here as it's a global setting
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL] if config.ENV == "production" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request lifecycle middleware (request ID, context vars, duration logging)
app.add_middleware(RequestLifecycleMiddleware)

# REGISTER ROUTERS
app.include_router(notifications.router)

logger.info("Routers registered, HRMS Notification Hub ready")

@app.get("/")
async def root():
    return {"status": "online", "message": "HRMS Notification Hub is running!"}
