import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()

class Config:
    # --- Environment ---
    ENV = os.getenv("ENV", "development") # "development", "testing" or "production"
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # --- HR Backend (upstream REST API) ---
    HR_API_URL = os.getenv("HR_API_URL", "http://localhost:5000/api")
    HR_API_TIMEOUT = float(os.getenv("HR_API_TIMEOUT", "10"))

    # --- Security Settings ---
    # Shared with the HR backend so dashboard tokens can be decoded here.
    # In production, ALWAYS set this in .env. Never use the fallback.
    SECRET_KEY = os.getenv("SECRET_KEY")
    if ENV == "production" and not SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is mandatory in production!")
    elif not SECRET_KEY:
        SECRET_KEY = "dev_secret_key_change_in_prod"
    ALGORITHM = os.getenv("ALGORITHM", "HS256")

    # --- Polling ---
    NOTIFICATION_POLL_INTERVAL = float(os.getenv("NOTIFICATION_POLL_INTERVAL", "60"))
    SESSION_IDLE_TIMEOUT = float(os.getenv("SESSION_IDLE_TIMEOUT", str(30 * 60)))

    # --- Read State Storage ---
    MONGO_URI = os.getenv("MONGO_URI")
    DB_NAME = os.getenv("DB_NAME", "hrms_notifications")
    READ_STATE_BACKEND = os.getenv("READ_STATE_BACKEND", "mongo" if MONGO_URI else "file") # "mongo", "file" or "memory"
    READ_STATE_DIR = os.getenv("READ_STATE_DIR", ".read_state")

    # --- Logging ---
    LOG_LEVEL = os.getenv("LOG_LEVEL") # defaults to DEBUG in development, INFO elsewhere
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")) # empty disables the file log

config = Config()
