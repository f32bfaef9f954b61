import logging
import os

from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

AI_API_URL = os.getenv("AI_API_URL", "")
AI_API_KEY = os.getenv("AI_API_KEY", "")
AI_MODEL_NAME = os.getenv("AI_MODEL_NAME", "")
ACCESS_PASSWORD = os.getenv("ACCESS_PASSWORD", "")

MAX_CHARS = int(os.getenv("MAX_CHARS", "20000"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "300"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Used by the caller-side client in mermaid_canvas.client
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
