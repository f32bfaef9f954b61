from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mermaid_canvas import __version__
from mermaid_canvas.api.routes import router
from mermaid_canvas.config import CORS_ORIGINS, configure_logging

configure_logging()

app = FastAPI(
    title="Mermaid Canvas",
    version=__version__,
)

# Middleware before routes
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
