"""Main application module for the scout service."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from api_routes import register_routes
from scout import ScoutRuntime, get_runtime

PROJECT_ROOT = Path(__file__).resolve().parent

load_dotenv(os.getenv("SCOUT_DOTENV", PROJECT_ROOT / ".env"))

handlers: list = [logging.StreamHandler()]
LOG_FILE = os.getenv("SCOUT_LOG_FILE")
if LOG_FILE:
    Path(LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.FileHandler(LOG_FILE))

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers,
)

logger = logging.getLogger("scout")


def create_app(runtime_factory: Optional[Callable[[], ScoutRuntime]] = None) -> Flask:
    """Build the Flask app; the scout runtime is resolved lazily per request."""
    flask_app = Flask(__name__)
    CORS(flask_app)
    register_routes(flask_app, runtime_factory or get_runtime)
    return flask_app


app = create_app()

__all__ = ["app", "create_app"]
