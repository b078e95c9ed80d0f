import logging
import os

from dotenv import load_dotenv

ENV_FILE = os.path.join(os.path.dirname(__file__), f".env.{os.getenv('ENVIRONMENT', 'test')}")
if os.path.exists(ENV_FILE):
    load_dotenv(ENV_FILE)

ENV = os.getenv("ENVIRONMENT", "test")
HOST = os.getenv("LUCAS_HOST", "127.0.0.1")
PORT = int(os.getenv("LUCAS_PORT", "8069"))
LOG_LEVEL = os.getenv("LUCAS_LOG_LEVEL", "INFO")


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
