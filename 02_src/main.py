"""Main entry point for the Bliss conversation core API."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from blisscore.api import create_fastapi_app
from blisscore.config import load_settings
from blisscore.logging_config import setup_logging


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    settings = load_settings()
    app = create_fastapi_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
