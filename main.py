"""
Elector — Entry Point.

Single entry point: `python main.py` starts the API server with the
reminder scheduler.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

import uvicorn

from elector.api.app import create_app
from elector.config import settings


def main() -> None:
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
