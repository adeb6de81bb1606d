"""
Employee API entry point.

Usage:
    python main.py

Or with uvicorn directly:
    uvicorn employee_api.server:create_app --factory --port 8111
"""

import uvicorn
from loguru import logger

from employee_api.settings import get_settings


def main() -> None:
    """Start the HTTP server."""
    settings = get_settings()
    logger.info(f"Starting Employee API on http://{settings.host}:{settings.port}")
    logger.info(f"Upstream employee service: {settings.employee_api_base_url}")

    uvicorn.run(
        "employee_api.server:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
