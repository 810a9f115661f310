"""
Run the API with uvicorn using HOST and PORT from settings:

  python -m app.server
"""

import logging
import sys

import uvicorn

from app.core.config import get_settings

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    logger.info("Listening on http://%s:%s (env=%s)", settings.HOST, settings.PORT, settings.APP_ENV)
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.log_level.lower(),
        reload=settings.APP_ENV == "dev" and settings.DEBUG,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
