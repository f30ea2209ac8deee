"""
ASGI entry point for the Clerk identity mirror.

    uvicorn main:app --app-dir backend
"""

import os
import logging

from clerk_mirror.app import create_app
from clerk_mirror.config.settings import Settings

settings = Settings.from_env()

# Configure structured logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = create_app(settings=settings)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENV") == "development"
    )
