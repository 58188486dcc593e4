import logging

from app.main import app

# Serverless platforms capture stdout/stderr, so log at INFO to the root handler
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

logger.info("Movie catalog api/index.py initialized")

__all__ = ["app"]
