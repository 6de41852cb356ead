import logging
import os
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConfigurationError

logger = logging.getLogger(__name__)

client = None
db = None

def init_db(app):
    """
    Connect to the database named in MONGODB_URI and expose it on ``app.state``.

    Raises:
        RuntimeError: MONGODB_URI is unset or names no database
    """
    global client, db
    mongodb_uri = os.getenv("MONGODB_URI")
    if not mongodb_uri:
        raise RuntimeError("MONGODB_URI is not set")

    client = AsyncIOMotorClient(mongodb_uri)
    try:
        db = client.get_default_database()
    except ConfigurationError as e:
        raise RuntimeError(f"MONGODB_URI must include a database name: {e}") from e

    logger.info("Using MongoDB database %s", db.name)
    app.state.db = db

def get_db():
    return db
