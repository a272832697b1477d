# shopsearch/db/mongo.py
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from shopsearch.core.config import get_settings
import certifi

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


async def connect():
    """
    Create Motor client with explicit CA bundle.
    Do not crash the app if the initial ping fails: keep a lazy client so
    requests can retry once Atlas/network is reachable.
    """
    global _client, _db
    settings = get_settings()

    def _new_client() -> AsyncIOMotorClient:
        return AsyncIOMotorClient(
            settings.MONGO_URI,                 # e.g. mongodb+srv://.../...
            tls=True,                           # SRV implies TLS but keep explicit
            tlsCAFile=certifi.where(),          # containers often lack a CA bundle
            uuidRepresentation="standard",
            serverSelectionTimeoutMS=6000,
            connectTimeoutMS=6000,
        )

    try:
        _client = _new_client()
        _db = _client[settings.MONGO_DB]
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok)")
    except Exception as e:
        logger.warning(f"Mongo ping at startup failed: {e}")
        try:
            # keep a lazy client; first real query will attempt to connect again
            _client = _new_client()
            _db = _client[settings.MONGO_DB]
            logger.warning("Mongo will attempt lazy connection on first query")
        except Exception as e2:
            # as a last resort, keep None; routes that need DB will assert
            _client = None
            _db = None
            logger.error(f"Mongo client init failed: {e2}")


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
