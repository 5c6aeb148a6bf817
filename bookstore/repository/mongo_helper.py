from pymongo import MongoClient
import logging

from config import config

logger = logging.getLogger(__name__)


class MongoRepositorySingleton:
    _client = None
    _db_instance = None

    @classmethod
    def get_db(cls):
        """Singleton utility to get the bookstore database object.

        Uses MONGO_URI and MONGO_DB from config (environment variables win over
        the YAML files). For local development this is
        mongodb://localhost:27017 and database 'bookstore'.
        """
        if cls._db_instance is not None:
            return cls._db_instance
        mongo_uri = config.MONGO_URI
        db_name = config.MONGO_DB
        logger.info(f"Connecting to MongoDB URI: {mongo_uri}, DB: {db_name}")
        cls._client = MongoClient(mongo_uri)
        cls._db_instance = cls._client[db_name]
        return cls._db_instance

    @classmethod
    def get_collection(cls, collection_name, db=None):
        """Return a collection handle from ``db`` (or the singleton database).

        Migrations only touch documents that already exist, so collections are
        never created here.
        """
        if db is None:
            db = cls.get_db()
        return db[collection_name]

    @classmethod
    def close(cls):
        if cls._client is not None:
            cls._client.close()
        cls._client = None
        cls._db_instance = None
