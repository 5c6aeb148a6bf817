import logging

from bookstore.migrations.pipeline import compile_pipeline
from bookstore.repository.base_repository import BaseRepository, UpdateSummary
from bookstore.repository.mongo_helper import MongoRepositorySingleton
from config import config

logger = logging.getLogger(__name__)


class MongoDocumentRepository(BaseRepository):
    """Repository over a pymongo collection.

    Pipeline stages are compiled into one MongoDB update pipeline so every
    update_one call is a single atomic write on the server. pymongo errors are
    not caught here.
    """

    def __init__(self, collection):
        self.collection = collection

    def find(self, query=None):
        return list(self.collection.find(query or {}))

    def find_one(self, query):
        return self.collection.find_one(query)

    def update_one(self, query, stages):
        pipeline = compile_pipeline(stages)
        logger.debug(f'update_one {query} pipeline={pipeline}')
        result = self.collection.update_one(query, pipeline)
        return UpdateSummary.from_result(result)

    def aggregate(self, pipeline):
        return list(self.collection.aggregate(pipeline))


class BookRepository(MongoDocumentRepository):
    def __init__(self, db=None, collection_name=None):
        self.collection_name = collection_name or config.BOOKS_COLLECTION
        logger.debug(f'Initializing BookRepository, collection: {self.collection_name}')
        super().__init__(MongoRepositorySingleton.get_collection(self.collection_name, db))


class ReviewRepository(MongoDocumentRepository):
    def __init__(self, db=None, collection_name=None):
        self.collection_name = collection_name or config.REVIEWS_COLLECTION
        logger.debug(f'Initializing ReviewRepository, collection: {self.collection_name}')
        super().__init__(MongoRepositorySingleton.get_collection(self.collection_name, db))
