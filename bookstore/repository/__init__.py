from bookstore.repository.base_repository import BaseRepository, UpdateSummary
from bookstore.repository.memory_repository import InMemoryRepository
from bookstore.repository.mongo_repository import BookRepository, MongoDocumentRepository, ReviewRepository

__all__ = [
    'BaseRepository',
    'UpdateSummary',
    'InMemoryRepository',
    'MongoDocumentRepository',
    'BookRepository',
    'ReviewRepository',
]
