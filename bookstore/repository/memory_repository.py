"""In-memory document repository.

Holds plain dicts keyed by ``_id`` and runs pipeline stages through the
interpreter in ``bookstore.migrations.pipeline``. Used by tests in place of a
MongoDB collection.

Supported query forms:
- ``{'field': value}`` exact equality (dotted paths allowed)
- ``{'field': {'$exists': True|False}}``
"""
import copy
import logging

from bookstore.migrations.pipeline import MISSING, apply_stages, get_path
from bookstore.repository.base_repository import BaseRepository, UpdateSummary

logger = logging.getLogger(__name__)


def matches(doc, query):
    for path, condition in (query or {}).items():
        value = get_path(doc, path)
        if isinstance(condition, dict) and '$exists' in condition:
            if (value is not MISSING) != bool(condition['$exists']):
                return False
        elif value is MISSING or value != condition:
            return False
    return True


class InMemoryRepository(BaseRepository):
    def __init__(self, documents=None):
        self._documents = []
        for doc in documents or []:
            self.insert(doc)

    def insert(self, doc):
        if '_id' not in doc:
            raise ValueError('documents need an _id')
        if any(existing['_id'] == doc['_id'] for existing in self._documents):
            raise ValueError(f"duplicate _id {doc['_id']!r}")
        self._documents.append(copy.deepcopy(doc))

    def find(self, query=None):
        return [copy.deepcopy(doc) for doc in self._documents if matches(doc, query)]

    def find_one(self, query):
        for doc in self._documents:
            if matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def update_one(self, query, stages):
        for index, doc in enumerate(self._documents):
            if not matches(doc, query):
                continue
            updated = apply_stages(doc, stages)
            # _id is immutable
            updated['_id'] = doc['_id']
            modified = updated != doc or list(updated) != list(doc)
            if modified:
                self._documents[index] = updated
            logger.debug(f'update_one {query} modified={modified}')
            return UpdateSummary(matched_count=1, modified_count=1 if modified else 0)
        return UpdateSummary(matched_count=0, modified_count=0)
