import logging
from unittest.mock import MagicMock

import pytest

from bookstore.migrations.pipeline import FieldRef, SetFields, UnsetFields
from bookstore.repository import (
    BookRepository,
    InMemoryRepository,
    MongoDocumentRepository,
    ReviewRepository,
    UpdateSummary,
)
from bookstore.repository import mongo_helper
from bookstore.repository.memory_repository import matches
from bookstore.repository.mongo_helper import MongoRepositorySingleton


def test_matches_equality_and_exists():
    doc = {'_id': 1, 'desc': 'x', 'product': {'title': 'T'}}
    assert matches(doc, {'_id': 1})
    assert matches(doc, {'desc': {'$exists': True}})
    assert matches(doc, {'author': {'$exists': False}})
    assert matches(doc, {'product.title': 'T'})
    assert not matches(doc, {'_id': 2})
    assert not matches(doc, {'desc': {'$exists': False}})
    assert not matches(doc, {'missing': None})


def test_memory_update_counts():
    repo = InMemoryRepository([{'_id': 1, 'desc': 'x'}])
    stages = [SetFields({'description': FieldRef('desc')}), UnsetFields('desc')]

    assert repo.update_one({'_id': 1}, stages) == UpdateSummary(1, 1)
    # replaying without the guard would clear description
    assert repo.update_one({'_id': 1, 'desc': {'$exists': True}}, stages) == UpdateSummary(0, 0)
    assert repo.update_one({'_id': 2}, stages) == UpdateSummary(0, 0)
    assert repo.find_one({'_id': 1}) == {'_id': 1, 'description': 'x'}


def test_memory_update_keeps_id():
    repo = InMemoryRepository([{'_id': 1}])
    repo.update_one({'_id': 1}, [SetFields({'_id': 99})])
    assert repo.find_one({'_id': 1}) == {'_id': 1}


def test_memory_returns_copies():
    repo = InMemoryRepository([{'_id': 1, 'authors': ['Ann']}])
    repo.find_one({'_id': 1})['authors'].append('Bob')
    assert repo.find_one({'_id': 1}) == {'_id': 1, 'authors': ['Ann']}


def test_memory_rejects_duplicate_ids():
    with pytest.raises(ValueError):
        InMemoryRepository([{'_id': 1}, {'_id': 1}])
    with pytest.raises(ValueError):
        InMemoryRepository([{'title': 'no id'}])


def test_mongo_repository_compiles_stages():
    collection = MagicMock()
    collection.update_one.return_value = MagicMock(matched_count=1, modified_count=0)
    repo = MongoDocumentRepository(collection)

    summary = repo.update_one({'_id': 1}, [SetFields({'product_type': 'book'}), UnsetFields('details')])

    collection.update_one.assert_called_once_with(
        {'_id': 1}, [{'$set': {'product_type': 'book'}}, {'$unset': ['details']}])
    assert summary == UpdateSummary(1, 0)


def test_mongo_repository_reads():
    collection = MagicMock()
    collection.find.return_value = iter([{'_id': 1}])
    collection.find_one.return_value = {'_id': 1}
    collection.aggregate.return_value = iter([{'_id': 'book', 'count': 1}])
    repo = MongoDocumentRepository(collection)

    assert repo.find() == [{'_id': 1}]
    collection.find.assert_called_once_with({})
    assert repo.find_one({'_id': 1}) == {'_id': 1}
    assert repo.aggregate([{'$match': {}}]) == [{'_id': 'book', 'count': 1}]

def test_book_repository_uses_configured_collection(monkeypatch):
    monkeypatch.delenv('BOOKS_COLLECTION', raising=False)
    db = MagicMock()
    repo = BookRepository(db)
    db.__getitem__.assert_called_once_with('books')
    assert repo.collection_name == 'books'
    assert repo.collection is db.__getitem__.return_value


def test_review_repository_collection_from_env(monkeypatch):
    monkeypatch.setenv('REVIEWS_COLLECTION', 'reviews_v2')
    db = MagicMock()
    ReviewRepository(db)
    db.__getitem__.assert_called_once_with('reviews_v2')


def test_get_db_caches_client_and_logs(monkeypatch, caplog):
    monkeypatch.setenv('MONGO_DB', 'bookstore_test')
    client = MagicMock()
    monkeypatch.setattr(mongo_helper, 'MongoClient', MagicMock(return_value=client))
    MongoRepositorySingleton.close()
    try:
        with caplog.at_level(logging.INFO, logger='bookstore.repository.mongo_helper'):
            db = MongoRepositorySingleton.get_db()
            assert MongoRepositorySingleton.get_db() is db
        client.__getitem__.assert_called_once_with('bookstore_test')
        assert [r.name for r in caplog.records] == ['bookstore.repository.mongo_helper']
    finally:
        MongoRepositorySingleton.close()
    client.close.assert_called_once_with()
