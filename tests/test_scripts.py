import importlib.util
import json
import logging
import os
from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from bookstore.repository import InMemoryRepository

SCRIPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'scripts')


def load_script(name):
    spec = importlib.util.spec_from_file_location(f'scripts_{name}', os.path.join(SCRIPTS_DIR, f'{name}.py'))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def migrate_script():
    return load_script('migrate_product_subtypes')


@pytest.fixture
def embed_script():
    return load_script('embed_review_products')


@pytest.fixture
def rollup_script():
    return load_script('rollup_reports')


def failing_store():
    store = MagicMock()
    store.update_one.side_effect = ServerSelectionTimeoutError('no servers available')
    store.find_one.side_effect = ServerSelectionTimeoutError('no servers available')
    store.aggregate.side_effect = ServerSelectionTimeoutError('no servers available')
    return store


def test_migrate_reference_targets(migrate_script, monkeypatch, books):
    monkeypatch.setattr(migrate_script, 'BookRepository', lambda: books)

    assert migrate_script.main(['--verify']) == 0

    assert books.find_one({'_id': 1})['product_type'] == 'book'
    assert books.find_one({'_id': 2})['authors'] == ['Ann']
    assert books.find_one({'_id': 3})['authors'] == ['Bob']


def test_migrate_single_book_target_verifies_clean(migrate_script, monkeypatch):
    store = InMemoryRepository([{'_id': 1, 'details': 'X', 'authors': 'Ann'}])
    monkeypatch.setattr(migrate_script, 'BookRepository', lambda: store)

    assert migrate_script.main(['--target', '1:book', '--verify']) == 0
    assert store.find_one({'_id': 1}) == {'_id': 1, 'product_type': 'book', 'description': 'X', 'authors': ['Ann']}


def test_migrate_verify_reports_leftover_legacy_field(migrate_script, monkeypatch, caplog):
    # 'desc' is not the book description field, so it survives a book migration
    store = InMemoryRepository([{'_id': 7, 'desc': 'mislabeled'}])
    monkeypatch.setattr(migrate_script, 'BookRepository', lambda: store)

    with caplog.at_level(logging.ERROR):
        assert migrate_script.main(['--target', '7:book', '--verify']) == 2
    assert "7: legacy field 'desc' still present" in caplog.text


def test_migrate_database_error_exits_1(migrate_script, monkeypatch, caplog):
    monkeypatch.setattr(migrate_script, 'BookRepository', failing_store)

    with caplog.at_level(logging.ERROR):
        assert migrate_script.main([]) == 1
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert errors and errors[0].exc_info is not None


def test_migrate_target_argument_parsing(migrate_script):
    args = migrate_script.parse_args(['--target', '2:ebook', '--target', 'x9:AUDIOBOOK'])
    assert [(i, t.value) for i, t in args.target] == [(2, 'ebook'), ('x9', 'audiobook')]
    assert args.verify is False
    with pytest.raises(SystemExit):
        migrate_script.parse_args(['--target', '2:magazine'])


def test_embed_reviews(embed_script, monkeypatch, books, reviews):
    monkeypatch.setattr(embed_script, 'BookRepository', lambda: books)
    monkeypatch.setattr(embed_script, 'ReviewRepository', lambda: reviews)

    assert embed_script.main(['--review-id', '2']) == 0

    assert reviews.find_one({'_id': 2})['product']['product_id'] == 54538756
    assert 'product_id' in reviews.find_one({'_id': 1})


def test_embed_database_error_exits_1(embed_script, monkeypatch, books):
    monkeypatch.setattr(embed_script, 'BookRepository', lambda: books)
    monkeypatch.setattr(embed_script, 'ReviewRepository', failing_store)
    assert embed_script.main([]) == 1


def test_rollups_print_json(rollup_script, monkeypatch, capsys):
    repo = MagicMock()
    repo.aggregate.return_value = [{'_id': 'book', 'count': 1}]
    monkeypatch.setattr(rollup_script, 'BookRepository', lambda: repo)
    monkeypatch.setattr(rollup_script, 'ReviewRepository', failing_store)

    assert rollup_script.main(['--products']) == 0

    assert json.loads(capsys.readouterr().out) == [{'_id': 'book', 'count': 1}]


def test_rollups_database_error_exits_1(rollup_script, monkeypatch):
    monkeypatch.setattr(rollup_script, 'ReviewRepository', failing_store)
    assert rollup_script.main(['--reviews']) == 1
