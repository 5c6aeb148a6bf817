import pytest

from bookstore.repository import InMemoryRepository


@pytest.fixture
def legacy_products():
    return [
        {'_id': 1, 'title': 'MongoDB Basics', 'product_id': 34538756, 'details': 'X', 'authors': ['Ann', 'Bob']},
        {'_id': 2, 'title': 'MongoDB: The Definitive Guide', 'product_id': 54538756, 'desc': 'Y', 'authors': 'Ann'},
        {'_id': 3, 'title': 'MongoDB Audio', 'product_id': 64538756, 'desc': 'Z', 'author': 'Bob'},
    ]


@pytest.fixture
def books(legacy_products):
    return InMemoryRepository(legacy_products)


@pytest.fixture
def legacy_reviews():
    return [
        {'_id': 1, 'product_id': 34538756, 'user_id': 'u1', 'reviewTitle': 'Great',
         'reviewBody': 'Loved it', 'date': '2023-01-02', 'stars': 5},
        {'_id': 2, 'product_id': 54538756, 'user_id': 'u2', 'reviewTitle': 'Meh',
         'reviewBody': 'It was ok', 'date': '2023-02-03', 'stars': 3},
    ]


@pytest.fixture
def reviews(legacy_reviews):
    return InMemoryRepository(legacy_reviews)
