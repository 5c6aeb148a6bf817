"""Migration script: embed a product snapshot in review documents.

Each review gets a 'product' sub-document (product_id, product_type, title)
copied from the books collection, and its own fields move under 'review'.

Usage:
    python scripts/embed_review_products.py
    python scripts/embed_review_products.py --review-id 1 --review-id 2

Ensure MONGO_URI and MONGO_DB environment variables are set.
"""
import argparse
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymongo.errors import PyMongoError

from bookstore.migrations.extended_reference import REFERENCE_REVIEW_IDS, run_extended_reference_migration
from bookstore.repository import BookRepository, ReviewRepository
from bookstore.repository.mongo_helper import MongoRepositorySingleton
from config import configure_logging

logger = logging.getLogger(__name__)


def main(argv=None):
    configure_logging()
    parser = argparse.ArgumentParser(description='Embed product references into reviews')
    parser.add_argument('--review-id', action='append', type=int, dest='review_ids',
                        help='Review _id to migrate (repeatable, default: 1 2)')
    args = parser.parse_args(argv)

    try:
        results = run_extended_reference_migration(
            ReviewRepository(), BookRepository(), args.review_ids or REFERENCE_REVIEW_IDS)
    except PyMongoError as e:
        logger.exception(f'Migration stopped on a database error: {e}')
        return 1
    finally:
        MongoRepositorySingleton.close()

    for review_id, embedded in results.items():
        logger.info(f'review {review_id}: {"embedded" if embedded else "unchanged"}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
