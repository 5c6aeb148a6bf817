"""Migration script: unify book, ebook and audiobook product documents.

This script:
1. Sets product_type on each target document
2. Renames 'details'/'desc' to 'description'
3. Turns a single-string authors value into a list
4. Removes the legacy 'author' field (audiobook)

Safe to run more than once; a run interrupted by a database error is
completed by running it again.

Usage:
    python scripts/migrate_product_subtypes.py
    python scripts/migrate_product_subtypes.py --target 2:ebook --verify

Ensure MONGO_URI and MONGO_DB environment variables are set.
"""
import argparse
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymongo.errors import PyMongoError

from bookstore.migrations.inheritance import REFERENCE_TARGETS, parse_target, run_inheritance_migration, verify_unified
from bookstore.repository import BookRepository
from bookstore.repository.mongo_helper import MongoRepositorySingleton
from config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Unify product subtype documents in the books collection')
    parser.add_argument('--target', action='append', type=parse_target, metavar='ID:TYPE',
                        help='Document id and subtype to migrate (repeatable, default: 1:book 2:ebook 3:audiobook)')
    parser.add_argument('--verify', action='store_true', help='Check the unified shape after migrating')
    return parser.parse_args(argv)


def main(argv=None):
    configure_logging()
    args = parse_args(argv)
    targets = args.target or list(REFERENCE_TARGETS)

    logger.info('Starting product subtype migration...')
    logger.info('=' * 50)

    try:
        books = BookRepository()
        results = run_inheritance_migration(books, targets)
        invalid = 0
        if args.verify:
            for result in results:
                if not result.found:
                    continue
                violations = verify_unified(books.find_one({'_id': result.document_id}) or {})
                for violation in violations:
                    logger.error(f'{result.document_id}: {violation}')
                invalid += 1 if violations else 0
    except PyMongoError as e:
        logger.exception(f'Migration stopped on a database error: {e}')
        return 1
    finally:
        MongoRepositorySingleton.close()

    logger.info('=' * 50)
    for result in results:
        logger.info(f'{result.document_id}: {result.to_dict()}')
    if invalid:
        logger.error(f'{invalid} document(s) failed verification')
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
