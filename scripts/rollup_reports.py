"""Print the computed-pattern rollups.

Usage:
    python scripts/rollup_reports.py            # both rollups
    python scripts/rollup_reports.py --reviews  # review rating buckets only
"""
import argparse
import json
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymongo.errors import PyMongoError

from bookstore.migrations.rollups import rollup_product_types, rollup_review_ratings
from bookstore.repository import BookRepository, ReviewRepository
from bookstore.repository.mongo_helper import MongoRepositorySingleton
from config import configure_logging

logger = logging.getLogger(__name__)


def main(argv=None):
    configure_logging()
    parser = argparse.ArgumentParser(description='Run bookstore rollup aggregations')
    parser.add_argument('--products', action='store_true', help='Products per type and average author count')
    parser.add_argument('--reviews', action='store_true', help='Reviews bucketed by star rating')
    args = parser.parse_args(argv)
    run_all = not (args.products or args.reviews)

    try:
        if args.products or run_all:
            print(json.dumps(rollup_product_types(BookRepository()), indent=2, default=str))
        if args.reviews or run_all:
            print(json.dumps(rollup_review_ratings(ReviewRepository()), indent=2, default=str))
    except PyMongoError as e:
        logger.exception(f'Rollup failed: {e}')
        return 1
    finally:
        MongoRepositorySingleton.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
