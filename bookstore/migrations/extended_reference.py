"""Extended reference pattern: embed a product snapshot in each review.

Reviews are written with their fields at the top level and only a
product_id pointing at the catalog. The migration copies the product's
product_id, product_type and title into a 'product' sub-document, moves the
review's own fields under 'review', and drops the top-level copies, all in
one update per review.

A review without a top-level product_id has already been migrated and is left
alone.
"""
import logging
from typing import Any, Dict, Iterable, List

from bookstore.migrations.pipeline import SetFields, UnsetFields

logger = logging.getLogger(__name__)

PRODUCT_SNAPSHOT_FIELDS = ('product_id', 'product_type', 'title')
REVIEW_FIELDS = ('user_id', 'reviewTitle', 'reviewBody', 'date', 'stars')

REFERENCE_REVIEW_IDS = (1, 2)


def build_embed_stages(review: Dict[str, Any], product: Dict[str, Any]) -> List:
    snapshot = {}
    for name in PRODUCT_SNAPSHOT_FIELDS:
        if name in product:
            snapshot[f'product.{name}'] = product[name]
    for name in REVIEW_FIELDS:
        if name in review:
            snapshot[f'review.{name}'] = review[name]
    return [SetFields(snapshot), UnsetFields('product_id', *REVIEW_FIELDS)]


def embed_product_reference(reviews, books, review_id) -> bool:
    """Embed the referenced product into one review.

    Returns True when the review was rewritten, False when it is missing,
    already embedded, or its product cannot be found.
    """
    review = reviews.find_one({'_id': review_id})
    if review is None:
        logger.warning(f'review {review_id}: not found')
        return False
    if 'product_id' not in review:
        logger.info(f'review {review_id}: product reference already embedded')
        return False

    product = books.find_one({'product_id': review['product_id']})
    if product is None:
        logger.warning(f"review {review_id}: product {review['product_id']} not found, skipping")
        return False

    summary = reviews.update_one(
        {'_id': review_id, 'product_id': {'$exists': True}},
        build_embed_stages(review, product),
    )
    logger.info(f"review {review_id}: embedded product {review['product_id']} (modified={summary.modified_count})")
    return summary.modified_count > 0


def run_extended_reference_migration(reviews, books, review_ids: Iterable = REFERENCE_REVIEW_IDS) -> Dict[Any, bool]:
    results = {}
    for review_id in review_ids:
        results[review_id] = embed_product_reference(reviews, books, review_id)
    embedded = sum(1 for v in results.values() if v)
    logger.info(f'Extended reference migration complete: {embedded}/{len(results)} review(s) embedded')
    return results
