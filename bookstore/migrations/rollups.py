"""Computed pattern: rollups over the catalog and the reviews.

Both are plain aggregation pipelines run by the store. The review rollup
groups on 'review.stars', so it expects reviews that went through the
extended reference migration.
"""
import logging

logger = logging.getLogger(__name__)

PRODUCT_TYPE_ROLLUP = [
    {
        '$group': {
            '_id': '$product_type',
            'count': {'$sum': 1},
            'averageNumberOfAuthors': {'$avg': {'$size': '$authors'}},
        },
    },
]

STAR_BOUNDARIES = [0, 1, 2, 3, 4, 5, 6]

REVIEW_RATING_ROLLUP = [
    {
        '$bucket': {
            'groupBy': '$review.stars',
            'boundaries': STAR_BOUNDARIES,
            'default': 'other',
            'output': {
                'count': {'$sum': 1},
                'user_id': {'$push': '$review.user_id'},
            },
        },
    },
]


def rollup_product_types(books):
    """Count products and average author count per product_type.

    Every product must carry an 'authors' list ($size fails otherwise), which
    holds once the subtype migration has run.
    """
    rows = books.aggregate(PRODUCT_TYPE_ROLLUP)
    logger.info(f'product type rollup: {len(rows)} group(s)')
    return rows


def rollup_review_ratings(reviews):
    """Bucket reviews by star rating and collect reviewer ids per bucket."""
    rows = reviews.aggregate(REVIEW_RATING_ROLLUP)
    logger.info(f'review rating rollup: {len(rows)} bucket(s)')
    return rows
