"""Inheritance pattern: unify book, ebook and audiobook product documents.

Legacy product documents disagree on field names and shapes depending on the
subtype they were written for:
- book uses 'details' for its description, ebook and audiobook use 'desc'
- book and ebook may store 'authors' as a single string
- audiobook may store a single 'author' string instead of 'authors'

After migration every targeted document has:
- product_type set from the caller's hint
- 'description' instead of the legacy description field
- 'authors' as a list whenever any author is recorded
- none of 'details', 'desc' or 'author'

Each step is one update_one against the target document and is safe to
replay, so an interrupted run is finished by running it again.

Usage:
    from bookstore.migrations.inheritance import normalize, run_inheritance_migration

    normalize(repo, 2, 'ebook')
    results = run_inheritance_migration(repo)
"""
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bookstore.migrations.pipeline import (
    ConditionalSet,
    FieldRef,
    SetFields,
    UnsetFields,
    ValueKind,
    value_kind,
)
from bookstore.repository.base_repository import UpdateSummary

logger = logging.getLogger(__name__)


class ProductType(str, Enum):
    BOOK = 'book'
    EBOOK = 'ebook'
    AUDIOBOOK = 'audiobook'


LEGACY_DESCRIPTION_FIELDS = {
    ProductType.BOOK: 'details',
    ProductType.EBOOK: 'desc',
    ProductType.AUDIOBOOK: 'desc',
}

# Legacy fields read when 'authors' itself is absent, per subtype.
AUTHOR_FALLBACK_FIELDS = {
    ProductType.BOOK: (),
    ProductType.EBOOK: (),
    ProductType.AUDIOBOOK: ('author',),
}

LEGACY_FIELDS = ('details', 'desc', 'author')

# Sample catalog documents and the subtype each one becomes.
REFERENCE_TARGETS = (
    (1, ProductType.BOOK),
    (2, ProductType.EBOOK),
    (3, ProductType.AUDIOBOOK),
)

ASSIGN_TYPE = 'assign_type'
RENAME_DESCRIPTION = 'rename_description'
NORMALIZE_AUTHORS = 'normalize_authors'
REMOVE_LEGACY_AUTHOR = 'remove_legacy_author'


class MigrationStep:
    """One atomic update: an ordered stage list plus an optional guard field.

    When ``requires`` is set the step only matches documents that still have
    that field, so an already-migrated document is left alone.
    """

    def __init__(self, name: str, stages: List, requires: Optional[str] = None):
        self.name = name
        self.stages = stages
        self.requires = requires

    def query_for(self, document_id) -> Dict[str, Any]:
        query = {'_id': document_id}
        if self.requires:
            query[self.requires] = {'$exists': True}
        return query

    def __repr__(self):
        return f'MigrationStep({self.name!r}, {self.stages!r}, requires={self.requires!r})'


def plan_steps(product_type) -> List[MigrationStep]:
    """Build the ordered steps that move a document of ``product_type`` to the unified shape."""
    product_type = ProductType(product_type)
    legacy_description = LEGACY_DESCRIPTION_FIELDS[product_type]

    steps = [
        MigrationStep(ASSIGN_TYPE, [SetFields({'product_type': product_type.value})]),
        MigrationStep(
            RENAME_DESCRIPTION,
            [SetFields({'description': FieldRef(legacy_description)}), UnsetFields(legacy_description)],
            requires=legacy_description,
        ),
    ]

    fallbacks = AUTHOR_FALLBACK_FIELDS[product_type]
    steps.append(MigrationStep(NORMALIZE_AUTHORS, [ConditionalSet('authors', fallbacks)]))
    for legacy_author in fallbacks:
        steps.append(MigrationStep(REMOVE_LEGACY_AUTHOR, [UnsetFields(legacy_author)], requires=legacy_author))

    return steps


class NormalizeResult:
    """Per-step update counts for one normalized document."""

    def __init__(self, document_id, product_type: ProductType):
        self.document_id = document_id
        self.product_type = product_type
        self.steps: List[Tuple[str, UpdateSummary]] = []

    def record(self, step_name: str, summary: UpdateSummary):
        self.steps.append((step_name, summary))

    @property
    def matched_count(self) -> int:
        """Documents matched by the unconditional type assignment (0 or 1)."""
        if not self.steps:
            return 0
        return self.steps[0][1].matched_count

    @property
    def modified_count(self) -> int:
        return sum(summary.modified_count for _, summary in self.steps)

    @property
    def found(self) -> bool:
        return self.matched_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'product_type': self.product_type.value,
            'matched_count': self.matched_count,
            'modified_count': self.modified_count,
            'steps': [{'step': name, **summary.to_dict()} for name, summary in self.steps],
        }


def normalize(store, document_id, subtype_hint) -> NormalizeResult:
    """Move one product document onto the unified schema.

    Args:
        store: repository exposing update_one(query, stages)
        document_id: _id of the product document
        subtype_hint: product type to assign (ProductType or its string value)

    Returns:
        NormalizeResult; matched_count is 0 when no document has this _id.

    Raises:
        ValueError: unknown subtype hint (raised before any write)
        Any store error propagates unchanged.
    """
    product_type = ProductType(subtype_hint)
    result = NormalizeResult(document_id, product_type)

    for step in plan_steps(product_type):
        summary = store.update_one(step.query_for(document_id), step.stages)
        result.record(step.name, summary)

        if step.name == ASSIGN_TYPE and summary.matched_count == 0:
            logger.warning(f'{document_id}: no product document matched, nothing to migrate')
            return result
        if summary.matched_count == 0:
            logger.debug(f'{document_id}: {step.name} skipped, {step.requires} already absent')
        else:
            logger.debug(f'{document_id}: {step.name} modified={summary.modified_count}')

    logger.info(f'{document_id}: normalized as {product_type.value} ({result.modified_count} step(s) changed the document)')
    return result


def run_inheritance_migration(store, targets: Iterable = REFERENCE_TARGETS) -> List[NormalizeResult]:
    """Normalize each (document_id, subtype) target in order.

    Stops at the first store failure by letting the exception propagate;
    documents already processed stay migrated.
    """
    results = []
    for document_id, subtype in targets:
        results.append(normalize(store, document_id, subtype))
    total = sum(r.modified_count for r in results)
    missing = [r.document_id for r in results if not r.found]
    logger.info(f'Subtype migration complete: {len(results)} target(s), {total} step update(s), missing={missing}')
    return results


def verify_unified(doc: Dict[str, Any]) -> List[str]:
    """Return human readable violations of the unified product shape (empty when valid)."""
    violations = []
    product_type = doc.get('product_type')
    if product_type not in [t.value for t in ProductType]:
        violations.append(f'product_type is {product_type!r}')
    for legacy in LEGACY_FIELDS:
        if legacy in doc:
            violations.append(f'legacy field {legacy!r} still present')
    if 'authors' in doc and value_kind(doc['authors']) is ValueKind.SCALAR:
        violations.append('authors is not a list')
    return violations


def parse_target(text: str) -> Tuple[Any, ProductType]:
    """Parse an ``ID:TYPE`` command line target, e.g. ``2:ebook``.

    Numeric ids become ints, anything else stays a string.
    """
    document_id, sep, subtype = text.partition(':')
    if not sep or not document_id.strip() or not subtype.strip():
        raise ValueError(f'target must look like ID:TYPE, got {text!r}')
    document_id = document_id.strip()
    if document_id.lstrip('-').isdigit():
        document_id = int(document_id)
    return document_id, ProductType(subtype.strip().lower())
