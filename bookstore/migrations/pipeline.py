"""Update pipeline stages used by the schema migrations.

A migration step is an ordered list of stages applied to one document in a
single update. Each stage can be:
- compiled to a MongoDB aggregation-pipeline update stage (``to_mongo``)
- interpreted against a plain dict (``apply``), which is what the in-memory
  repository does

Stages:
- SetFields: assign literals or copies of other fields of the same document
- UnsetFields: remove named fields
- ConditionalSet: keep a sequence value, wrap a scalar into a one-element list

Every stage evaluates its expressions against the document as it was when the
stage started, the same way MongoDB evaluates a ``$set`` stage.

Usage:
    from bookstore.migrations.pipeline import SetFields, UnsetFields, FieldRef

    stages = [SetFields({'description': FieldRef('details')}), UnsetFields('details')]
    collection.update_one({'_id': 1}, compile_pipeline(stages))
"""
import copy
from enum import Enum
from typing import Any, Dict, Iterable, List


class _Missing:
    """Marker for an absent field (distinct from a stored null)."""

    def __repr__(self):
        return 'MISSING'

    def __bool__(self):
        return False


MISSING = _Missing()


class ValueKind(str, Enum):
    SCALAR = 'scalar'
    SEQUENCE = 'sequence'


def value_kind(value) -> ValueKind:
    """Classify a stored value. Strings and anything that is not a list are scalars."""
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    return ValueKind.SCALAR


# =============================================================================
# Dotted path helpers
# =============================================================================

def get_path(doc: Dict[str, Any], path: str, default=MISSING):
    value = doc
    for part in path.split('.'):
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return value


def set_path(doc: Dict[str, Any], path: str, value) -> None:
    parts = path.split('.')
    target = doc
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def unset_path(doc: Dict[str, Any], path: str) -> None:
    parts = path.split('.')
    target = doc
    for part in parts[:-1]:
        target = target.get(part)
        if not isinstance(target, dict):
            return
    target.pop(parts[-1], None)


# =============================================================================
# Expressions
# =============================================================================

class FieldRef:
    """Reference to another field of the same document (``"$name"`` in MongoDB)."""

    def __init__(self, name: str):
        self.name = name

    def to_mongo(self) -> str:
        return f'${self.name}'

    def resolve(self, doc: Dict[str, Any]):
        return get_path(doc, self.name)

    def __eq__(self, other):
        return isinstance(other, FieldRef) and other.name == self.name

    def __repr__(self):
        return f'FieldRef({self.name!r})'


def _literal(value):
    # Strings starting with '$' and containers would be parsed as expressions.
    if isinstance(value, str) and value.startswith('$'):
        return {'$literal': value}
    if isinstance(value, (dict, list, tuple)):
        return {'$literal': value}
    return value


def _to_expression(value):
    if isinstance(value, FieldRef):
        return value.to_mongo()
    return _literal(value)


def _resolve(value, doc):
    if isinstance(value, FieldRef):
        return value.resolve(doc)
    return copy.deepcopy(value)


# =============================================================================
# Stages
# =============================================================================

class SetFields:
    """Assign one or more fields. Values are literals or FieldRef copies.

    A FieldRef that points at a missing field leaves the target absent, matching
    MongoDB where a ``$set`` to a missing expression removes the field.
    """

    def __init__(self, fields: Dict[str, Any]):
        if not fields:
            raise ValueError('SetFields requires at least one field')
        self.fields = dict(fields)

    def to_mongo(self) -> Dict[str, Any]:
        return {'$set': {name: _to_expression(value) for name, value in self.fields.items()}}

    def apply(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        source = copy.deepcopy(doc)
        for name, value in self.fields.items():
            resolved = _resolve(value, source)
            if resolved is MISSING:
                unset_path(doc, name)
            else:
                set_path(doc, name, resolved)
        return doc

    def __repr__(self):
        return f'SetFields({self.fields!r})'


class UnsetFields:
    """Remove named fields; absent names are ignored."""

    def __init__(self, *names: str):
        if not names:
            raise ValueError('UnsetFields requires at least one field name')
        self.names = list(names)

    def to_mongo(self) -> Dict[str, Any]:
        return {'$unset': list(self.names)}

    def apply(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        for name in self.names:
            unset_path(doc, name)
        return doc

    def __repr__(self):
        return f'UnsetFields({", ".join(repr(n) for n in self.names)})'


class ConditionalSet:
    """Normalize a field to a sequence, computed from the stored value.

    The source value is the field itself, or the first present (non-null)
    fallback field. A SEQUENCE source is kept as-is, a SCALAR source becomes a
    one-element list. When every source is missing the field stays missing.
    Because the decision is taken by the store against the current document,
    replaying the stage never nests an already-wrapped list.
    """

    def __init__(self, field: str, fallbacks: Iterable[str] = ()):
        self.field = field
        self.sources = [field] + [f for f in fallbacks if f != field]

    def _source_expression(self):
        expr = f'${self.sources[-1]}'
        for name in reversed(self.sources[:-1]):
            expr = {'$ifNull': [f'${name}', expr]}
        return expr

    def to_mongo(self) -> Dict[str, Any]:
        source = self._source_expression()
        return {'$set': {self.field: {'$cond': [
            {'$isArray': source},
            source,
            {'$cond': [
                {'$eq': [{'$type': source}, 'missing']},
                '$$REMOVE',
                [source],
            ]},
        ]}}}

    def _source_value(self, doc):
        for name in self.sources[:-1]:
            value = get_path(doc, name)
            if value is not MISSING and value is not None:
                return value
        return get_path(doc, self.sources[-1])

    def apply(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        value = self._source_value(doc)
        if value is MISSING:
            unset_path(doc, self.field)
        elif value_kind(value) is ValueKind.SEQUENCE:
            set_path(doc, self.field, list(value))
        else:
            set_path(doc, self.field, [value])
        return doc

    def __repr__(self):
        return f'ConditionalSet({self.field!r}, fallbacks={self.sources[1:]!r})'


def compile_pipeline(stages: Iterable) -> List[Dict[str, Any]]:
    """Translate stages into a MongoDB update pipeline (list of stage documents)."""
    return [stage.to_mongo() for stage in stages]


def apply_stages(doc: Dict[str, Any], stages: Iterable) -> Dict[str, Any]:
    """Interpret stages against a copy of ``doc`` and return the new document."""
    result = copy.deepcopy(doc)
    for stage in stages:
        result = stage.apply(result)
    return result
