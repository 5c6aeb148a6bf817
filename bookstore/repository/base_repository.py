from abc import ABC, abstractmethod


class UpdateSummary:
    """Matched/modified counts of a single update_one call."""

    def __init__(self, matched_count=0, modified_count=0):
        self.matched_count = matched_count
        self.modified_count = modified_count

    @classmethod
    def from_result(cls, result):
        """Build from a pymongo UpdateResult."""
        return cls(matched_count=result.matched_count, modified_count=result.modified_count)

    def to_dict(self):
        return {'matched_count': self.matched_count, 'modified_count': self.modified_count}

    def __eq__(self, other):
        if not isinstance(other, UpdateSummary):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f'UpdateSummary(matched_count={self.matched_count}, modified_count={self.modified_count})'


class BaseRepository(ABC):
    @abstractmethod
    def find(self, query=None):
        """Find multiple documents matching the query."""
        pass

    @abstractmethod
    def find_one(self, query):
        """Find a single document matching the query."""
        pass

    @abstractmethod
    def update_one(self, query, stages):
        """Apply an ordered list of pipeline stages to one matching document.

        The whole list is applied atomically to a single document. Returns an
        UpdateSummary.
        """
        pass
