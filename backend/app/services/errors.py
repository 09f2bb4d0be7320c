"""
errors.py - Exceptions raised by the record store and report services.

The API layer maps them to HTTP status codes (404, 409, 422).
"""


class RecordNotFoundError(LookupError):
    """A player, match or participation id does not exist."""

    def __init__(self, entity: str, record_id: int):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity.capitalize()} {record_id} not found")


class DuplicateRecordError(ValueError):
    """A write would violate a uniqueness rule (national id, match/player pair)."""


class ComparisonSelectionError(ValueError):
    """A comparison request selects too few or too many players."""


class InvalidRecordError(ValueError):
    """A write violates a NOT NULL, foreign-key or check constraint."""
