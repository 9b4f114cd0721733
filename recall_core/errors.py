"""
Exception hierarchy for recall-core.
"""


class RecallCoreError(Exception):
    """Base exception for all recall-core errors."""
    pass


class InvalidInputError(RecallCoreError, ValueError):
    """Raised when an engine input is out of its domain (rating, NaN, S <= 0, ...)."""
    pass


class CategoryNotFoundError(RecallCoreError, LookupError):
    """Raised when a category does not exist or belongs to another user."""

    def __init__(self, category_id: str):
        super().__init__(f"Category not found: {category_id}")
        self.category_id = category_id


class ConfigurationError(RecallCoreError, ValueError):
    """Raised when environment configuration cannot be parsed."""
    pass
