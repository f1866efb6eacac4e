"""
Error taxonomy for the invoice pipeline

- ConfigurationError: required setting missing (fatal, raised at construction)
- InferenceError: model backend failed or returned unusable content
- CacheError: category cache store unavailable (caught inside the cache layer)
- ValidationError: stage payload missing required fields
- ExtractionError: expense analysis of an uploaded object failed
"""


class FinanceInsightError(Exception):
    """Base class for all pipeline errors"""


class ConfigurationError(FinanceInsightError):
    """A required setting is missing or invalid"""


class InferenceError(FinanceInsightError):
    """Inference backend call failed or returned unparseable content"""


class CacheError(FinanceInsightError):
    """Category cache store is unavailable"""


class ValidationError(FinanceInsightError):
    """Stage payload is missing required fields"""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class ExtractionError(FinanceInsightError):
    """Expense analysis failed"""
