class ComparisonError(Exception):
    """Raised when a comparison cannot be produced."""


class ComparisonValidationError(ComparisonError):
    """Raised when a comparison result fails domain validation."""


class ComparisonNetworkError(ComparisonError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
