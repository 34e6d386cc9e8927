from abc import ABC, abstractmethod

from contractdiff.comparison.models import ComparisonReport


class BaseComparisonEngine(ABC):
    """Contract for all comparison engines."""

    name: str = ""

    @abstractmethod
    def compare(self, standard_text: str, third_party_text: str) -> ComparisonReport:
        """Compare a third-party contract against the owner's standard one.

        Args:
            standard_text: Extracted text of the standard document.
            third_party_text: Extracted text of the document under review.

        Returns:
            ComparisonReport whose overall_risk is the highest section severity.

        Raises:
            ComparisonError: on any failure.
        """
