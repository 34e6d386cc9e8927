from contractdiff.comparison.base import BaseComparisonEngine
from contractdiff.comparison.factory import ComparisonEngineFactory
from contractdiff.comparison.heuristic_engine import HeuristicComparisonEngine
from contractdiff.comparison.llm_engine import LlmComparisonEngine
from contractdiff.comparison.models import ComparisonReport, SectionDifference, Severity

__all__ = [
    "BaseComparisonEngine",
    "ComparisonEngineFactory",
    "ComparisonReport",
    "HeuristicComparisonEngine",
    "LlmComparisonEngine",
    "SectionDifference",
    "Severity",
]
