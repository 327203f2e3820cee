"""
Rank-weighted voting over analyzer hypotheses.

Used when no trained model exists for a category. Each hypothesis at rank
r earns ``weight * (max_rank + 1 - r)`` points for its value; scores are
normalized to sum to one.
"""

from collections import defaultdict
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from textid.core.base import UNKNOWN, Analysis, AnalysisFeature

MAX_VOTES = 5


class Election:
    """Collects ranked votes and elects values by total weighted score."""

    def __init__(self, max_rank: int = MAX_VOTES):
        if max_rank < 1:
            raise ValueError("max_rank must be at least 1")
        self.max_rank = max_rank
        self._votes: List[Tuple[Any, int, float]] = []

    def add(self, value: Any, rank: int, weight: float = 1.0) -> None:
        self._votes.append((value, rank, weight))

    def results(self) -> List[Tuple[Any, float]]:
        """
        Elected values, best first.

        Equal scores are ordered by the value's text form.
        """
        scores: Dict[Any, float] = defaultdict(float)
        total = 0.0
        for value, rank, weight in self._votes:
            if rank > self.max_rank:
                continue
            points = weight * (self.max_rank + 1 - rank)
            scores[value] += points
            total += points

        if total <= 0:
            return []
        return sorted(
            ((value, score / total) for value, score in scores.items()),
            key=lambda item: (-item[1], str(item[0])),
        )

    def __len__(self) -> int:
        return len(self._votes)


def elect(feature: AnalysisFeature, results: Mapping[str, Sequence[Analysis]],
          max_rank: int = MAX_VOTES) -> List[Analysis]:
    """Elect values of one feature from several analyzers' ranked results."""
    election = Election(max_rank)
    for analyses in results.values():
        for rank, analysis in enumerate(analyses, start=1):
            value = analysis.get(feature)
            if value is not None and value is not UNKNOWN:
                election.add(value, rank)
    return [Analysis({feature: value}, score=min(score, 1.0)) for value, score in election.results()]
