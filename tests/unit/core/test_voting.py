"""
Tests for rank-weighted voting.
"""

import pytest

from textid.core.base import ENCODING, LANGUAGE
from textid.core.codes import Language
from textid.core.voting import MAX_VOTES, Election, elect

from tests.conftest import encoding_results, language_results


class TestElection:
    """Test the weighted vote count."""

    def test_rank_weights(self):
        """Test that rank r earns max_rank + 1 - r points."""
        election = Election(max_rank=3)
        election.add("a", 1)
        election.add("b", 2)
        election.add("c", 3)

        assert election.results() == [
            ("a", pytest.approx(3 / 6)),
            ("b", pytest.approx(2 / 6)),
            ("c", pytest.approx(1 / 6)),
        ]

    def test_votes_accumulate(self):
        """Test that repeated values add up."""
        election = Election(max_rank=2)
        election.add("x", 2)
        election.add("x", 2)
        election.add("y", 1)

        values = [value for value, _ in election.results()]
        assert values == ["x", "y"]
        assert len(election) == 3

    def test_ties_break_on_text(self):
        """Test that equal scores are ordered by the value's text."""
        election = Election()
        election.add("zulu", 1)
        election.add("alpha", 1)

        assert [value for value, _ in election.results()] == ["alpha", "zulu"]

    def test_ranks_beyond_limit_ignored(self):
        """Test that hypotheses deeper than max_rank do not vote."""
        election = Election(max_rank=1)
        election.add("a", 2)
        assert election.results() == []

    def test_weights(self):
        """Test that weights scale points."""
        election = Election(max_rank=1)
        election.add("a", 1, weight=3.0)
        election.add("b", 1, weight=1.0)
        assert election.results()[0] == ("a", pytest.approx(0.75))

    def test_invalid_max_rank(self):
        """Test that at least one rank must count."""
        with pytest.raises(ValueError):
            Election(max_rank=0)


class TestElect:
    """Test electing one feature across analyzers."""

    def test_elect_encoding(self):
        """Test the consensus across two ranked analyzers."""
        results = {
            "first": encoding_results(("utf-8", 0.9), ("latin-1", 0.1)),
            "second": encoding_results(("latin-1", 0.6), ("utf-8", 0.4)),
            "third": encoding_results(("utf-8", 1.0)),
        }

        elected = elect(ENCODING, results)

        assert [analysis[ENCODING] for analysis in elected] == ["utf-8", "latin-1"]
        assert sum(analysis.score for analysis in elected) == pytest.approx(1.0)

    def test_elect_skips_other_features(self):
        """Test that analyses without the feature do not vote."""
        results = {
            "lang": language_results(("fr", 0.7)),
            "enc": encoding_results(("utf-8", 1.0)),
        }

        elected = elect(LANGUAGE, results, max_rank=MAX_VOTES)

        assert len(elected) == 1
        assert elected[0][LANGUAGE] == Language.by_text("fr")
        assert elected[0].score == pytest.approx(1.0)

    def test_elect_nothing(self):
        """Test that no opinions elect nothing."""
        assert elect(ENCODING, {"silent": []}) == []
