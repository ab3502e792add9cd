"""Ranking and shortlist selection of scored candidates."""

from typing import List, Tuple

from ..models.common import CandidateScore


DEFAULT_SHORTLIST_SIZE = 5


def ranking_key(candidate: CandidateScore) -> Tuple[int, int, int, str]:
    """Final score desc, then skill match desc, then activity desc, then identity asc."""
    scores = candidate.scores
    return (-scores.final, -scores.skill_match, -scores.activity, candidate.identity.lower())


def rank_candidates(scored: List[CandidateScore]) -> List[CandidateScore]:
    """Return candidates in a deterministic best-first order."""
    return sorted(scored, key=ranking_key)


def select_shortlist(ranked: List[CandidateScore], k: int = DEFAULT_SHORTLIST_SIZE) -> List[CandidateScore]:
    """Take the top ``k`` of an already ranked list."""
    if k < 1:
        raise ValueError("Shortlist size must be at least 1")
    return ranked[:k]
