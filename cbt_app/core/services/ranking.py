"""Service for ranking completed attempts on a test leaderboard."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from fractions import Fraction

from cbt_app.core.errors import InvalidInput
from cbt_app.core.models import (
    MEDALS_BY_RANK,
    LeaderboardEntry,
    Medal,
    RankChange,
    RankedEntry,
)


@dataclass(slots=True, frozen=True)
class ParticipantSummary:
    """Aggregate statistics shown to the test creator."""

    submissions: int
    average_score: float | None
    disqualified: int


def participant_key(participant_identity: str) -> str:
    """Normalize a user id, name or email so snapshots match across renders."""
    return participant_identity.strip().casefold()


def medal_for_rank(rank: int) -> Medal | None:
    return MEDALS_BY_RANK.get(rank)


class RankingEngine:
    """Produces a deterministic total order over one test's leaderboard entries."""

    def rank(
        self,
        entries: Iterable[LeaderboardEntry],
        previous_ranks: Mapping[str, int] | None = None,
    ) -> list[RankedEntry]:
        """Rank entries and classify their movement against ``previous_ranks``.

        Order: eligible entries before disqualified ones, then score ratio
        descending, then earlier completion, then attempt id.
        """
        ordered = sorted(entries, key=self._sort_key)
        previous = previous_ranks or {}

        ranked: list[RankedEntry] = []
        for position, entry in enumerate(ordered, start=1):
            prior = previous.get(participant_key(entry.participant_identity))
            ranked.append(
                RankedEntry(
                    entry=entry,
                    rank=position,
                    rank_change=_classify_change(position, prior),
                )
            )
        return ranked

    @staticmethod
    def _sort_key(entry: LeaderboardEntry) -> tuple[bool, Fraction, object, str]:
        if entry.total_questions <= 0:
            raise InvalidInput(f"Attempt {entry.attempt_id} has no questions and cannot be ranked.")
        ratio = Fraction(entry.score, entry.total_questions)
        return (entry.disqualified, -ratio, entry.completed_at, entry.attempt_id)

    @staticmethod
    def snapshot(ranked: Iterable[RankedEntry]) -> dict[str, int]:
        """Map each participant to their best rank, for the next ``rank`` call."""
        ranks: dict[str, int] = {}
        for item in ranked:
            key = participant_key(item.entry.participant_identity)
            if key not in ranks or item.rank < ranks[key]:
                ranks[key] = item.rank
        return ranks

    @staticmethod
    def summarize(entries: Iterable[LeaderboardEntry]) -> ParticipantSummary:
        entries = list(entries)
        eligible = [entry for entry in entries if not entry.disqualified]
        average = None
        if eligible:
            average = sum(entry.score for entry in eligible) / len(eligible)
        return ParticipantSummary(
            submissions=len(entries),
            average_score=average,
            disqualified=len(entries) - len(eligible),
        )


def _classify_change(rank: int, previous_rank: int | None) -> RankChange:
    if previous_rank is None:
        return RankChange.NEW
    if rank < previous_rank:
        return RankChange.UP
    if rank > previous_rank:
        return RankChange.DOWN
    return RankChange.SAME


ranking_engine = RankingEngine()
