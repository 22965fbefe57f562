"""
Event Interval Statistics

Per-profile timestamp index and the pooled mean gap between consecutive
events of the same profile, computed with Polars window expressions.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List

import polars as pl

MS_PER_HOUR = 3_600_000

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


class ProfileTimestampIndex:
    """
    Event timestamps grouped by profile.

    Insertion order is irrelevant; timestamps are sorted per profile when
    intervals are computed.
    """

    def __init__(self):
        self._timestamps: Dict[str, List[datetime]] = defaultdict(list)

    def add(self, profile_id: str, moment: datetime) -> None:
        self._timestamps[profile_id].append(moment)

    @property
    def profile_count(self) -> int:
        """Number of distinct profiles with at least one event"""
        return len(self._timestamps)

    @property
    def event_count(self) -> int:
        return sum(len(stamps) for stamps in self._timestamps.values())

    def to_frame(self) -> pl.DataFrame:
        """One row per event: profile_id, ts_ms (epoch milliseconds)"""
        profile_ids: List[str] = []
        stamps: List[int] = []
        for profile_id, moments in self._timestamps.items():
            for moment in moments:
                profile_ids.append(profile_id)
                stamps.append(_epoch_ms(moment))
        return pl.DataFrame(
            {"profile_id": profile_ids, "ts_ms": stamps},
            schema={"profile_id": pl.Utf8, "ts_ms": pl.Int64},
        )

    def intervals_hours(self) -> List[float]:
        """Consecutive same-profile gaps in hours, over all profiles"""
        frame = self.to_frame()
        if frame.height == 0:
            return []

        gaps = (
            frame.sort(["profile_id", "ts_ms"])
            .with_columns(pl.col("ts_ms").diff().over("profile_id").alias("gap_ms"))
            .drop_nulls("gap_ms")
        )
        return [gap / MS_PER_HOUR for gap in gaps["gap_ms"].to_list()]

    def average_interval_hours(self) -> float:
        """
        Mean of all consecutive gaps pooled across profiles.

        Profiles with more events weigh more. Returns 0 when no profile has
        two or more events.
        """
        intervals = self.intervals_hours()
        if not intervals:
            return 0.0
        return sum(intervals) / len(intervals)
