# gridscout/discovery/team_filter.py

from typing import Iterable, List, Optional

from gridscout.models.series import SeriesCandidate
from gridscout.utils.misc_utils import coerce_id


def filter_series_by_team(
    candidates: Iterable[SeriesCandidate], team_id: Optional[str]
) -> List[SeriesCandidate]:
    """Keeps the series the team plays in.

    The ``allSeries`` filter cannot express team membership, so discovery returns
    every series in the window and membership is checked here. Order is kept and a
    series id seen twice is only kept the first time.
    """
    wanted = coerce_id(team_id)
    if wanted is None:
        return []

    kept: List[SeriesCandidate] = []
    seen = set()
    for candidate in candidates:
        if candidate.id in seen:
            continue
        if wanted in candidate.team_ids:
            seen.add(candidate.id)
            kept.append(candidate)
    return kept
