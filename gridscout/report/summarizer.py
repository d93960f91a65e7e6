# gridscout/report/summarizer.py

import math
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from gridscout.models.enums import Confidence
from gridscout.models.evidence import MatchFile
from gridscout.models.report import (
    Champion,
    Composition,
    EvidenceItem,
    Player,
    ScoutReport,
    Tendency,
)
from gridscout.models.series import TeamRecord, extract_team_id
from gridscout.utils.datetime_utils import MalformedTimestamp, parse_timestamp


class Summarizer(Protocol):
    """Turns parsed match files into a report. Swappable per deployment."""

    def summarize(self, team: TeamRecord, files: List[MatchFile], date_range: str) -> ScoutReport:
        ...


def format_date_range(starts: Iterable[Optional[datetime]]) -> str:
    """``YYYY-MM-DD to YYYY-MM-DD`` over the known dates, or "" when there are none."""
    dates = sorted(d for d in starts if d is not None)
    if not dates:
        return ""
    return f"{dates[0]:%Y-%m-%d} to {dates[-1]:%Y-%m-%d}"


def _series_state(payload: Any) -> Dict[str, Any]:
    # End-state files carry the series state either at the root or under a key
    if not isinstance(payload, dict):
        return {}
    for key in ("seriesState", "state", "data"):
        nested = payload.get(key)
        if isinstance(nested, dict) and ("teams" in nested or "games" in nested):
            return nested
    return payload


def _dicts(items: Any) -> List[Dict[str, Any]]:
    """The dict entries of a JSON list; anything else in the file is ignored."""
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return int(value)


def _team_entry(teams: Any, team: TeamRecord) -> Optional[Dict[str, Any]]:
    for entry in _dicts(teams):
        if extract_team_id(entry) == team.id or (entry.get("name") and entry.get("name") == team.name):
            return entry
    return None


def _confidence(sample_size: int) -> Confidence:
    if sample_size >= 5:
        return Confidence.HIGH
    if sample_size >= 3:
        return Confidence.MEDIUM
    return Confidence.LOW


class DefaultSummarizer:
    """Win rate, player pools and common lineups from series-state shaped files."""

    def summarize(self, team: TeamRecord, files: List[MatchFile], date_range: str) -> ScoutReport:
        series_played = 0
        series_won = 0
        games_played = 0
        games_won = 0
        kills = 0
        deaths = 0
        started: List[datetime] = []
        # player name -> character name -> [games, wins]
        pools: Dict[str, Dict[str, List[int]]] = defaultdict(lambda: defaultdict(lambda: [0, 0]))
        lineups: Counter = Counter()

        for match_file in files:
            state = _series_state(match_file.payload)
            if state.get("startedAt"):
                try:
                    started.append(parse_timestamp(str(state["startedAt"])))
                except MalformedTimestamp:
                    pass

            series_team = _team_entry(state.get("teams"), team)
            if series_team is not None:
                series_played += 1
                series_won += 1 if series_team.get("won") else 0

            for game in _dicts(state.get("games")):
                game_team = _team_entry(game.get("teams"), team)
                if game_team is None:
                    continue
                games_played += 1
                won = bool(game_team.get("won"))
                games_won += 1 if won else 0
                picks = []
                for player in _dicts(game_team.get("players")):
                    kills += _count(player.get("kills"))
                    deaths += _count(player.get("deaths"))
                    character = player.get("character")
                    character = character.get("name") if isinstance(character, dict) else None
                    if not character or not isinstance(character, str):
                        continue
                    picks.append(character)
                    name = player.get("name")
                    stats = pools[name if isinstance(name, str) and name else "Unknown"][character]
                    stats[0] += 1
                    stats[1] += 1 if won else 0
                if picks:
                    lineups[" / ".join(sorted(picks))] += 1

        sample_size = len(files)
        confidence = _confidence(sample_size)

        players = []
        for name, characters in sorted(pools.items()):
            champions = [
                Champion(name=character, win_rate=round(wins / played, 2), frequency=played)
                for character, (played, wins) in sorted(characters.items(), key=lambda kv: -kv[1][0])
            ]
            players.append(Player(name=name, champions=champions[:3]))

        compositions = [
            Composition(comp=comp, frequency=count, description=f"Played in {count} of {games_played} games")
            for comp, count in lineups.most_common(3)
        ]

        evidence = [EvidenceItem(metric="Match files parsed", value=str(sample_size), sample_size=f"{sample_size} series")]
        tendencies = []
        if series_played:
            win_rate = series_won / series_played
            evidence.append(
                EvidenceItem(
                    metric="Series win rate",
                    value=f"{win_rate:.0%}",
                    sample_size=f"{series_played} series",
                )
            )
            if win_rate >= 0.6:
                tendencies.append(
                    Tendency(title="Wins most series", evidence=f"Won {series_won} of {series_played} series", confidence=confidence)
                )
            elif win_rate <= 0.4:
                tendencies.append(
                    Tendency(title="Struggles to close series", evidence=f"Won {series_won} of {series_played} series", confidence=confidence)
                )
        if games_played:
            evidence.append(
                EvidenceItem(
                    metric="Game win rate",
                    value=f"{games_won / games_played:.0%}",
                    sample_size=f"{games_played} games",
                )
            )
            evidence.append(
                EvidenceItem(
                    metric="Kills per game",
                    value=f"{kills / games_played:.1f}",
                    sample_size=f"{games_played} games",
                )
            )
            if deaths and kills / deaths >= 1.2:
                tendencies.append(
                    Tendency(
                        title="Fight-heavy playstyle",
                        evidence=f"{kills} kills to {deaths} deaths across {games_played} games",
                        confidence=confidence,
                    )
                )
        if compositions and compositions[0].frequency > 1:
            tendencies.append(
                Tendency(
                    title="Relies on a comfort lineup",
                    evidence=f"{compositions[0].comp} in {compositions[0].frequency} games",
                    confidence=confidence,
                )
            )

        return ScoutReport(
            team_name=team.name,
            sample_size=sample_size,
            date_range=format_date_range(started) or date_range,
            tendencies=tendencies,
            players=players,
            compositions=compositions,
            evidence=evidence,
        )
