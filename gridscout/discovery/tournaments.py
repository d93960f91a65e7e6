"""
Tournament whitelist for the Cloud9 x JetBrains hackathon dataset.

The dataset covers the past two years of these tournaments only, so title-based
tournament listings are restricted to them unless ``TOURNAMENT_WHITELIST_ENABLED``
is switched off. ``TOURNAMENT_IDS`` replaces the built-in list.
"""

from typing import Iterable, List, Optional, TypeVar

from gridscout.config.settings import AppSettings

HACKATHON_TOURNAMENT_IDS_LOL: List[str] = [
    # LCK
    "775192",  # Regional Qualifier 2024
    "758024",  # Spring 2024
    "774794",  # Summer 2024
    "825490",  # Split 2 2025
    "826679",  # Split 3 2025
    "775623",  # LCK Cup 2025
    # LCS
    "758043",  # Spring 2024
    "774888",  # Summer 2024
    # LEC
    "758077",  # Spring 2024
    "774622",  # Summer 2024
    "758041",  # Winter 2024
    "775075",  # Season Finals 2024
    "825468",  # Spring 2025
    "826906",  # Summer 2025
    "775513",  # Winter 2025
    # LPL
    "775167",  # Regional Qualifier 2024
    "758054",  # Spring 2024
    "774845",  # Summer 2024
    "775662",  # Split 1 2025
    "825450",  # Split 2 2025
    "826789",  # Split 3 2025
    # LTA North
    "775631",  # Split 1 2025
    "825567",  # Split 2 2025
    "826763",  # Split 3 2025
    # LTA South
    "775636",  # Split 1 2025
    "825600",  # Split 2 2025
    "826775",  # Split 3 2025
    # LTA Cross-Conference
    "775878",  # Split 1 2025
    "826782",  # Regional Championship 2025
]

HACKATHON_TOURNAMENT_IDS_VAL: List[str] = [
    "757371",  # VCT Americas Kickoff 2024
    "757481",  # VCT Americas Stage 1 2024
    "774782",  # VCT Americas Stage 2 2024
    "775516",  # VCT Americas Kickoff 2025
    "800675",  # VCT Americas Stage 1 2025
    "826660",  # VCT Americas Stage 2 2025
    "757614",  # Masters Madrid
]

HACKATHON_TOURNAMENT_IDS_ALL: List[str] = HACKATHON_TOURNAMENT_IDS_LOL + HACKATHON_TOURNAMENT_IDS_VAL

T = TypeVar("T")


def get_default_tournament_ids(app_settings: Optional[AppSettings] = None) -> List[str]:
    """The whitelist in effect: the ``TOURNAMENT_IDS`` override, else the built-in list."""
    if app_settings is not None and app_settings.tournament_id_overrides:
        return app_settings.tournament_id_overrides
    return list(HACKATHON_TOURNAMENT_IDS_ALL)


def apply_whitelist(tournaments: Iterable[T], app_settings: AppSettings) -> List[T]:
    """Keeps tournaments (anything with an ``id``) that are on the whitelist.

    Returns everything unchanged when the whitelist is disabled.
    """
    tournaments = list(tournaments)
    if not app_settings.tournament_whitelist_enabled:
        return tournaments
    allowed = set(get_default_tournament_ids(app_settings))
    return [t for t in tournaments if getattr(t, "id", None) in allowed]
