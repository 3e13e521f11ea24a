"""Config loading for the camp schedule diagnostic engine.

A camp file is a YAML document holding the divisions, time-slot
definitions, field/special-activity properties, the historical counts
cache and the daily schedules. It may also carry a ``settings`` mapping
that overrides the diagnostic thresholds in DEFAULT_SETTINGS.
"""

from pathlib import Path

import yaml

from campdiag.models import CampData
from campdiag.normalize import is_date_key

DEFAULT_SETTINGS = {
    # Streaks: flag an activity done more than this many days in a row
    "max_consecutive_days_same_activity": 2,
    # Distribution: ideal gap (days) between repeats of the same activity
    "min_days_between_same_activity": 2,
    # Coverage: warn if a bunk has tried less than this share of activities
    "activity_coverage_warning_threshold": 0.5,
    # Distribution: max diff between a bunk's most/least done activity
    "max_activity_frequency_imbalance": 3,
    # Historical counts: tolerated |stored - calculated|
    "count_mismatch_tolerance": 2,
    # Leagues: tolerated max-min games played within one league
    "league_game_imbalance": 2,
    # Leagues: report pairs that met more often than this
    "repeat_matchup_limit": 2,
    # Rotation: warn when more than this share of activities is blocked
    "blocked_activity_ratio": 0.5,
}


def load_settings(overrides: dict | None = None) -> dict:
    """Merge threshold overrides onto DEFAULT_SETTINGS."""
    settings = dict(DEFAULT_SETTINGS)
    for key, value in (overrides or {}).items():
        if key not in DEFAULT_SETTINGS:
            print(f"Warning: unknown diagnostic setting '{key}' ignored")
            continue
        settings[key] = value
    return settings


def load_config(path: str | Path) -> dict:
    """Load a camp YAML file, returning structured data.

    Returns dict with:
    - data: CampData (days, divisions, time slots, activity properties,
      historical counts)
    - settings: diagnostic thresholds
    - skipped_dates: day keys dropped because they are not YYYY-MM-DD
    """
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping at top level")

    # YAML turns unquoted 2024-07-01 keys into dates
    days = {str(k): v for k, v in (raw.get("days") or {}).items()}
    skipped = sorted(k for k in days if not is_date_key(k))
    if skipped:
        print(f"Warning: skipping {len(skipped)} day(s) with malformed date keys: "
              f"{', '.join(skipped)}")
    raw["days"] = {k: v for k, v in days.items() if is_date_key(k)}

    return {
        "data": CampData.from_raw(raw),
        "settings": load_settings(raw.get("settings")),
        "skipped_dates": skipped,
    }
