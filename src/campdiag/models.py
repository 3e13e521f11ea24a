"""Data models for the camp schedule diagnostic engine.

Raw schedule data arrives as loosely shaped dicts (camelCase keys, some
legacy aliases). Each model has a ``from_raw`` constructor that validates
and normalizes one item; malformed items become ``None`` or are dropped
rather than raising, so a single bad slot never aborts a diagnostic run.
"""

from dataclasses import dataclass, field
from typing import Optional

from campdiag.normalize import normalize_name, parse_time_to_minutes, rule_kind


def _first(raw: dict, *keys, default=None):
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


def _minutes(raw: dict, min_keys: tuple, time_keys: tuple) -> Optional[int]:
    value = _first(raw, *min_keys)
    if value is None:
        value = _first(raw, *time_keys)
    return parse_time_to_minutes(value)


@dataclass
class TimeSlot:
    """One indexed time interval within a division's day."""
    start_min: Optional[int]
    end_min: Optional[int]
    label: str = ""

    @property
    def is_valid(self) -> bool:
        return self.start_min is not None and self.end_min is not None

    @classmethod
    def from_raw(cls, raw) -> "TimeSlot":
        if not isinstance(raw, dict):
            return cls(None, None)
        return cls(
            start_min=_minutes(raw, ("startMin", "start_min"), ("start", "startTime")),
            end_min=_minutes(raw, ("endMin", "end_min"), ("end", "endTime")),
            label=str(_first(raw, "label", "event", default="")),
        )


@dataclass
class SlotRecord:
    """A bunk's assignment for one time slot."""
    field: Optional[str] = None
    activity: Optional[str] = None
    continuation: bool = False
    is_transition: bool = False
    is_league: bool = False
    start_min: Optional[int] = None
    end_min: Optional[int] = None

    @property
    def name(self) -> Optional[str]:
        """Normalized activity name (falls back to the field)."""
        return normalize_name(self.activity or self.field)

    @property
    def field_name(self) -> Optional[str]:
        """Normalized field name (falls back to the activity)."""
        return normalize_name(self.field or self.activity)

    @property
    def counts_as_occurrence(self) -> bool:
        return not self.continuation and not self.is_transition

    @classmethod
    def from_raw(cls, raw) -> Optional["SlotRecord"]:
        if isinstance(raw, str):
            return cls(field=raw) if raw.strip() else None
        if not isinstance(raw, dict):
            return None
        fld = raw.get("field")
        if isinstance(fld, dict):
            # Some exports nest the field as {"name": ...}
            fld = fld.get("name")
        return cls(
            field=str(fld) if fld else None,
            activity=_first(raw, "_activity", "activity"),
            continuation=bool(raw.get("continuation")),
            is_transition=bool(_first(raw, "_isTransition", "isTransition", default=False)),
            is_league=bool(_first(raw, "_isLeague", "isLeague", default=False)),
            start_min=parse_time_to_minutes(_first(raw, "_startMin", "startMin")),
            end_min=parse_time_to_minutes(_first(raw, "_endMin", "endMin")),
        )


@dataclass
class LeagueMatchup:
    """A scheduled pairing of two teams at a field."""
    team1: str
    team2: str
    field: str = ""

    @classmethod
    def from_raw(cls, raw) -> Optional["LeagueMatchup"]:
        if isinstance(raw, (list, tuple)) and len(raw) >= 2:
            return cls(str(raw[0]), str(raw[1]), str(raw[2]) if len(raw) > 2 else "")
        if not isinstance(raw, dict):
            return None
        t1 = _first(raw, "team1", "teamA")
        t2 = _first(raw, "team2", "teamB")
        if not t1 or not t2:
            return None
        return cls(str(t1), str(t2), str(raw.get("field") or ""))


@dataclass
class LeagueSlot:
    """League games played by a division during one slot."""
    league_name: str
    matchups: list[LeagueMatchup] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw) -> Optional["LeagueSlot"]:
        if not isinstance(raw, dict) or not isinstance(raw.get("matchups"), list):
            return None
        name = _first(raw, "leagueName", "league_name", "sport", default="Unknown League")
        matchups = [m for m in (LeagueMatchup.from_raw(r) for r in raw["matchups"]) if m]
        return cls(league_name=str(name), matchups=matchups)


def _time_slot_table(raw) -> dict[str, list[TimeSlot]]:
    if not isinstance(raw, dict):
        return {}
    table = {}
    for div_name, slots in raw.items():
        if isinstance(slots, list):
            table[str(div_name)] = [TimeSlot.from_raw(s) for s in slots]
    return table


@dataclass
class DaySchedule:
    """All assignments for one calendar date."""
    date_key: str
    schedule_assignments: dict[str, list[Optional[SlotRecord]]] = field(default_factory=dict)
    league_assignments: dict[str, dict[str, LeagueSlot]] = field(default_factory=dict)
    division_times: dict[str, list[TimeSlot]] = field(default_factory=dict)
    is_rainy_day: bool = False

    @classmethod
    def from_raw(cls, date_key: str, raw) -> "DaySchedule":
        if not isinstance(raw, dict):
            return cls(date_key=date_key)

        assignments: dict[str, list[Optional[SlotRecord]]] = {}
        raw_assignments = raw.get("scheduleAssignments")
        if not isinstance(raw_assignments, dict):
            raw_assignments = {}
        for bunk, slots in raw_assignments.items():
            if isinstance(slots, list):
                assignments[str(bunk)] = [SlotRecord.from_raw(s) for s in slots]

        leagues: dict[str, dict[str, LeagueSlot]] = {}
        raw_leagues = raw.get("leagueAssignments") or {}
        if isinstance(raw_leagues, dict):
            for div_name, by_slot in raw_leagues.items():
                if not isinstance(by_slot, dict):
                    continue
                parsed = {}
                for slot_idx, league_raw in by_slot.items():
                    ls = LeagueSlot.from_raw(league_raw)
                    if ls:
                        parsed[str(slot_idx)] = ls
                leagues[str(div_name)] = parsed

        times = _time_slot_table(raw.get("unifiedTimes"))
        times.update(_time_slot_table(raw.get("divisionTimes")))

        return cls(
            date_key=date_key,
            schedule_assignments=assignments,
            league_assignments=leagues,
            division_times=times,
            is_rainy_day=raw.get("isRainyDay") is True or raw.get("rainyDayMode") is True,
        )


@dataclass
class Division:
    """A collection of bunks sharing a daily time-slot structure."""
    name: str
    bunks: list[str] = field(default_factory=list)


@dataclass
class SharingRule:
    type: str = "none"  # "none", "custom" or "all"
    capacity: Optional[int] = None


@dataclass
class TimeRule:
    type: str  # "Available" or "Unavailable"
    start_min: Optional[int]
    end_min: Optional[int]

    @classmethod
    def from_raw(cls, raw) -> Optional["TimeRule"]:
        if not isinstance(raw, dict):
            return None
        kind = rule_kind(raw)
        if kind is None:
            return None
        return cls(
            type=kind,
            start_min=_minutes(raw, ("startMin",), ("start", "startTime")),
            end_min=_minutes(raw, ("endMin",), ("end", "endTime")),
        )


@dataclass
class ActivityProperties:
    """Configuration for one field or special activity."""
    name: str
    kind: str = "field"  # "field" or "special"
    sharing: SharingRule = field(default_factory=SharingRule)
    sharable: bool = False  # legacy flag, means capacity 2
    is_indoor: bool = False
    rainy_day_available: bool = False
    rainy_day_only: bool = False
    time_rules: list[TimeRule] = field(default_factory=list)

    @property
    def key(self) -> str:
        return normalize_name(self.name) or ""

    @property
    def max_capacity(self) -> int:
        """Maximum number of bunks that may use this at once."""
        if self.sharing.type == "all":
            return 999
        if self.sharing.type == "custom":
            return self.sharing.capacity or 2
        if self.sharing.capacity:
            return self.sharing.capacity
        if self.sharable:
            return 2
        return 1

    @classmethod
    def from_raw(cls, raw, kind: str = "field") -> Optional["ActivityProperties"]:
        if not isinstance(raw, dict) or not raw.get("name"):
            return None
        sw = raw.get("sharableWith") or {}
        capacity = sw.get("capacity") if isinstance(sw, dict) else None
        try:
            capacity = int(capacity) if capacity is not None else None
        except (TypeError, ValueError):
            capacity = None
        sharing = SharingRule(
            type=str(sw.get("type", "none")) if isinstance(sw, dict) else "none",
            capacity=capacity,
        )
        rules = [r for r in (TimeRule.from_raw(x) for x in raw.get("timeRules") or []) if r]
        return cls(
            name=str(raw["name"]),
            kind=kind,
            sharing=sharing,
            sharable=bool(raw.get("sharable")),
            is_indoor=raw.get("isIndoor") is True,
            rainy_day_available=raw.get("rainyDayAvailable") is True,
            rainy_day_only=raw.get("rainyDayOnly") is True,
            time_rules=rules,
        )


@dataclass
class CampData:
    """Everything a diagnostic run reads: the Data Provider payload."""
    days: dict[str, DaySchedule] = field(default_factory=dict)
    divisions: dict[str, Division] = field(default_factory=dict)
    division_times: dict[str, list[TimeSlot]] = field(default_factory=dict)
    activity_properties: dict[str, ActivityProperties] = field(default_factory=dict)
    historical_counts: dict[str, dict[str, int]] = field(default_factory=dict)

    def slots_for(self, division: str, date_key: str) -> list[TimeSlot]:
        """Time-slot definitions for a division, preferring the day's own."""
        day = self.days.get(date_key)
        if day and division in day.division_times:
            return day.division_times[division]
        return self.division_times.get(division, [])

    @classmethod
    def from_raw(cls, raw: dict) -> "CampData":
        divisions = {}
        for name, ddata in (raw.get("divisions") or {}).items():
            bunks = ddata.get("bunks", []) if isinstance(ddata, dict) else ddata
            divisions[str(name)] = Division(str(name), [str(b) for b in bunks or []])

        props: dict[str, ActivityProperties] = {}
        for kind, key in (("field", "fields"), ("special", "special_activities")):
            for item in raw.get(key) or []:
                ap = ActivityProperties.from_raw(item, kind=kind)
                if ap:
                    props[ap.key] = ap

        days = {
            str(d): DaySchedule.from_raw(str(d), ddata)
            for d, ddata in (raw.get("days") or {}).items()
        }

        counts: dict[str, dict[str, int]] = {}
        for bunk, acts in (raw.get("historical_counts") or {}).items():
            if isinstance(acts, dict):
                counts[str(bunk)] = {
                    str(a): int(c) for a, c in acts.items()
                    if isinstance(c, (int, float)) and not isinstance(c, bool)
                }

        return cls(
            days=days,
            divisions=divisions,
            division_times=_time_slot_table(raw.get("division_times")),
            activity_properties=props,
            historical_counts=counts,
        )
