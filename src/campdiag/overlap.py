"""Interval overlap grouping and shared lookups for the analyzers."""

from typing import Optional

from campdiag.models import CampData, Division

# Labels that are not real activities (meals, prayers, logistics)
IGNORED_ACTIVITIES = frozenset([
    "free", "lunch", "snacks", "dismissal", "regroup", "free play",
    "mincha", "davening", "lineup", "bus", "transition", "buffer",
    "transition/buffer",
])

# Labels excluded from field capacity and cross-division checks
IGNORED_FIELDS = frozenset([
    "free", "no field", "no game", "unassigned league",
    "lunch", "snacks", "dismissal", "regroup", "free play",
    "mincha", "davening", "lineup", "bus", "swim", "pool",
    "canteen", "gameroom", "game room",
])


def new_result() -> dict:
    """Empty analyzer result."""
    return {"errors": [], "warnings": [], "info": [], "data": {}}


def division_slot_counts(data: CampData, dates: list[str]) -> dict[str, int]:
    """division -> number of defined time slots.

    Global definitions win; a day's own table fills in a division that has
    no global definition.
    """
    counts = {d: len(s) for d, s in data.division_times.items()}
    for date_key in dates:
        day = data.days.get(date_key)
        if day is None:
            continue
        for div_name, slots in day.division_times.items():
            counts.setdefault(div_name, len(slots))
    return counts


def overlaps(start1, end1, start2, end2) -> bool:
    """Half-open interval overlap: [start1, end1) and [start2, end2)."""
    return start1 < end2 and start2 < end1


def find_overlapping_usages(usages: list[dict]) -> list[list[dict]]:
    """Partition usages into groups of time-overlapping usages.

    Each usage is a dict with at least startMin/endMin. Grouping is
    single-seed: the first unprocessed usage seeds a group and absorbs every
    other unprocessed usage that overlaps the seed itself. It is not a
    transitive closure, so for a chain A-B-C where A and C do not overlap,
    the result depends on input order. Every usage lands in exactly one
    group; groups of one are included.
    """
    groups = []
    processed: set[int] = set()

    for i, seed in enumerate(usages):
        if i in processed:
            continue
        group = [seed]
        processed.add(i)
        for j, other in enumerate(usages):
            if j in processed:
                continue
            if overlaps(seed["startMin"], seed["endMin"],
                        other["startMin"], other["endMin"]):
                group.append(other)
                processed.add(j)
        groups.append(group)

    return groups


def find_division_for_bunk(bunk: str, divisions: dict[str, Division]) -> Optional[str]:
    """Linear scan for the division that lists this bunk."""
    for div_name, div in divisions.items():
        if str(bunk) in div.bunks:
            return div_name
    return None


def bunk_division_map(divisions: dict[str, Division]) -> dict[str, str]:
    """bunk -> division, first listing wins (matches find_division_for_bunk)."""
    mapping: dict[str, str] = {}
    for div_name, div in divisions.items():
        for bunk in div.bunks:
            mapping.setdefault(bunk, div_name)
    return mapping


def bunk_in_scope(bunk: str, bunk_divs: dict[str, str],
                  divisions_to_check: list[str] | None) -> bool:
    """True if no division filter is set or the bunk's division is allowed."""
    if divisions_to_check is None:
        return True
    return bunk_divs.get(bunk) in divisions_to_check


def build_field_usages(data: CampData, date_key: str, bunk_divs: dict[str, str],
                       divisions_to_check: list[str] | None = None,
                       ) -> dict[str, list[dict]]:
    """field -> usages for one date, annotated with the slot's time window.

    Continuation and league slots, ignored labels, bunks without a
    division and slots with no matching time definition are skipped.
    """
    day = data.days.get(date_key)
    usage_by_field: dict[str, list[dict]] = {}
    if day is None:
        return usage_by_field

    for bunk, slots in day.schedule_assignments.items():
        div_name = bunk_divs.get(bunk)
        if not div_name:
            continue
        if divisions_to_check is not None and div_name not in divisions_to_check:
            continue
        div_slots = data.slots_for(div_name, date_key)

        for slot_idx, slot in enumerate(slots):
            if slot is None or slot.continuation or slot.is_league:
                continue
            field_name = slot.field_name
            if not field_name or field_name in IGNORED_FIELDS:
                continue
            if slot_idx >= len(div_slots) or not div_slots[slot_idx].is_valid:
                continue
            ts = div_slots[slot_idx]
            usage_by_field.setdefault(field_name, []).append({
                "bunk": bunk,
                "division": div_name,
                "startMin": ts.start_min,
                "endMin": ts.end_min,
                "slotIdx": slot_idx,
            })

    return usage_by_field
