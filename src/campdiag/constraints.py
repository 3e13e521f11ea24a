"""Hard-rule checks for camp schedules.

Capacity, cross-division sharing, rainy-day eligibility, field time
windows and division time-slot structure. Each analyzer returns a dict
with errors, warnings, info (lists of issue dicts carrying a "message")
and data (intermediate results for reports and tests).
"""

from campdiag.models import CampData
from campdiag.normalize import format_range
from campdiag.overlap import (
    IGNORED_ACTIVITIES, bunk_division_map, bunk_in_scope, build_field_usages,
    division_slot_counts, find_overlapping_usages, new_result, overlaps,
)


def _bunk_labels(group: list[dict]) -> list[str]:
    return [f"{u['bunk']} (Div {u['division']})" for u in group]


def analyze_capacity_compliance(data: CampData, dates: list[str],
                                divisions_to_check: list[str] | None = None,
                                ) -> dict:
    """Flag overlapping field usages that exceed the field's capacity."""
    result = new_result()
    violations_by_date: dict[str, list[dict]] = {}
    bunk_divs = bunk_division_map(data.divisions)

    for date_key in dates:
        if date_key not in data.days:
            continue
        violations_by_date[date_key] = []
        usage_by_field = build_field_usages(data, date_key, bunk_divs,
                                            divisions_to_check)

        for field_name, usages in usage_by_field.items():
            props = data.activity_properties.get(field_name)
            max_capacity = props.max_capacity if props else 1

            for group in find_overlapping_usages(usages):
                if len(group) <= max_capacity:
                    continue
                time_range = format_range(group[0]["startMin"], group[0]["endMin"])
                violation = {
                    "field": field_name,
                    "count": len(group),
                    "maxCapacity": max_capacity,
                    "bunks": _bunk_labels(group),
                    "timeRange": time_range,
                }
                violations_by_date[date_key].append(violation)
                result["errors"].append({
                    "date": date_key,
                    **violation,
                    "message": (
                        f'Capacity exceeded: "{field_name}" has '
                        f"{len(group)}/{max_capacity} users at {time_range} "
                        f"on {date_key} ({', '.join(violation['bunks'])})"
                    ),
                })

    result["data"] = {"violationsByDate": violations_by_date}
    return result


def analyze_cross_division_conflicts(data: CampData, dates: list[str],
                                     divisions_to_check: list[str] | None = None,
                                     ) -> dict:
    """Flag non-globally-shared fields used by several divisions at once.

    All divisions are grouped together; with a division filter, only
    groups touching an allowed division are reported.
    """
    result = new_result()
    conflicts_by_date: dict[str, list[dict]] = {}
    bunk_divs = bunk_division_map(data.divisions)

    for date_key in dates:
        if date_key not in data.days:
            continue
        conflicts_by_date[date_key] = []
        usage_by_field = build_field_usages(data, date_key, bunk_divs)

        for field_name, usages in usage_by_field.items():
            props = data.activity_properties.get(field_name)
            if props and props.sharing.type == "all":
                continue

            for group in find_overlapping_usages(usages):
                divs = []
                for u in group:
                    if u["division"] not in divs:
                        divs.append(u["division"])
                if len(divs) < 2:
                    continue
                if divisions_to_check is not None and \
                        not any(d in divisions_to_check for d in divs):
                    continue
                time_range = format_range(group[0]["startMin"], group[0]["endMin"])
                conflict = {
                    "field": field_name,
                    "divisions": divs,
                    "bunks": _bunk_labels(group),
                    "timeRange": time_range,
                }
                conflicts_by_date[date_key].append(conflict)
                result["errors"].append({
                    "date": date_key,
                    **conflict,
                    "message": (
                        f'Cross-division conflict: "{field_name}" shared by '
                        f"divisions {', '.join(divs)} at {time_range} on {date_key}"
                    ),
                })

    result["data"] = {"conflictsByDate": conflicts_by_date}
    return result


def analyze_indoor_outdoor(data: CampData, dates: list[str],
                           divisions_to_check: list[str] | None = None) -> dict:
    """Check rainy-day eligibility of the fields and specials used each day."""
    result = new_result()
    props = data.activity_properties
    bunk_divs = bunk_division_map(data.divisions)

    indoor_fields = sorted(k for k, p in props.items()
                           if p.kind == "field" and (p.rainy_day_available or p.is_indoor))
    outdoor_fields = sorted(k for k, p in props.items()
                            if p.kind == "field" and k not in indoor_fields)
    indoor_specials = sorted(k for k, p in props.items()
                             if p.kind == "special" and p.is_indoor)
    rainy_only = sorted(k for k, p in props.items()
                        if p.kind == "special" and p.rainy_day_only)
    outdoor_set = set(outdoor_fields)
    indoor_set = set(indoor_fields) | set(indoor_specials)
    rainy_only_set = set(rainy_only)

    rainy_day_analysis = {}
    for date_key in dates:
        day = data.days.get(date_key)
        if day is None:
            continue
        analysis = {
            "isRainyDay": day.is_rainy_day,
            "outdoorActivitiesUsed": [],
            "indoorActivitiesUsed": [],
            "rainyOnlyUsed": [],
        }
        rainy_day_analysis[date_key] = analysis

        used: set[str] = set()
        for bunk, slots in day.schedule_assignments.items():
            if not bunk_in_scope(bunk, bunk_divs, divisions_to_check):
                continue
            for slot in slots:
                if slot is None or slot.continuation:
                    continue
                for name in (slot.name, slot.field_name):
                    if name and name not in IGNORED_ACTIVITIES:
                        used.add(name)

        for act in sorted(used):
            if act in outdoor_set:
                analysis["outdoorActivitiesUsed"].append(act)
                if day.is_rainy_day:
                    result["errors"].append({
                        "date": date_key,
                        "activity": act,
                        "message": f'Outdoor field "{act}" used on rainy day {date_key}',
                    })
            if act in indoor_set:
                analysis["indoorActivitiesUsed"].append(act)
            if act in rainy_only_set:
                analysis["rainyOnlyUsed"].append(act)
                if not day.is_rainy_day:
                    result["warnings"].append({
                        "date": date_key,
                        "activity": act,
                        "message": (
                            f'Rainy-day-only activity "{act}" used on '
                            f"non-rainy day {date_key}"
                        ),
                    })

    result["data"] = {
        "rainyDayAnalysis": rainy_day_analysis,
        "indoorFields": indoor_fields,
        "outdoorFields": outdoor_fields,
        "rainyOnlySpecials": rainy_only,
    }
    result["info"].append({
        "message": (
            f"Indoor fields: {len(indoor_fields)}, Outdoor fields: "
            f"{len(outdoor_fields)}, Rainy-only specials: {len(rainy_only)}"
        ),
    })
    return result


def analyze_field_availability(data: CampData, dates: list[str],
                               divisions_to_check: list[str] | None = None,
                               ) -> dict:
    """Check field usage against Available/Unavailable time rules.

    A slot overlapping an Unavailable window is an error. When a field has
    Available windows, a slot must sit fully inside one of them.
    """
    result = new_result()
    violations_by_date: dict[str, list[dict]] = {}
    bunk_divs = bunk_division_map(data.divisions)

    rules_by_field = {k: p.time_rules for k, p in data.activity_properties.items()
                      if p.time_rules}

    for date_key in dates:
        day = data.days.get(date_key)
        if day is None:
            continue
        violations_by_date[date_key] = []

        for bunk, slots in day.schedule_assignments.items():
            if not bunk_in_scope(bunk, bunk_divs, divisions_to_check):
                continue
            div_slots = data.slots_for(bunk_divs.get(bunk, ""), date_key)

            for slot_idx, slot in enumerate(slots):
                if slot is None or slot.continuation:
                    continue
                field_name = slot.field_name
                rules = rules_by_field.get(field_name)
                if not rules:
                    continue

                start, end = slot.start_min, slot.end_min
                if (start is None or end is None) and slot_idx < len(div_slots):
                    start = div_slots[slot_idx].start_min
                    end = div_slots[slot_idx].end_min
                if start is None or end is None:
                    continue

                unavailable = [r for r in rules if r.type == "Unavailable"
                               and r.start_min is not None and r.end_min is not None]
                available = [r for r in rules if r.type == "Available"
                             and r.start_min is not None and r.end_min is not None]

                for rule in unavailable:
                    if overlaps(start, end, rule.start_min, rule.end_min):
                        result["errors"].append({
                            "date": date_key,
                            "bunk": bunk,
                            "field": field_name,
                            "slotIdx": slot_idx,
                            "message": (
                                f'"{field_name}" used during unavailable time: '
                                f"{format_range(start, end)} (blocked: "
                                f"{format_range(rule.start_min, rule.end_min)}) "
                                f"by {bunk} on {date_key}"
                            ),
                        })
                        violations_by_date[date_key].append(
                            {"bunk": bunk, "field": field_name, "slotIdx": slot_idx}
                        )

                if available and not any(
                    start >= r.start_min and end <= r.end_min for r in available
                ):
                    result["warnings"].append({
                        "date": date_key,
                        "bunk": bunk,
                        "field": field_name,
                        "slotIdx": slot_idx,
                        "message": (
                            f'"{field_name}" used outside available hours: '
                            f"{format_range(start, end)} by {bunk} on {date_key}"
                        ),
                    })

    result["data"] = {
        "violationsByDate": violations_by_date,
        "fieldsWithTimeRules": sorted(rules_by_field),
    }
    return result


def verify_division_time_mapping(data: CampData, dates: list[str],
                                 divisions_to_check: list[str] | None = None,
                                 ) -> dict:
    """Structural check of each division's time-slot definitions."""
    result = new_result()
    bunk_divs = bunk_division_map(data.divisions)

    for div_name, div in data.divisions.items():
        if divisions_to_check is not None and div_name not in divisions_to_check:
            continue
        global_slots = data.division_times.get(div_name)
        daily_slots = {}
        for date_key in dates:
            day = data.days.get(date_key)
            if day is not None and day.division_times.get(div_name):
                daily_slots[date_key] = day.division_times[div_name]
        if not global_slots and not daily_slots:
            result["errors"].append({
                "division": div_name,
                "message": f'Division "{div_name}" has no time slots defined',
            })
            continue

        for idx, ts in enumerate(global_slots or []):
            if not ts.is_valid:
                result["errors"].append({
                    "division": div_name,
                    "slot": idx,
                    "message": f'Division "{div_name}" slot {idx} missing start/end',
                })
        for date_key, slots in daily_slots.items():
            for idx, ts in enumerate(slots):
                if not ts.is_valid:
                    result["errors"].append({
                        "date": date_key,
                        "division": div_name,
                        "slot": idx,
                        "message": (f'Division "{div_name}" slot {idx} missing '
                                    f"start/end on {date_key}"),
                    })

        for date_key in dates:
            day = data.days.get(date_key)
            if day is None:
                continue
            expected = len(data.slots_for(div_name, date_key))
            for bunk in div.bunks:
                bunk_slots = day.schedule_assignments.get(bunk)
                if bunk_slots is not None and len(bunk_slots) != expected:
                    result["warnings"].append({
                        "date": date_key,
                        "division": div_name,
                        "bunk": bunk,
                        "message": (
                            f'Bunk "{bunk}" has {len(bunk_slots)} slots on '
                            f"{date_key}, expected {expected} for division {div_name}"
                        ),
                    })

    # Bunks scheduled but not listed in any division
    unassigned = set()
    if divisions_to_check is None:
        for date_key in dates:
            day = data.days.get(date_key)
            if day is not None:
                unassigned.update(b for b in day.schedule_assignments
                                  if b not in bunk_divs)
    for bunk in sorted(unassigned):
        result["warnings"].append({
            "bunk": bunk,
            "message": f'Bunk "{bunk}" is scheduled but not in any division',
        })

    result["data"] = {
        "divisionSlotCounts": division_slot_counts(data, dates),
        "unassignedBunks": sorted(unassigned),
    }
    return result
