"""Full multi-day schedule diagnostic.

Runs every analyzer over one CampData snapshot and aggregates the results:

    report = run_full_diagnostic(data, scorer=engine.score)
    print(format_diagnostic_report(report))
"""

from datetime import datetime, timezone

from campdiag.config import load_settings
from campdiag.constraints import (
    analyze_capacity_compliance, analyze_cross_division_conflicts,
    analyze_field_availability, analyze_indoor_outdoor,
    verify_division_time_mapping,
)
from campdiag.models import CampData
from campdiag.normalize import is_date_key
from campdiag.overlap import division_slot_counts
from campdiag.stats import (
    RotationScorer, analyze_activity_coverage, analyze_activity_distribution,
    analyze_activity_streaks, analyze_league_distribution,
    analyze_rotation_scoring, verify_historical_counts,
)

SECTION_TITLES = {
    "activity_distribution": "Activity Distribution",
    "capacity_compliance": "Capacity Compliance",
    "cross_division_conflicts": "Cross-Division Conflicts",
    "indoor_outdoor": "Indoor/Outdoor Handling",
    "rotation_scoring": "Rotation Scoring",
    "league_distribution": "League Distribution",
    "historical_counts": "Historical Counts",
    "streak_detection": "Streak Detection",
    "activity_coverage": "Activity Coverage",
    "field_availability": "Field Availability",
    "division_time_mapping": "Division Time Mapping",
}


def select_dates(data: CampData, date_range: dict | None = None) -> list[str]:
    """Sorted YYYY-MM-DD keys, optionally limited to an inclusive range."""
    dates = sorted(d for d in data.days if is_date_key(d))
    if date_range:
        start = date_range.get("start")
        end = date_range.get("end")
        dates = [d for d in dates
                 if (not start or d >= start) and (not end or d <= end)]
    return dates


def run_full_diagnostic(data: CampData,
                        scorer: RotationScorer | None = None,
                        historical_counts: dict | None = None,
                        date_range: dict | None = None,
                        divisions: list[str] | None = None,
                        settings: dict | None = None,
                        verbose: bool = False) -> dict:
    """Run all analyzers and return the aggregated report.

    Returns dict with:
    - summary: {errors, warnings, info} totals over all sections
    - sections: section name -> {errors, warnings, info, data}
    - raw_data: dates analyzed, divisions checked, slot counts
    - generated_at: ISO timestamp
    - error: message, only present if an analyzer raised; sections that
      completed before it are kept
    """
    settings = load_settings(settings)
    if historical_counts is None:
        historical_counts = data.historical_counts

    report = {
        "summary": {"errors": 0, "warnings": 0, "info": 0},
        "sections": {},
        "raw_data": {},
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }

    dates = select_dates(data, date_range)
    report["raw_data"] = {
        "dates": dates,
        "divisions_checked": divisions,
        "division_slot_counts": division_slot_counts(data, dates),
    }
    if verbose:
        print(f"Analyzing {len(dates)} dates from "
              f"{dates[0] if dates else 'none'} to {dates[-1] if dates else 'none'}")

    steps = [
        ("activity_distribution",
         lambda: analyze_activity_distribution(data, dates, settings, divisions)),
        ("capacity_compliance",
         lambda: analyze_capacity_compliance(data, dates, divisions)),
        ("cross_division_conflicts",
         lambda: analyze_cross_division_conflicts(data, dates, divisions)),
        ("indoor_outdoor",
         lambda: analyze_indoor_outdoor(data, dates, divisions)),
        ("rotation_scoring",
         lambda: analyze_rotation_scoring(data, scorer, settings, divisions)),
        ("league_distribution",
         lambda: analyze_league_distribution(data, dates, settings, divisions)),
        ("historical_counts",
         lambda: verify_historical_counts(data, dates, historical_counts,
                                          settings, divisions)),
        ("streak_detection",
         lambda: analyze_activity_streaks(data, dates, settings, divisions)),
        ("activity_coverage",
         lambda: analyze_activity_coverage(data, dates, settings, divisions)),
        ("field_availability",
         lambda: analyze_field_availability(data, dates, divisions)),
        ("division_time_mapping",
         lambda: verify_division_time_mapping(data, dates, divisions)),
    ]

    try:
        for i, (name, step) in enumerate(steps, 1):
            if verbose:
                print(f"  [{i}/{len(steps)}] {SECTION_TITLES[name]}...")
            section = step()
            report["sections"][name] = section
            if verbose:
                print(f"        {len(section['errors'])} errors, "
                      f"{len(section['warnings'])} warnings")
    except Exception as e:
        report["error"] = f"{type(e).__name__}: {e}"
        if verbose:
            print(f"  Diagnostic failed: {report['error']}")

    for section in report["sections"].values():
        report["summary"]["errors"] += len(section["errors"])
        report["summary"]["warnings"] += len(section["warnings"])
        report["summary"]["info"] += len(section["info"])

    if verbose:
        s = report["summary"]
        print(f"Diagnostic summary: {s['errors']} errors, "
              f"{s['warnings']} warnings, {s['info']} info")
    return report


def diagnose_divisions(data: CampData, division_names, **kwargs) -> dict:
    """Full diagnostic restricted to one or more divisions."""
    if isinstance(division_names, str):
        division_names = [division_names]
    return run_full_diagnostic(data, divisions=list(division_names), **kwargs)


def diagnose_date_range(data: CampData, start: str | None, end: str | None,
                        **kwargs) -> dict:
    """Full diagnostic over an inclusive date range."""
    return run_full_diagnostic(data, date_range={"start": start, "end": end}, **kwargs)


def format_diagnostic_report(report: dict) -> str:
    """Format a diagnostic report as text."""
    lines = []
    lines.append("=" * 60)
    lines.append("SCHEDULE DIAGNOSTIC REPORT")
    lines.append("=" * 60)

    dates = report.get("raw_data", {}).get("dates", [])
    if dates:
        lines.append(f"Dates: {dates[0]} to {dates[-1]} ({len(dates)} days)")
    else:
        lines.append("Dates: none")

    s = report["summary"]
    if s["errors"] == 0:
        lines.append(f"\nRESULT: OK ({s['warnings']} warnings, {s['info']} info)")
    else:
        lines.append(f"\nRESULT: {s['errors']} ERRORS "
                     f"({s['warnings']} warnings, {s['info']} info)")

    if report.get("error"):
        lines.append(f"\nDIAGNOSTIC FAILED: {report['error']}")

    for name, section in report["sections"].items():
        if not (section["errors"] or section["warnings"] or section["info"]):
            continue
        lines.append(f"\n--- {SECTION_TITLES.get(name, name).upper()} ---")
        for e in section["errors"]:
            lines.append(f"  ERROR: {e['message']}")
        for w in section["warnings"]:
            lines.append(f"  WARN: {w['message']}")
        for i in section["info"]:
            lines.append(f"  INFO: {i['message']}")

    return "\n".join(lines)
