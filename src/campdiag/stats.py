"""Fairness and statistics analyzers for camp schedules.

Activity distribution, rotation scoring, league fairness, historical
count reconciliation, streaks and coverage. These look across the whole
date range rather than at one day at a time.
"""

import math
from collections import defaultdict
from datetime import timedelta
from typing import Callable, Optional

from campdiag.config import load_settings
from campdiag.models import CampData
from campdiag.normalize import normalize_name, parse_date
from campdiag.overlap import (
    IGNORED_ACTIVITIES, bunk_division_map, bunk_in_scope, new_result,
)

# score(bunk, activity, division, all_activities) -> number, math.inf = blocked
RotationScorer = Callable[[str, str, str, list[str]], Optional[float]]


def _activities_by_date(data: CampData, dates: list[str],
                        divisions_to_check: list[str] | None,
                        ) -> dict[str, dict[str, list[str]]]:
    """bunk -> date -> activities started that day, in slot order.

    Continuation and transition slots and ignored labels are skipped. An
    activity appears once per occurrence, so a same-day repeat shows twice.
    """
    bunk_divs = bunk_division_map(data.divisions)
    by_bunk: dict[str, dict[str, list[str]]] = {}
    for date_key in sorted(dates):
        day = data.days.get(date_key)
        if day is None:
            continue
        for bunk, slots in day.schedule_assignments.items():
            if not bunk_in_scope(bunk, bunk_divs, divisions_to_check):
                continue
            acts = by_bunk.setdefault(bunk, {}).setdefault(date_key, [])
            for slot in slots:
                if slot is None or not slot.counts_as_occurrence:
                    continue
                name = slot.name
                if name and name not in IGNORED_ACTIVITIES:
                    acts.append(name)
    return by_bunk


def analyze_activity_distribution(data: CampData, dates: list[str],
                                  settings: dict | None = None,
                                  divisions_to_check: list[str] | None = None,
                                  ) -> dict:
    """Check how evenly each bunk's activities are spread over the days."""
    settings = load_settings(settings)
    min_gap = settings["min_days_between_same_activity"]
    max_imbalance = settings["max_activity_frequency_imbalance"]
    result = new_result()

    bunk_activity_dates: dict[str, dict[str, list[str]]] = {}
    activity_gaps: dict[str, dict[str, list[int]]] = {}
    distribution_stats = {}

    for bunk, per_date in _activities_by_date(data, dates, divisions_to_check).items():
        act_dates: dict[str, list[str]] = {}
        for date_key, acts in per_date.items():
            counts: dict[str, int] = defaultdict(int)
            for act in acts:
                counts[act] += 1
            for act, n in counts.items():
                act_dates.setdefault(act, []).append(date_key)
                if n > 1:
                    result["warnings"].append({
                        "bunk": bunk,
                        "activity": act,
                        "date": date_key,
                        "message": f'"{act}" scheduled {n} times for {bunk} on {date_key}',
                    })
        bunk_activity_dates[bunk] = act_dates

        activity_gaps[bunk] = {}
        for act, act_date_list in act_dates.items():
            if len(act_date_list) < 2:
                continue
            gaps = [
                (parse_date(b) - parse_date(a)).days
                for a, b in zip(act_date_list, act_date_list[1:])
            ]
            activity_gaps[bunk][act] = gaps
            too_close = [g for g in gaps if g < min_gap]
            if too_close:
                result["warnings"].append({
                    "bunk": bunk,
                    "activity": act,
                    "dates": ", ".join(act_date_list),
                    "message": (
                        f'"{act}" repeated for {bunk} with only '
                        f"{', '.join(str(g) for g in too_close)} day(s) gap "
                        f"(ideal: {min_gap}+ days)"
                    ),
                })

        counts = sorted(((len(d), act) for act, d in act_dates.items()),
                        key=lambda c: (-c[0], c[1]))
        if not counts:
            continue
        (most_n, most_act), (least_n, least_act) = counts[0], counts[-1]
        imbalance = most_n - least_n
        distribution_stats[bunk] = {
            "mostFrequent": {"activity": most_act, "count": most_n},
            "leastFrequent": {"activity": least_act, "count": least_n},
            "imbalance": imbalance,
            "totalActivities": len(counts),
        }
        if imbalance > max_imbalance:
            result["warnings"].append({
                "bunk": bunk,
                "message": (
                    f'Activity imbalance for {bunk}: "{most_act}" done {most_n}x '
                    f'vs "{least_act}" done {least_n}x (diff: {imbalance})'
                ),
            })

    result["data"] = {
        "bunkActivityByDate": bunk_activity_dates,
        "activityGaps": activity_gaps,
        "distributionStats": distribution_stats,
    }
    return result


def analyze_rotation_scoring(data: CampData, scorer: RotationScorer | None,
                             settings: dict | None = None,
                             divisions_to_check: list[str] | None = None,
                             ) -> dict:
    """Rank each bunk's candidate activities with the rotation scorer."""
    settings = load_settings(settings)
    result = new_result()

    if scorer is None:
        result["warnings"].append({
            "message": "Rotation scorer not available - skipping rotation analysis",
        })
        return result

    all_activities = sorted(
        p.name for k, p in data.activity_properties.items()
        if k not in IGNORED_ACTIVITIES
    )
    bunk_scores = {}

    for div_name, div in data.divisions.items():
        if divisions_to_check is not None and div_name not in divisions_to_check:
            continue
        for bunk in div.bunks:
            scores = []
            for activity in all_activities:
                score = scorer(bunk, activity, div_name, all_activities)
                if score is None:
                    score = 0
                scores.append({
                    "activity": activity,
                    "score": score,
                    "blocked": math.isinf(score) and score > 0,
                })
            scores.sort(key=lambda s: s["score"])

            viable = [s for s in scores if not s["blocked"]]
            blocked = [s["activity"] for s in scores if s["blocked"]]
            bunk_scores[bunk] = {
                "division": div_name,
                "bestOptions": viable[:5],
                "blockedActivities": blocked,
                "averageScore": sum(s["score"] for s in viable) / max(1, len(viable)),
            }

            if len(blocked) > len(all_activities) * settings["blocked_activity_ratio"]:
                result["warnings"].append({
                    "bunk": bunk,
                    "blocked": blocked,
                    "message": (
                        f"{bunk} has {len(blocked)}/{len(all_activities)} "
                        f"activities blocked "
                        f"(>{settings['blocked_activity_ratio']:.0%})"
                    ),
                })

    result["data"] = {"bunkScores": bunk_scores, "allActivities": all_activities}
    return result


def analyze_league_distribution(data: CampData, dates: list[str],
                                settings: dict | None = None,
                                divisions_to_check: list[str] | None = None,
                                ) -> dict:
    """Tally league games per team and flag imbalance and repeat matchups."""
    settings = load_settings(settings)
    result = new_result()
    league_games_by_date: dict[str, list[dict]] = {}
    # league -> team -> {gamesPlayed, opponents}
    team_stats: dict[str, dict[str, dict]] = {}

    for date_key in dates:
        day = data.days.get(date_key)
        if day is None or not day.league_assignments:
            continue
        games = league_games_by_date.setdefault(date_key, [])

        for div_name, by_slot in day.league_assignments.items():
            if divisions_to_check is not None and div_name not in divisions_to_check:
                continue
            for league_slot in by_slot.values():
                league = team_stats.setdefault(league_slot.league_name, {})
                for m in league_slot.matchups:
                    for team in (m.team1, m.team2):
                        league.setdefault(team, {"gamesPlayed": 0, "opponents": {}})
                        league[team]["gamesPlayed"] += 1
                    opp1 = league[m.team1]["opponents"]
                    opp2 = league[m.team2]["opponents"]
                    opp1[m.team2] = opp1.get(m.team2, 0) + 1
                    opp2[m.team1] = opp2.get(m.team1, 0) + 1
                    games.append({
                        "league": league_slot.league_name,
                        "team1": m.team1,
                        "team2": m.team2,
                        "field": m.field,
                        "division": div_name,
                    })

    for league_name, teams in team_stats.items():
        if len(teams) < 2:
            continue
        game_counts = [t["gamesPlayed"] for t in teams.values()]
        max_games, min_games = max(game_counts), min(game_counts)
        if max_games - min_games > settings["league_game_imbalance"]:
            result["warnings"].append({
                "league": league_name,
                "teams": ", ".join(f"{t}: {s['gamesPlayed']} games"
                                   for t, s in teams.items()),
                "message": (
                    f'Game imbalance in "{league_name}": {min_games}-{max_games} '
                    f"games played (diff: {max_games - min_games})"
                ),
            })

        seen_pairs = set()
        for team, stats in teams.items():
            for opponent, count in stats["opponents"].items():
                pair = tuple(sorted((team, opponent)))
                if pair in seen_pairs or count <= settings["repeat_matchup_limit"]:
                    continue
                seen_pairs.add(pair)
                result["info"].append({
                    "league": league_name,
                    "message": (
                        f'{pair[0]} vs {pair[1]} played {count} times in "{league_name}"'
                    ),
                })

    result["data"] = {"leagueGamesByDate": league_games_by_date, "teamStats": team_stats}
    return result


def verify_historical_counts(data: CampData, dates: list[str],
                             stored_counts: dict | None = None,
                             settings: dict | None = None,
                             divisions_to_check: list[str] | None = None,
                             ) -> dict:
    """Recompute per-bunk activity counts and compare with the stored cache."""
    settings = load_settings(settings)
    tolerance = settings["count_mismatch_tolerance"]
    result = new_result()

    calculated: dict[str, dict[str, int]] = {}
    total = 0
    for bunk, per_date in _activities_by_date(data, dates, divisions_to_check).items():
        counts = calculated.setdefault(bunk, {})
        for acts in per_date.values():
            for act in acts:
                counts[act] = counts.get(act, 0) + 1
                total += 1

    stored: dict[str, dict[str, int]] = {}
    for bunk, acts in (stored_counts or {}).items():
        if not isinstance(acts, dict):
            continue
        norm = stored.setdefault(str(bunk), {})
        for act, count in acts.items():
            key = normalize_name(act)
            if key and isinstance(count, (int, float)) and not isinstance(count, bool):
                norm[key] = norm.get(key, 0) + int(count)

    mismatches = 0
    for bunk, acts in calculated.items():
        for act, count in acts.items():
            stored_value = stored.get(bunk, {}).get(act, 0)
            if stored_value == count:
                continue
            mismatches += 1
            if abs(stored_value - count) > tolerance:
                result["warnings"].append({
                    "bunk": bunk,
                    "activity": act,
                    "stored": stored_value,
                    "calculated": count,
                    "message": (
                        f"Count mismatch for {bunk}/{act}: "
                        f"stored={stored_value}, calculated={count}"
                    ),
                })

    if mismatches:
        result["info"].append({
            "message": (
                f"Found {mismatches} count mismatches. "
                "Consider rebuilding the historical counts cache"
            ),
        })

    result["data"] = {
        "calculatedCounts": calculated,
        "storedCounts": stored,
        "totalActivities": total,
        "mismatches": mismatches,
        "bunksAnalyzed": len(calculated),
    }
    return result


def longest_streak(dates: list[str]) -> list[str]:
    """Longest run of consecutive calendar dates, earliest run on ties."""
    best: list[str] = []
    run: list[str] = []
    prev = None
    for date_key in sorted(set(dates)):
        d = parse_date(date_key)
        if prev is not None and d - prev == timedelta(days=1):
            run.append(date_key)
        else:
            run = [date_key]
        prev = d
        if len(run) > len(best):
            best = list(run)
    return best


def analyze_activity_streaks(data: CampData, dates: list[str],
                             settings: dict | None = None,
                             divisions_to_check: list[str] | None = None,
                             ) -> dict:
    """Flag activities a bunk did on too many consecutive days."""
    settings = load_settings(settings)
    max_days = settings["max_consecutive_days_same_activity"]
    result = new_result()
    bunk_streaks: dict[str, dict[str, dict]] = {}

    for bunk, per_date in _activities_by_date(data, dates, divisions_to_check).items():
        act_dates: dict[str, list[str]] = {}
        for date_key, acts in per_date.items():
            for act in dict.fromkeys(acts):
                act_dates.setdefault(act, []).append(date_key)

        bunk_streaks[bunk] = {}
        for act in sorted(act_dates):
            streak = longest_streak(act_dates[act])
            bunk_streaks[bunk][act] = {"maxStreak": len(streak), "dates": streak}
            if len(streak) > max_days:
                result["warnings"].append({
                    "bunk": bunk,
                    "activity": act,
                    "streak": len(streak),
                    "dates": ", ".join(streak),
                    "message": (
                        f'"{act}" done {len(streak)} consecutive days by {bunk} '
                        f"({streak[0]} to {streak[-1]}, max recommended: {max_days})"
                    ),
                })

    result["data"] = {"bunkStreaks": bunk_streaks}
    return result


def analyze_activity_coverage(data: CampData, dates: list[str],
                              settings: dict | None = None,
                              divisions_to_check: list[str] | None = None,
                              ) -> dict:
    """Share of all known activities each bunk has tried at least once."""
    settings = load_settings(settings)
    threshold = settings["activity_coverage_warning_threshold"]
    result = new_result()

    all_activities = sorted(k for k in data.activity_properties
                            if k not in IGNORED_ACTIVITIES)
    known = set(all_activities)
    bunk_coverage = {}

    for bunk, per_date in _activities_by_date(data, dates, divisions_to_check).items():
        tried = {act for acts in per_date.values() for act in acts if act in known}
        not_tried = [a for a in all_activities if a not in tried]
        percentage = len(tried) / max(1, len(all_activities))
        bunk_coverage[bunk] = {
            "tried": sorted(tried),
            "notTried": not_tried,
            "percentage": percentage,
        }
        if all_activities and percentage < threshold:
            untried = ", ".join(not_tried[:10]) + ("..." if len(not_tried) > 10 else "")
            result["warnings"].append({
                "bunk": bunk,
                "notTried": untried,
                "message": (
                    f"Low activity coverage: {bunk} has only tried "
                    f"{round(percentage * 100)}% of activities "
                    f"({len(tried)}/{len(all_activities)}). Not tried: {untried}"
                ),
            })

    result["data"] = {"bunkCoverage": bunk_coverage, "totalActivities": len(all_activities)}
    return result
