"""Tests for constraints.py: hard-rule analyzers."""

from campdiag.constraints import (
    analyze_capacity_compliance, analyze_cross_division_conflicts,
    analyze_field_availability, analyze_indoor_outdoor,
    verify_division_time_mapping,
)
from campdiag.models import CampData

DAY = "2024-07-01"

TIMES = {
    "Juniors": [{"startMin": 540, "endMin": 600}, {"startMin": 600, "endMin": 660}],
    "Seniors": [{"startMin": 540, "endMin": 600}, {"startMin": 600, "endMin": 660}],
}


def _make_data(assignments, fields=None, specials=None, days=None,
               divisions=None, times=None, **day_kwargs):
    if days is None:
        days = {DAY: {"scheduleAssignments": assignments, **day_kwargs}}
    return CampData.from_raw({
        "divisions": divisions or {"Juniors": {"bunks": ["J1", "J2"]},
                                   "Seniors": {"bunks": ["S1", "S2"]}},
        "division_times": TIMES if times is None else times,
        "fields": fields or [],
        "special_activities": specials or [],
        "days": days,
    })


class TestCapacityCompliance:
    def test_exclusive_field_two_divisions(self):
        data = _make_data(
            {"J1": [{"field": "Soccer"}], "S1": [{"field": "Soccer"}]},
            fields=[{"name": "Soccer", "sharableWith": {"type": "none"}}],
        )
        result = analyze_capacity_compliance(data, [DAY])
        assert len(result["errors"]) == 1
        err = result["errors"][0]
        assert err["date"] == DAY
        assert err["field"] == "soccer"
        assert err["bunks"] == ["J1 (Div Juniors)", "S1 (Div Seniors)"]
        assert err["timeRange"] == "9:00 AM-10:00 AM"
        assert "Capacity exceeded" in err["message"]
        assert "J1" in err["message"] and "S1" in err["message"]

    def test_unconfigured_field_is_exclusive(self):
        data = _make_data({"J1": [{"field": "Hill"}], "J2": [{"field": "Hill"}]})
        assert len(analyze_capacity_compliance(data, [DAY])["errors"]) == 1

    def test_custom_capacity_respected(self):
        fields = [{"name": "Court", "sharableWith": {"type": "custom", "capacity": 2}}]
        two = _make_data({"J1": [{"field": "Court"}], "J2": [{"field": "Court"}]},
                         fields=fields)
        three = _make_data({"J1": [{"field": "Court"}], "J2": [{"field": "Court"}],
                            "S1": [{"field": "Court"}]}, fields=fields)
        assert analyze_capacity_compliance(two, [DAY])["errors"] == []
        errors = analyze_capacity_compliance(three, [DAY])["errors"]
        assert len(errors) == 1
        assert errors[0]["count"] == 3
        assert errors[0]["maxCapacity"] == 2

    def test_shared_with_all(self):
        data = _make_data(
            {b: [{"field": "Gym"}] for b in ("J1", "J2", "S1", "S2")},
            fields=[{"name": "Gym", "sharableWith": {"type": "all"}}],
        )
        assert analyze_capacity_compliance(data, [DAY])["errors"] == []

    def test_adjacent_slots_do_not_conflict(self):
        data = _make_data({"J1": [{"field": "Soccer"}],
                           "J2": [{"field": "Arts"}, {"field": "Soccer"}]})
        assert analyze_capacity_compliance(data, [DAY])["errors"] == []

    def test_continuation_and_league_skipped(self):
        data = _make_data({
            "J1": [{"field": "Soccer"}, {"field": "Soccer", "continuation": True}],
            "J2": [{"field": "Arts"}, {"field": "Soccer", "_isLeague": True}],
        })
        assert analyze_capacity_compliance(data, [DAY])["errors"] == []

    def test_division_filter(self):
        data = _make_data({"J1": [{"field": "Soccer"}], "S1": [{"field": "Soccer"}]})
        result = analyze_capacity_compliance(data, [DAY], divisions_to_check=["Juniors"])
        assert result["errors"] == []

    def test_missing_day_skipped(self):
        data = _make_data({})
        result = analyze_capacity_compliance(data, ["2024-07-09"])
        assert result["errors"] == []
        assert result["data"]["violationsByDate"] == {}


class TestCrossDivisionConflicts:
    def test_capacity_not_exceeded_still_conflicts(self):
        data = _make_data(
            {"J1": [{"field": "Soccer"}], "S1": [{"field": "Soccer"}]},
            fields=[{"name": "Soccer", "sharableWith": {"type": "custom", "capacity": 5}}],
        )
        assert analyze_capacity_compliance(data, [DAY])["errors"] == []
        result = analyze_cross_division_conflicts(data, [DAY])
        assert len(result["errors"]) == 1
        assert result["errors"][0]["divisions"] == ["Juniors", "Seniors"]
        assert "Cross-division conflict" in result["errors"][0]["message"]

    def test_same_division_is_fine(self):
        data = _make_data(
            {"J1": [{"field": "Soccer"}], "J2": [{"field": "Soccer"}]},
            fields=[{"name": "Soccer", "sharableWith": {"type": "custom", "capacity": 2}}],
        )
        assert analyze_cross_division_conflicts(data, [DAY])["errors"] == []

    def test_all_type_exempt(self):
        data = _make_data(
            {"J1": [{"field": "Gym"}], "S1": [{"field": "Gym"}]},
            fields=[{"name": "Gym", "sharableWith": {"type": "all"}}],
        )
        assert analyze_cross_division_conflicts(data, [DAY])["errors"] == []

    def test_division_filter_keeps_groups_touching_allowed(self):
        data = _make_data({"J1": [{"field": "Soccer"}], "S1": [{"field": "Soccer"}]},
                          divisions={"Juniors": {"bunks": ["J1"]},
                                     "Seniors": {"bunks": ["S1"]},
                                     "Staff": {"bunks": []}})
        assert len(analyze_cross_division_conflicts(
            data, [DAY], divisions_to_check=["Juniors"])["errors"]) == 1
        assert analyze_cross_division_conflicts(
            data, [DAY], divisions_to_check=["Staff"])["errors"] == []


class TestIndoorOutdoor:
    FIELDS = [
        {"name": "Soccer"},
        {"name": "Gym", "rainyDayAvailable": True},
    ]
    SPECIALS = [
        {"name": "Arts", "isIndoor": True},
        {"name": "Movie", "rainyDayOnly": True},
    ]

    def test_outdoor_field_on_rainy_day(self):
        data = _make_data(
            {"J1": [{"field": "Soccer"}], "J2": [{"field": "Soccer"}, {"field": "Gym"}]},
            fields=self.FIELDS, specials=self.SPECIALS, isRainyDay=True,
        )
        result = analyze_indoor_outdoor(data, [DAY])
        assert len(result["errors"]) == 1
        assert result["errors"][0]["activity"] == "soccer"
        assert result["errors"][0]["date"] == DAY

    def test_outdoor_field_on_dry_day(self):
        data = _make_data({"J1": [{"field": "Soccer"}]},
                          fields=self.FIELDS, specials=self.SPECIALS)
        result = analyze_indoor_outdoor(data, [DAY])
        assert result["errors"] == []
        assert result["data"]["rainyDayAnalysis"][DAY]["outdoorActivitiesUsed"] == ["soccer"]

    def test_field_under_activity_name(self):
        data = _make_data({"J1": [{"field": "Soccer", "_activity": "Kickball"}]},
                          fields=self.FIELDS, isRainyDay=True)
        assert len(analyze_indoor_outdoor(data, [DAY])["errors"]) == 1

    def test_rainy_only_on_dry_day(self):
        data = _make_data({"J1": [{"field": "Movie"}]},
                          fields=self.FIELDS, specials=self.SPECIALS)
        result = analyze_indoor_outdoor(data, [DAY])
        assert result["errors"] == []
        assert len(result["warnings"]) == 1
        assert "Rainy-day-only" in result["warnings"][0]["message"]

    def test_info_summary_always_present(self):
        data = _make_data({}, fields=self.FIELDS, specials=self.SPECIALS)
        result = analyze_indoor_outdoor(data, [DAY])
        assert result["info"] == [{
            "message": "Indoor fields: 1, Outdoor fields: 1, Rainy-only specials: 1",
        }]
        assert result["data"]["indoorFields"] == ["gym"]
        assert result["data"]["outdoorFields"] == ["soccer"]


class TestFieldAvailability:
    def _fields(self, *rules):
        return [{"name": "Court", "timeRules": list(rules)}]

    def test_unavailable_overlap_is_error(self):
        data = _make_data(
            {"J1": [{"field": "Court"}]},
            fields=self._fields({"type": "Unavailable", "startMin": 570, "endMin": 630}),
        )
        result = analyze_field_availability(data, [DAY])
        assert len(result["errors"]) == 1
        assert result["errors"][0]["bunk"] == "J1"
        assert result["data"]["fieldsWithTimeRules"] == ["court"]

    def test_unavailable_touching_is_fine(self):
        data = _make_data(
            {"J1": [{"field": "Court"}]},
            fields=self._fields({"type": "Unavailable", "startMin": 600, "endMin": 660}),
        )
        assert analyze_field_availability(data, [DAY])["errors"] == []

    def test_outside_available_is_warning(self):
        data = _make_data(
            {"J1": [{"field": "Arts"}, {"field": "Court"}]},
            fields=self._fields({"type": "Available", "start": "9:00am", "end": "10:30am"}),
        )
        result = analyze_field_availability(data, [DAY])
        assert result["errors"] == []
        assert len(result["warnings"]) == 1
        assert result["warnings"][0]["slotIdx"] == 1

    def test_inside_one_of_several_available(self):
        data = _make_data(
            {"J1": [{"field": "Arts"}, {"field": "Court"}]},
            fields=self._fields(
                {"type": "Available", "startMin": 540, "endMin": 600},
                {"type": "Available", "startMin": 600, "endMin": 700},
            ),
        )
        assert analyze_field_availability(data, [DAY])["warnings"] == []

    def test_explicit_slot_times_win(self):
        data = _make_data(
            {"J1": [{"field": "Court", "_startMin": 700, "_endMin": 720}]},
            fields=self._fields({"type": "Unavailable", "startMin": 690, "endMin": 710}),
        )
        assert len(analyze_field_availability(data, [DAY])["errors"]) == 1

    def test_no_time_window_skipped(self):
        data = _make_data(
            {"X9": [{"field": "Court"}]},
            fields=self._fields({"type": "Unavailable", "startMin": 0, "endMin": 1440}),
        )
        assert analyze_field_availability(data, [DAY])["errors"] == []


class TestDivisionTimeMapping:
    def test_clean(self):
        data = _make_data({"J1": [{"field": "A"}, {"field": "B"}]})
        result = verify_division_time_mapping(data, [DAY])
        assert result["errors"] == []
        assert result["warnings"] == []
        assert result["data"]["divisionSlotCounts"] == {"Juniors": 2, "Seniors": 2}

    def test_no_time_slots(self):
        data = _make_data({}, times={"Juniors": TIMES["Juniors"]})
        result = verify_division_time_mapping(data, [DAY])
        assert len(result["errors"]) == 1
        assert result["errors"][0]["division"] == "Seniors"

    def test_malformed_slot(self):
        times = {"Juniors": [{"startMin": 540, "endMin": 600}, {"startMin": 600}],
                 "Seniors": TIMES["Seniors"]}
        data = _make_data({}, times=times)
        result = verify_division_time_mapping(data, [DAY])
        assert len(result["errors"]) == 1
        assert result["errors"][0]["slot"] == 1

    def test_slot_count_mismatch_per_date(self):
        days = {
            "2024-07-01": {"scheduleAssignments": {"J1": [{"field": "A"}]}},
            "2024-07-02": {"scheduleAssignments": {"J1": [{"field": "A"}, {"field": "B"}]}},
            "2024-07-03": {"scheduleAssignments": {"J1": [{"field": "A"}]}},
        }
        data = _make_data({}, days=days)
        result = verify_division_time_mapping(data, sorted(days))
        assert [w["date"] for w in result["warnings"]] == ["2024-07-01", "2024-07-03"]

    def test_bunk_without_division(self):
        data = _make_data({"X9": [{"field": "A"}, {"field": "B"}]})
        result = verify_division_time_mapping(data, [DAY])
        assert result["data"]["unassignedBunks"] == ["X9"]
        assert len(result["warnings"]) == 1
        assert result["errors"] == []

    def test_daily_times_only(self):
        days = {DAY: {
            "scheduleAssignments": {"J1": [{"field": "A"}, {"field": "B"}]},
            "divisionTimes": {"Juniors": [{"startMin": 540, "endMin": 600},
                                          {"startMin": 600}]},
        }}
        data = _make_data({}, days=days, times={"Seniors": TIMES["Seniors"]})
        result = verify_division_time_mapping(data, [DAY])
        assert len(result["errors"]) == 1
        err = result["errors"][0]
        assert (err["division"], err["slot"], err["date"]) == ("Juniors", 1, DAY)
        assert result["warnings"] == []
        assert result["data"]["divisionSlotCounts"] == {"Seniors": 2, "Juniors": 2}
