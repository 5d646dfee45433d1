"""Test Plan parsing from the assistant's loosely-shaped itinerary JSON."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import date

import pytest

from models.plan import Plan, PlanValidationError


def _raw_plan(**overrides):
    data = {
        "summary": "Two days of night markets and temples",
        "city": "Taichung",
        "days": [
            {
                "day": 1,
                "title": "Downtown",
                "items": [
                    {"time": "morning", "name": "Rainbow Village", "type": "sight", "note": "Go early"},
                    {"time": "evening", "name": "Fengjia Night Market", "category": "food"},
                ],
            },
            {"day": 2, "items": []},
        ],
    }
    data.update(overrides)
    return data


def test_from_dict_accepts_day_and_type_aliases():
    plan = Plan.from_dict(_raw_plan())

    assert plan.city == "Taichung"
    assert [d.day_number for d in plan.days] == [1, 2]
    assert plan.days[0].items[0].category == "sight"
    assert plan.days[0].items[0].note == "Go early"
    assert plan.days[0].items[1].category == "food"
    assert plan.days[1].title is None
    assert plan.start_date is None


def test_start_date_parsed_from_either_key():
    assert Plan.from_dict(_raw_plan(startDate="2026-11-02")).start_date == date(2026, 11, 2)
    assert Plan.from_dict(_raw_plan(start_date="2026-11-02")).start_date == date(2026, 11, 2)


def test_empty_days_is_valid():
    plan = Plan.from_dict({"summary": "", "city": "Taipei", "days": []})
    assert plan.days == ()


def test_to_dict_round_trips_key_fields():
    data = Plan.from_dict(_raw_plan(start_date="2026-11-02")).to_dict()
    assert data["start_date"] == "2026-11-02"
    assert data["days"][0]["day_number"] == 1
    assert data["days"][0]["items"][0] == {
        "time": "morning", "name": "Rainbow Village", "category": "sight", "note": "Go early",
    }


@pytest.mark.parametrize("bad", [
    "not an object",
    {"summary": "x", "city": "y", "days": "day one"},
    {"summary": "x", "city": "y", "days": [{"day": 0, "items": []}]},
    {"summary": "x", "city": "y", "days": [{"day": "first", "items": []}]},
    {"summary": "x", "city": "y", "days": [{"day": 1, "items": [{"time": "brunch", "name": "A", "category": "food"}]}]},
    {"summary": "x", "city": "y", "days": [{"day": 1, "items": [{"time": "noon", "name": "A", "category": "spa"}]}]},
    {"summary": "x", "city": "y", "days": [{"day": 1, "items": [{"time": "noon", "name": 3, "category": "food"}]}]},
    {"summary": "x", "city": "y", "start_date": "next tuesday", "days": []},
])
def test_malformed_plans_raise(bad):
    with pytest.raises(PlanValidationError):
        Plan.from_dict(bad)


def test_plan_is_immutable():
    plan = Plan.from_dict(_raw_plan())
    with pytest.raises(Exception):
        plan.city = "Taipei"
