import itertools

import pytest

from planning_dashboard.data.aggregate import (
    aggregate_by_date,
    aggregate_by_month,
    build_inventory_projections,
)

# === Test: Empty input ===
def test_empty_input_yields_empty_output():
    assert aggregate_by_date([]) == []
    assert aggregate_by_date(None) == []
    assert aggregate_by_month([]) == []


# === Test: Summing per date ===
def test_rows_sharing_a_date_are_summed(forecast_rows):
    result = aggregate_by_date(forecast_rows, fields=["forecast", "actual", "sales_plan", "demand_planner"])

    assert [r["postdate"] for r in result] == ["2024-01-01", "2024-01-02"]
    jan2 = result[1]
    assert jan2["forecast"] == 17.0
    assert jan2["actual"] == 8.0
    assert jan2["sales_plan"] == 0.0
    assert jan2["demand_planner"] == 3.0


def test_missing_and_null_fields_contribute_zero():
    rows = [
        {"postdate": "2024-03-01", "forecast": None},
        {"postdate": "2024-03-01"},
        {"postdate": "2024-03-01", "forecast": "not a number"},
        {"postdate": "2024-03-01", "forecast": "inf"},
        {"postdate": "2024-03-01", "forecast": "-inf"},
        {"postdate": "2024-03-01", "forecast": "1e999"},
        {"postdate": "2024-03-01", "forecast": 4},
    ]
    result = aggregate_by_date(rows, fields=["forecast", "commercial_input"])
    assert result == [{"postdate": "2024-03-01", "forecast": 4.0, "commercial_input": 0.0}]


def test_numeric_strings_are_coerced():
    rows = [{"postdate": "2024-03-01", "forecast": "2.5"}, {"postdate": "2024-03-01", "forecast": 1}]
    assert aggregate_by_date(rows, fields=["forecast"])[0]["forecast"] == pytest.approx(3.5)


def test_sum_is_invariant_under_permutation():
    rows = [
        {"postdate": "2024-01-01", "forecast": 1, "actual": 10},
        {"postdate": "2024-01-02", "forecast": 2, "actual": None},
        {"postdate": "2024-01-01", "forecast": 3, "actual": 30},
        {"postdate": "2024-01-02", "forecast": 4},
    ]
    expected = aggregate_by_date(rows, fields=["forecast", "actual"])
    for perm in itertools.permutations(rows):
        assert aggregate_by_date(list(perm), fields=["forecast", "actual"]) == expected


def test_timestamps_on_the_same_day_collapse():
    rows = [
        {"postdate": "2024-01-05T00:00:00.000Z", "forecast": 1},
        {"postdate": "2024-01-05", "forecast": 2},
    ]
    assert aggregate_by_date(rows, fields=["forecast"]) == [{"postdate": "2024-01-05", "forecast": 3.0}]


def test_offset_timestamps_keep_their_written_day():
    rows = [
        {"postdate": "2024-01-01T20:00:00-05:00", "forecast": 1},
        {"postdate": "2024-01-01T23:30:00+0200", "forecast": 2},
        {"postdate": "2024-01-02T01:00:00Z", "forecast": 4},
    ]
    assert aggregate_by_date(rows, fields=["forecast"]) == [
        {"postdate": "2024-01-01", "forecast": 3.0},
        {"postdate": "2024-01-02", "forecast": 4.0},
    ]


def test_rows_with_unparseable_dates_are_dropped():
    rows = [
        {"postdate": "garbage", "forecast": 100},
        {"postdate": None, "forecast": 100},
        {"forecast": 100},
        {"postdate": "2024-02-01", "forecast": 1},
    ]
    assert aggregate_by_date(rows, fields=["forecast"]) == [{"postdate": "2024-02-01", "forecast": 1.0}]


# === Test: Averaged bounds ===
def test_mean_fields_are_averaged_per_date(forecast_rows):
    result = aggregate_by_date(forecast_rows, fields=["forecast"], mean_fields=["upper_bound", "lower_bound"])
    jan2 = result[1]
    assert jan2["upper_bound"] == pytest.approx(10.0)
    assert jan2["lower_bound"] == pytest.approx(7.0)


def test_field_listed_as_sum_and_mean_is_averaged():
    rows = [{"postdate": "2024-01-01", "upper_bound": 2}, {"postdate": "2024-01-01", "upper_bound": 4}]
    result = aggregate_by_date(rows, fields=["upper_bound"], mean_fields=["upper_bound"])
    assert result[0]["upper_bound"] == pytest.approx(3.0)


def test_custom_date_field_is_echoed_back():
    rows = [{"date": "2024-01-01", "qty": 1}, {"date": "2024-01-01", "qty": 2}]
    assert aggregate_by_date(rows, fields=["qty"], date_field="date") == [{"date": "2024-01-01", "qty": 3.0}]


# === Test: Monthly aggregation and inventory projections ===
def test_aggregate_by_month():
    rows = [
        {"postdate": "2024-02-10", "forecast": 5},
        {"postdate": "2024-01-31", "forecast": 1},
        {"postdate": "2024-01-01", "forecast": 2},
    ]
    assert aggregate_by_month(rows, fields=["forecast"]) == [
        {"month": "2024-01", "forecast": 3.0},
        {"month": "2024-02", "forecast": 5.0},
    ]


def test_inventory_projections_apply_conversion_rate():
    rows = [
        {"postdate": "2024-01-15", "forecast": 100},
        {"postdate": "2024-01-20", "forecast": 50},
        {"postdate": "2024-02-01", "forecast": None},
    ]
    result = build_inventory_projections(rows)
    assert result[0] == {
        "projection_month": "2024-01",
        "forecasted_demand": 150.0,
        "projected_ending_inventory": pytest.approx(120.0),
    }
    assert result[1]["forecasted_demand"] == 0.0


def test_inventory_projections_reject_negative_rate():
    with pytest.raises(ValueError):
        build_inventory_projections([], conversion_rate=-0.1)
