from collections import defaultdict

import pytest

from ablecalc.engine import run_simulation
from ablecalc.overlay import build_simulation_config, compute_projection, contribution_allocations
from tests.helpers import make_request


def _quiet_request(sample: dict, **overrides):
    values = {
        "starting_balance": 0,
        "upfront_contribution": 0,
        "recurring_contribution": 0,
        "withdrawal_plan_decision": False,
        "annual_return_percent": 0,
        "horizon_years": 1,
        "is_ssi_beneficiary": False,
        "fsc_eligible_criteria_met": False,
    }
    values.update(overrides)
    return make_request(sample, **values)


def test_taxes_are_booked_in_december_only(sample_request_dict):
    result = compute_projection(make_request(sample_request_dict))

    by_year = defaultdict(list)
    for row in result.tax_aware_schedule:
        by_year[row.year].append(row)

    assert len(by_year) == 10
    for rows in by_year.values():
        december = next(row for row in rows if row.month == 12)
        others = [row for row in rows if row.month != 12]
        for name in ("row_federal_tax", "row_state_tax", "row_federal_savers_credit", "row_deduction_tax_effect"):
            assert all(getattr(row, name) == 0.0 for row in others)
            assert sum(getattr(row, name) for row in rows) == getattr(december, name)


def test_tax_aware_rows_mirror_schedule(sample_request_dict):
    result = compute_projection(make_request(sample_request_dict))

    assert len(result.schedule) == 120
    assert len(result.tax_aware_schedule) == 120
    for plain, taxed in zip(result.schedule, result.tax_aware_schedule):
        assert taxed.month_index == plain.month_index
        assert taxed.ending_balance == plain.ending_balance
        assert taxed.contributions == plain.contributions


def test_yearly_tax_math_for_deduction_state(sample_request_dict):
    result = compute_projection(make_request(sample_request_dict))
    first = result.yearly[0]

    assert first.year == 2024
    assert first.allocation == pytest.approx(4_000.0)
    assert first.deduction == pytest.approx(4_000.0)
    assert first.taxable_income == pytest.approx(30_000.0 + first.earnings - 4_000.0)
    assert first.federal_rate == 0.12
    assert first.state_rate == 0.0495
    assert first.federal_tax == pytest.approx(first.earnings * 0.12)
    assert first.state_tax == pytest.approx(first.earnings * 0.0495)
    assert first.deduction_tax_effect == pytest.approx(4_000.0 * 0.0495)

    december = result.tax_aware_schedule[11]
    assert december.row_federal_tax == pytest.approx(first.federal_tax)
    assert december.row_deduction_tax_effect == pytest.approx(first.deduction_tax_effect)
    assert all(row.row_federal_rate == 0.12 for row in result.tax_aware_schedule[:12])


def test_deduction_capped_at_state_limit(sample_request_dict):
    request = _quiet_request(sample_request_dict, upfront_contribution=15_000, annual_return_percent=5)
    result = compute_projection(request)

    assert result.yearly[0].allocation == pytest.approx(15_000.0)
    assert result.yearly[0].deduction == 10_000.0


def test_credit_state_reduces_state_tax(sample_request_dict):
    request = make_request(sample_request_dict, state_code="UT", is_ssi_beneficiary=False)
    result = compute_projection(request)
    first = result.yearly[0]

    assert first.deduction == 0.0
    assert first.state_credit == pytest.approx(114.0)
    assert first.state_tax == pytest.approx(first.earnings * 0.0465 - 114.0)
    assert first.deduction_tax_effect == 0.0


def test_out_of_state_plan_without_parity_gets_no_benefit(sample_request_dict):
    request = make_request(sample_request_dict, plan_state_code="OH")
    result = compute_projection(request)

    assert all(summary.deduction == 0.0 for summary in result.yearly)
    assert all(row.row_deduction_tax_effect == 0.0 for row in result.tax_aware_schedule)


def test_savers_credit_capped_by_contribution_limit(sample_request_dict):
    result = compute_projection(make_request(sample_request_dict))

    assert result.fsc_eligible_for_credit is True
    assert result.fsc_credit_rate == 0.20
    assert result.fsc_contribution_limit == 2_000.0
    assert result.fsc_bracket_label == "$23,001 – $25,000"
    december_credits = [row.row_federal_savers_credit for row in result.tax_aware_schedule if row.month == 12]
    assert december_credits == pytest.approx([400.0] * 10)


@pytest.mark.parametrize(
    "overrides",
    [
        {"fsc_eligible_criteria_met": False},
        {"fsc_agi": 0},
        {"fsc_agi": 60_000},
    ],
)
def test_savers_credit_requires_eligibility(sample_request_dict, overrides):
    result = compute_projection(make_request(sample_request_dict, **overrides))

    assert result.fsc_eligible_for_credit is False
    assert all(row.row_federal_savers_credit == 0.0 for row in result.tax_aware_schedule)
    assert result.fsc_contribution_limit == 2_000.0


def test_ssi_exceed_row_is_advisory_for_non_recipients(sample_request_dict):
    request = _quiet_request(sample_request_dict, starting_balance=95_000, recurring_contribution=1_000)
    result = compute_projection(request)

    assert result.ssi_exceed_row is not None
    assert result.ssi_exceed_row.month_index == 5
    assert result.schedule[-1].ending_balance == 107_000.0


def test_ssi_recipient_schedule_enforces_limit(sample_request_dict):
    request = _quiet_request(
        sample_request_dict,
        starting_balance=95_000,
        recurring_contribution=1_000,
        is_ssi_beneficiary=True,
    )
    result = compute_projection(request)

    assert result.ssi_exceed_row is not None
    assert result.ssi_exceed_row.month_index == 5
    assert [row.contributions for row in result.schedule[:5]] == [1_000.0] * 4 + [0.0]
    assert all(row.ending_balance <= 100_000.0 for row in result.schedule)
    assert result.schedule[-1].ending_balance == 99_000.0


def test_plan_max_stop_row_reported(sample_request_dict):
    request = _quiet_request(
        sample_request_dict,
        starting_balance=9_500,
        recurring_contribution=1_000,
        plan_max_balance=10_000,
    )
    result = compute_projection(request)

    assert result.plan_max_stop_row is not None
    assert result.plan_max_stop_row.month_index == 0
    assert all(row.contributions == 0.0 for row in result.schedule)


def test_no_plan_max_stop_row_when_cap_not_reached(sample_request_dict):
    result = compute_projection(make_request(sample_request_dict))
    assert result.plan_max_stop_row is None


def test_allocation_tracks_actual_contributions(sample_request_dict):
    request = _quiet_request(
        sample_request_dict,
        upfront_contribution=1_000,
        recurring_contribution=250,
        contribution_end_month=2,
        contribution_end_year=2024,
    )
    config = build_simulation_config(request)
    allocations = contribution_allocations(request, run_simulation(config))

    assert allocations[:3] == [1_250.0, 250.0, 0.0]
    assert sum(allocations) == 1_500.0


@pytest.mark.parametrize(
    ("horizon_years", "expected_rows"),
    [(0, 12), (1.5, 18), (80, 600)],
)
def test_horizon_is_clamped(sample_request_dict, horizon_years, expected_rows):
    result = compute_projection(_quiet_request(sample_request_dict, horizon_years=horizon_years))
    assert len(result.schedule) == expected_rows


def test_partial_final_year_has_rates_but_no_december_booking(sample_request_dict):
    request = _quiet_request(sample_request_dict, starting_balance=10_000, annual_return_percent=6, horizon_years=1.5)
    result = compute_projection(request)

    last_year = [row for row in result.tax_aware_schedule if row.year == 2025]
    assert len(last_year) == 6
    assert all(row.row_federal_tax == 0.0 for row in last_year)
    assert all(row.row_federal_rate == 0.12 for row in last_year)
    assert all(row.row_state_rate == 0.0495 for row in last_year)


def test_build_simulation_config_normalizes_request(sample_request_dict):
    request = make_request(
        sample_request_dict,
        annual_return_percent=-3,
        monthly_withdrawal_start_month=13,
        monthly_withdrawal_start_year=2020,
        annual_withdrawal_amount=500,
    )
    config = build_simulation_config(request)

    assert config.annual_return_rate == 0.0
    assert config.plan_start_year == 2024
    assert config.plan_start_month == 1
    assert config.enforce_ssi is False
    assert config.withdrawal_plan is not None
    assert config.withdrawal_plan.monthly_start_month == 12
    assert config.withdrawal_plan.monthly_start_year == 2024
    assert config.withdrawal_plan.annual_amount == 500.0
    assert config.withdrawal_plan.annual_start_month == 1
    assert config.withdrawal_plan.annual_start_year == 2024

    enforced = build_simulation_config(request, ssi_limit=100_000.0)
    assert enforced.ssi_enforced is True


def test_build_simulation_config_skips_declined_withdrawals(sample_request_dict):
    config = build_simulation_config(make_request(sample_request_dict, withdrawal_plan_decision=False))
    assert config.withdrawal_plan is None
    assert config.annual_return_rate == pytest.approx(0.06)


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({}, None),
        ({"plan_max_balance": 25_000}, 25_000.0),
        ({"plan_state_code": "IL"}, 450_000.0),
        ({"plan_state_code": "OH"}, 538_000.0),
        ({"plan_state_code": "WI"}, None),
        ({"plan_state_code": "OH", "plan_max_balance": 25_000}, 25_000.0),
    ],
)
def test_plan_max_defaults_to_plan_state_maximum(sample_request_dict, overrides, expected):
    config = build_simulation_config(make_request(sample_request_dict, **overrides))
    assert config.plan_max_balance == expected
