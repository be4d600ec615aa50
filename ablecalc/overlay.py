"""Tax-aware projection built on top of the monthly simulation engine."""

from __future__ import annotations

from dataclasses import dataclass, fields
import logging

from .engine import (
    AmortizationRow,
    RecurringContribution,
    SimulationConfig,
    WithdrawalPlan,
    run_simulation,
)
from .rate_data import DEFAULT_FEDERAL_RATE
from .rate_tables import (
    RateTables,
    default_rate_tables,
    federal_rate,
    federal_savers_credit,
    savers_contribution_limit,
    state_benefit,
    state_plan_info,
    state_rate,
)
from .schema import ProjectionRequest

logger = logging.getLogger(__name__)

MIN_HORIZON_YEARS = 1.0
MAX_HORIZON_YEARS = 50.0


@dataclass(frozen=True, slots=True)
class TaxAwareRow:
    month_index: int
    month: int
    year: int
    contributions: float
    earnings: float
    withdrawals: float
    monthly_withdrawals: float
    annual_withdrawals: float
    ssi_withdrawals: float
    ending_balance: float
    monthly_rate: float
    plan_max_stop: bool
    row_federal_tax: float
    row_state_tax: float
    row_federal_savers_credit: float
    row_deduction_tax_effect: float
    row_federal_rate: float
    row_state_rate: float


@dataclass(frozen=True, slots=True)
class YearTaxSummary:
    year: int
    earnings: float
    allocation: float
    taxable_income: float
    federal_rate: float
    federal_tax: float
    state_rate: float
    state_tax: float
    state_credit: float
    deduction: float
    deduction_tax_effect: float
    savers_credit: float


@dataclass(frozen=True, slots=True)
class ProjectionResult:
    schedule: list[AmortizationRow]
    tax_aware_schedule: list[TaxAwareRow]
    ssi_exceed_row: AmortizationRow | None
    plan_max_stop_row: AmortizationRow | None
    fsc_credit_rate: float
    fsc_eligible_for_credit: bool
    fsc_contribution_limit: float
    fsc_bracket_label: str | None = None
    yearly: list[YearTaxSummary] | None = None


_ROW_FIELDS = tuple(f.name for f in fields(AmortizationRow))


def _clamp_month(month: int) -> int:
    return min(12, max(1, month))


def build_simulation_config(
    request: ProjectionRequest,
    *,
    ssi_limit: float | None = None,
    tables: RateTables | None = None,
) -> SimulationConfig:
    """Translate a request into engine configuration.

    SSI enforcement is switched on exactly when ``ssi_limit`` is given.
    """
    tables = tables or default_rate_tables()
    horizon = min(MAX_HORIZON_YEARS, max(MIN_HORIZON_YEARS, request.horizon_years))
    annual_return = request.annual_return_percent / 100.0 if request.annual_return_percent > 0 else 0.0

    recurring: tuple[RecurringContribution, ...] = ()
    if request.recurring_contribution > 0:
        recurring = (RecurringContribution(amount=request.recurring_contribution, cadence=request.recurring_cadence),)

    withdrawal_plan = None
    if request.withdrawal_plan_decision and (request.monthly_withdrawal_amount > 0 or request.annual_withdrawal_amount > 0):
        withdrawal_plan = WithdrawalPlan(
            monthly_amount=max(0.0, request.monthly_withdrawal_amount),
            monthly_start_month=_clamp_month(request.monthly_withdrawal_start_month),
            monthly_start_year=max(request.current_year, request.monthly_withdrawal_start_year),
            annual_amount=max(0.0, request.annual_withdrawal_amount),
            annual_start_month=_clamp_month(request.annual_withdrawal_start_month or 1),
            annual_start_year=max(request.current_year, request.annual_withdrawal_start_year or request.current_year),
        )

    plan_max_balance = request.plan_max_balance
    if plan_max_balance is None and request.plan_state_code:
        plan_max_balance = state_plan_info(tables, request.plan_state_code).max_account_balance

    return SimulationConfig(
        starting_balance=request.starting_balance,
        upfront_contribution=request.upfront_contribution,
        recurring_contributions=recurring,
        withdrawal_plan=withdrawal_plan,
        annual_return_rate=annual_return,
        horizon_years=horizon,
        plan_start_month=1,
        plan_start_year=request.current_year,
        plan_max_balance=plan_max_balance,
        ssi_limit=ssi_limit,
        enforce_ssi=ssi_limit is not None,
        contribution_end_month=request.contribution_end_month,
        contribution_end_year=request.contribution_end_year,
    )


def _planned_contribution(request: ProjectionRequest, month_index: int) -> float:
    planned = request.upfront_contribution if month_index == 0 else 0.0
    if request.recurring_contribution > 0:
        if request.recurring_cadence == "monthly" or (request.recurring_cadence == "annual" and month_index % 12 == 0):
            planned += request.recurring_contribution
    return planned


def contribution_allocations(request: ProjectionRequest, schedule: list[AmortizationRow]) -> list[float]:
    """Share of each month's planned funding that actually reached the account."""
    allocations: list[float] = []
    for row in schedule:
        planned = _planned_contribution(request, row.month_index)
        if planned <= 0 or row.contributions <= 0:
            allocations.append(0.0)
            continue
        ratio = row.contributions / planned
        allocations.append(planned * ratio)
    return allocations


def _sum_by_year(schedule: list[AmortizationRow], values: list[float]) -> dict[int, float]:
    totals: dict[int, float] = {}
    for row, value in zip(schedule, values):
        totals[row.year] = totals.get(row.year, 0.0) + value
    return totals


def _year_summary(
    request: ProjectionRequest,
    tables: RateTables,
    year: int,
    earnings: float,
    allocation: float,
    savers_credit: float,
) -> YearTaxSummary:
    benefit = state_benefit(tables, request.state_code, request.filing_status, request.plan_state_code or request.state_code)
    deduction = min(benefit.amount, allocation) if benefit.applies and benefit.type == "deduction" else 0.0
    state_credit = 0.0
    if benefit.applies and benefit.type == "credit":
        state_credit = min(benefit.amount, allocation * benefit.credit_percent)

    # Taxable income only selects the bracket; tax applies to the year's earnings.
    taxable_income = max(0.0, request.account_agi + earnings - deduction)
    fed_rate = federal_rate(tables, request.filing_status, taxable_income)
    st_rate = state_rate(tables, request.state_code, request.filing_status, taxable_income)
    return YearTaxSummary(
        year=year,
        earnings=earnings,
        allocation=allocation,
        taxable_income=taxable_income,
        federal_rate=fed_rate,
        federal_tax=earnings * fed_rate,
        state_rate=st_rate,
        state_tax=earnings * st_rate - state_credit,
        state_credit=state_credit,
        deduction=deduction,
        deduction_tax_effect=deduction * st_rate,
        savers_credit=savers_credit,
    )


def _decorate(row: AmortizationRow, summary: YearTaxSummary | None, fallback_federal: float, fallback_state: float) -> TaxAwareRow:
    base = {name: getattr(row, name) for name in _ROW_FIELDS}
    december = row.month == 12 and summary is not None
    return TaxAwareRow(
        **base,
        row_federal_tax=summary.federal_tax if december else 0.0,
        row_state_tax=summary.state_tax if december else 0.0,
        row_federal_savers_credit=summary.savers_credit if december else 0.0,
        row_deduction_tax_effect=summary.deduction_tax_effect if december else 0.0,
        row_federal_rate=summary.federal_rate if summary is not None else fallback_federal,
        row_state_rate=summary.state_rate if summary is not None else fallback_state,
    )


def compute_projection(request: ProjectionRequest, tables: RateTables | None = None) -> ProjectionResult:
    """Run the account projection and overlay annual tax effects."""
    tables = tables or default_rate_tables()
    ssi_limit = tables.ssi_balance_limit

    # The advisory run never enforces SSI so it shows when the limit would be crossed.
    base_schedule = run_simulation(build_simulation_config(request, tables=tables))
    if request.is_ssi_beneficiary:
        schedule = run_simulation(build_simulation_config(request, ssi_limit=ssi_limit, tables=tables))
    else:
        schedule = base_schedule

    ssi_exceed_row = next((row for row in base_schedule if row.ending_balance > ssi_limit), None)
    plan_max_stop_row = next((row for row in schedule if row.plan_max_stop), None)

    allocations = contribution_allocations(request, schedule)
    earnings_by_year = _sum_by_year(schedule, [row.earnings for row in schedule])
    allocation_by_year = _sum_by_year(schedule, allocations)

    fsc_has_agi = request.fsc_agi > 0
    fsc_result = None
    if request.fsc_eligible_criteria_met and fsc_has_agi:
        fsc_result = federal_savers_credit(tables, request.fsc_filing_status, request.fsc_agi)
    fsc_credit_rate = fsc_result.credit_rate if fsc_result is not None else 0.0
    fsc_limit = savers_contribution_limit(tables, request.fsc_filing_status)
    fsc_eligible = request.fsc_eligible_criteria_met and fsc_has_agi and fsc_credit_rate > 0

    yearly: dict[int, YearTaxSummary] = {}
    for year, earnings in earnings_by_year.items():
        allocation = allocation_by_year.get(year, 0.0)
        savers_credit = 0.0
        if fsc_eligible and allocation > 0:
            savers_credit = min(allocation, fsc_limit) * fsc_credit_rate
        yearly[year] = _year_summary(request, tables, year, earnings, allocation, savers_credit)

    last_year = schedule[-1].year if schedule else request.current_year
    previous = yearly.get(last_year - 1)
    fallback_federal = previous.federal_rate if previous is not None else DEFAULT_FEDERAL_RATE
    fallback_state = previous.state_rate if previous is not None else 0.0

    tax_aware = [_decorate(row, yearly.get(row.year), fallback_federal, fallback_state) for row in schedule]

    for summary in yearly.values():
        logger.debug(
            "%d: earnings=%.2f allocation=%.2f federal=%.2f@%.2f state=%.2f@%.4f savers=%.2f",
            summary.year,
            summary.earnings,
            summary.allocation,
            summary.federal_tax,
            summary.federal_rate,
            summary.state_tax,
            summary.state_rate,
            summary.savers_credit,
        )

    return ProjectionResult(
        schedule=schedule,
        tax_aware_schedule=tax_aware,
        ssi_exceed_row=ssi_exceed_row,
        plan_max_stop_row=plan_max_stop_row,
        fsc_credit_rate=fsc_credit_rate,
        fsc_eligible_for_credit=fsc_eligible,
        fsc_contribution_limit=fsc_limit,
        fsc_bracket_label=fsc_result.bracket_label if fsc_result is not None else None,
        yearly=list(yearly.values()),
    )
