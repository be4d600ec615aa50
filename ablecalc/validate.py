"""Semantic validation for projection requests."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import math
from typing import Iterable

from .engine import CADENCES
from .overlay import MAX_HORIZON_YEARS, MIN_HORIZON_YEARS
from .rate_data import FILING_STATUSES
from .rate_tables import (
    RateTables,
    annual_contribution_limit,
    available_state_codes,
    default_rate_tables,
    normalize_state_code,
    poverty_level,
    state_plan_info,
    work_to_able_allowance,
)
from .schema import ProjectionRequest

NON_NEGATIVE_AMOUNTS = (
    "starting_balance",
    "upfront_contribution",
    "recurring_contribution",
    "monthly_withdrawal_amount",
    "annual_withdrawal_amount",
    "account_agi",
    "fsc_agi",
)


@dataclass(slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_enum(result: ValidationResult, path: str, value: str, allowed: Iterable[str]) -> None:
    allowed_set = set(allowed)
    if value not in allowed_set:
        expected = ", ".join(sorted(allowed_set))
        result.errors.append(f"{path}: '{value}' is not valid; expected one of [{expected}]")


def _check_month(result: ValidationResult, path: str, value: int | None) -> None:
    if value is not None and not 1 <= value <= 12:
        result.errors.append(f"{path}: must be between 1 and 12")


def _check_finite(result: ValidationResult, request: ProjectionRequest) -> None:
    for item in fields(request):
        value = getattr(request, item.name)
        if isinstance(value, float) and not math.isfinite(value):
            result.errors.append(f"{item.name}: must be a finite number")


def _planned_contributions(request: ProjectionRequest, year: int) -> float:
    """Contributions scheduled for a calendar year, before any balance cap stops them."""
    if year < request.current_year:
        return 0.0
    months = 12
    if request.contribution_end_month is not None and request.contribution_end_year is not None:
        if year > request.contribution_end_year:
            months = 0
        elif year == request.contribution_end_year:
            months = min(12, max(0, request.contribution_end_month))
    if months == 0:
        return 0.0

    recurring = max(0.0, request.recurring_contribution)
    if request.recurring_cadence == "monthly":
        total = recurring * months
    elif request.recurring_cadence == "annual":
        total = recurring
    else:
        total = 0.0
    if year == request.current_year:
        total += max(0.0, request.upfront_contribution)
    return total


def _check_contribution_limits(result: ValidationResult, request: ProjectionRequest, tables: RateTables) -> None:
    work_state = request.work_to_able_state_code or request.state_code
    earned = request.work_to_able_earned_income
    if earned is not None and earned < 0:
        result.errors.append("work_to_able_earned_income: must be >= 0")
    if request.work_to_able_state_code is not None:
        _check_enum(result, "work_to_able_state_code", normalize_state_code(work_state), available_state_codes(tables))
    if request.work_to_able_fpl_year is not None and request.work_to_able_fpl_year not in tables.poverty_levels:
        known = ", ".join(str(year) for year in sorted(tables.poverty_levels))
        result.errors.append(
            f"work_to_able_fpl_year: no poverty guideline for {request.work_to_able_fpl_year}; expected one of [{known}]"
        )
        return

    allowance = work_to_able_allowance(
        tables,
        earned,
        request.work_to_able_has_employer_plan,
        work_state,
        request.work_to_able_fpl_year,
    )
    if earned is not None and earned > 0 and allowance == 0:
        if request.work_to_able_has_employer_plan is not False:
            reason = "work_to_able_has_employer_plan must be false"
        elif poverty_level(tables, work_state, request.work_to_able_fpl_year) is None:
            reason = f"no poverty guideline for state '{normalize_state_code(work_state)}'"
        else:
            reason = "not eligible"
        result.warnings.append(f"work_to_able_earned_income: no work-to-ABLE allowance applies ({reason})")

    # The current year and the first full year after it.
    for year in (request.current_year, request.current_year + 1):
        planned = _planned_contributions(request, year)
        annual_limit = annual_contribution_limit(tables, year)
        if planned > annual_limit + allowance:
            detail = f"annual limit of ${annual_limit:,.0f}"
            if allowance > 0:
                detail += f" plus work-to-ABLE allowance of ${allowance:,.0f}"
            result.errors.append(f"contributions: ${planned:,.0f} planned for {year} exceeds the {detail}")
        elif planned > annual_limit:
            result.warnings.append(
                f"contributions: ${planned:,.0f} planned for {year} exceeds the annual limit of ${annual_limit:,.0f}; "
                f"the excess relies on the work-to-ABLE allowance of ${allowance:,.0f}"
            )


def validate_request(request: ProjectionRequest, tables: RateTables | None = None) -> ValidationResult:
    tables = tables or default_rate_tables()
    result = ValidationResult()

    _check_finite(result, request)
    for name in NON_NEGATIVE_AMOUNTS:
        value = getattr(request, name)
        if math.isfinite(value) and value < 0:
            result.errors.append(f"{name}: must be >= 0")
    if request.plan_max_balance is not None and request.plan_max_balance <= 0:
        result.errors.append("plan_max_balance: must be > 0 when provided")

    _check_enum(result, "recurring_cadence", request.recurring_cadence, CADENCES)
    _check_enum(result, "filing_status", request.filing_status, FILING_STATUSES)
    _check_enum(result, "fsc_filing_status", request.fsc_filing_status, FILING_STATUSES)

    states = available_state_codes(tables)
    _check_enum(result, "state_code", normalize_state_code(request.state_code), states)
    if request.plan_state_code is not None:
        _check_enum(result, "plan_state_code", normalize_state_code(request.plan_state_code), states)

    _check_month(result, "monthly_withdrawal_start_month", request.monthly_withdrawal_start_month)
    _check_month(result, "annual_withdrawal_start_month", request.annual_withdrawal_start_month)
    _check_month(result, "contribution_end_month", request.contribution_end_month)

    if (request.contribution_end_month is None) != (request.contribution_end_year is None):
        result.errors.append("contribution_end_month/contribution_end_year: must be provided together")
    elif request.contribution_end_year is not None and request.contribution_end_year < request.current_year:
        result.warnings.append("contribution_end_year: is before current_year; no contributions will be made")

    if math.isfinite(request.horizon_years) and not MIN_HORIZON_YEARS <= request.horizon_years <= MAX_HORIZON_YEARS:
        result.warnings.append(
            f"horizon_years: {request.horizon_years:g} will be clamped to [{MIN_HORIZON_YEARS:g}, {MAX_HORIZON_YEARS:g}]"
        )
    if math.isfinite(request.annual_return_percent) and request.annual_return_percent < 0:
        result.warnings.append("annual_return_percent: negative returns are projected as 0%")

    if request.withdrawal_plan_decision and request.monthly_withdrawal_start_year < request.current_year:
        result.warnings.append("monthly_withdrawal_start_year: is before current_year; withdrawals start in current_year")

    residence = normalize_state_code(request.state_code)
    plan_state = normalize_state_code(request.plan_state_code)
    if plan_state and plan_state != residence and not state_plan_info(tables, residence).parity:
        result.warnings.append(
            f"plan_state_code: '{plan_state}' differs from state_code '{residence}' without tax parity; "
            "the state ABLE benefit will not apply"
        )

    _check_contribution_limits(result, request, tables)

    if request.is_ssi_beneficiary and request.starting_balance > tables.ssi_balance_limit:
        result.warnings.append(
            f"starting_balance: exceeds the SSI resource limit of ${tables.ssi_balance_limit:,.0f}"
        )

    return result
