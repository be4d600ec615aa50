"""Core month-by-month ABLE account balance simulation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
import logging
import math

logger = logging.getLogger(__name__)

CADENCES = {"monthly", "annual"}


def annual_rate_to_monthly(annual_rate: float) -> float:
    return (1.0 + annual_rate) ** (1.0 / 12.0) - 1.0


@dataclass(frozen=True, slots=True)
class RecurringContribution:
    amount: float
    cadence: str


@dataclass(frozen=True, slots=True)
class WithdrawalPlan:
    monthly_amount: float = 0.0
    monthly_start_month: int = 1
    monthly_start_year: int = 0
    annual_amount: float = 0.0
    annual_start_month: int = 1
    annual_start_year: int = 0


@dataclass(frozen=True, slots=True)
class SimulationConfig:
    starting_balance: float
    annual_return_rate: float
    horizon_years: float
    upfront_contribution: float = 0.0
    recurring_contributions: tuple[RecurringContribution, ...] = ()
    withdrawal_plan: WithdrawalPlan | None = None
    plan_start_month: int = 1
    plan_start_year: int = field(default_factory=lambda: date.today().year)
    plan_max_balance: float | None = None
    ssi_limit: float | None = None
    enforce_ssi: bool = False
    contribution_end_month: int | None = None
    contribution_end_year: int | None = None

    @property
    def monthly_rate(self) -> float:
        return annual_rate_to_monthly(self.annual_return_rate)

    @property
    def month_count(self) -> int:
        # Half-up rounding so 0.5-month horizons behave the same on every platform.
        return max(1, int(math.floor(self.horizon_years * 12 + 0.5)))

    @property
    def ssi_enforced(self) -> bool:
        return self.enforce_ssi and self.ssi_limit is not None

    @property
    def has_contribution_cutoff(self) -> bool:
        return self.contribution_end_month is not None and self.contribution_end_year is not None


@dataclass(frozen=True, slots=True)
class AmortizationRow:
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
    plan_max_stop: bool = False


@dataclass(frozen=True, slots=True)
class SimulationState:
    """Balance plus the two sticky flags carried from one month to the next.

    Neither flag ever resets once set: stopped contributions stay stopped and
    the upfront amount is folded in at most once.
    """

    balance: float
    contributions_stopped: bool = False
    upfront_applied: bool = False


def _calendar_month(config: SimulationConfig, month_index: int) -> tuple[int, int]:
    months_from_start = config.plan_start_month - 1 + month_index
    return (months_from_start % 12) + 1, config.plan_start_year + months_from_start // 12


def _is_contribution_due(cadence: str, month_index: int) -> bool:
    if cadence == "monthly":
        return True
    if cadence == "annual":
        return month_index % 12 == 0
    return False


def _recurring_due(config: SimulationConfig, month_index: int) -> float:
    return sum(
        contribution.amount
        for contribution in config.recurring_contributions
        if _is_contribution_due(contribution.cadence, month_index)
    )


def _planned_withdrawals(config: SimulationConfig, year: int, month: int) -> tuple[float, float]:
    plan = config.withdrawal_plan
    if plan is None:
        return 0.0, 0.0

    monthly = 0.0
    if plan.monthly_amount > 0 and (year, month) >= (plan.monthly_start_year, plan.monthly_start_month):
        monthly = plan.monthly_amount

    annual = 0.0
    if (
        plan.annual_amount > 0
        and month == plan.annual_start_month
        and (year, month) >= (plan.annual_start_year, plan.annual_start_month)
    ):
        annual = plan.annual_amount
    return monthly, annual


def _earnings_on(balance: float, month_index: int, monthly_rate: float) -> float:
    if month_index == 0 or balance <= 0:
        return 0.0
    return balance * monthly_rate


def _limits_reached(config: SimulationConfig, balance: float) -> tuple[bool, bool]:
    """Return (stop_contributions, plan_max_reached) for a balance."""
    plan_max_reached = config.plan_max_balance is not None and balance >= config.plan_max_balance
    ssi_reached = config.ssi_enforced and balance >= config.ssi_limit
    return plan_max_reached or ssi_reached, plan_max_reached


def step_month(config: SimulationConfig, state: SimulationState, month_index: int) -> tuple[SimulationState, AmortizationRow]:
    """Advance the account by one month and return the new state with its row."""
    month, year = _calendar_month(config, month_index)
    monthly_rate = config.monthly_rate
    plan_max = config.plan_max_balance
    stopped = state.contributions_stopped
    opening = state.balance

    if config.has_contribution_cutoff and (year, month) > (config.contribution_end_year, config.contribution_end_month):
        stopped = True
    stop, reached_max = _limits_reached(config, opening)
    stopped = stopped or stop
    plan_max_stop = reached_max

    can_contribute = not stopped and (plan_max is None or opening < plan_max)
    upfront = config.upfront_contribution if not state.upfront_applied and config.upfront_contribution else 0.0
    contribution = upfront + _recurring_due(config, month_index) if can_contribute else 0.0

    before_withdrawals = opening + contribution
    earnings = _earnings_on(before_withdrawals, month_index, monthly_rate)

    # Checked before this month's withdrawals: a contribution that would reach
    # either cap is cancelled even when a same-month withdrawal brings the
    # ending balance back under it.
    projected = before_withdrawals + earnings
    over_plan_max = plan_max is not None and projected >= plan_max
    over_ssi_limit = config.ssi_enforced and projected >= config.ssi_limit
    if can_contribute and (over_plan_max or over_ssi_limit):
        logger.debug(
            "Month %d: contribution of %.2f would bring balance to %.2f (plan max=%s, ssi=%s); cancelled",
            month_index,
            contribution,
            projected,
            over_plan_max,
            over_ssi_limit,
        )
        contribution = 0.0
        stopped = True
        plan_max_stop = plan_max_stop or over_plan_max
        before_withdrawals = opening
        earnings = _earnings_on(before_withdrawals, month_index, monthly_rate)

    upfront_applied = state.upfront_applied or (upfront > 0 and contribution > 0)
    balance = before_withdrawals + earnings

    monthly_planned, annual_planned = _planned_withdrawals(config, year, month)
    planned = monthly_planned + annual_planned
    ssi_forced = 0.0
    if config.ssi_enforced and balance - planned > config.ssi_limit:
        ssi_forced = balance - planned - config.ssi_limit

    requested = planned + ssi_forced
    applied = min(requested, balance) if balance > 0 else 0.0
    # Every component absorbs the same share of a shortfall.
    ratio = applied / requested if requested > 0 else 0.0
    applied_ssi = ssi_forced * ratio
    applied_monthly = monthly_planned * ratio + applied_ssi
    applied_annual = annual_planned * ratio

    balance -= applied
    stop, reached_max = _limits_reached(config, balance)
    stopped = stopped or stop
    plan_max_stop = plan_max_stop or reached_max

    row = AmortizationRow(
        month_index=month_index,
        month=month,
        year=year,
        contributions=contribution,
        earnings=earnings,
        withdrawals=applied,
        monthly_withdrawals=applied_monthly,
        annual_withdrawals=applied_annual,
        ssi_withdrawals=applied_ssi,
        ending_balance=balance,
        monthly_rate=monthly_rate,
        plan_max_stop=plan_max_stop,
    )
    next_state = replace(state, balance=balance, contributions_stopped=stopped, upfront_applied=upfront_applied)
    return next_state, row


def run_simulation(config: SimulationConfig) -> list[AmortizationRow]:
    """Project the account month by month for the configured horizon."""
    state = SimulationState(balance=config.starting_balance)
    rows: list[AmortizationRow] = []
    for month_index in range(config.month_count):
        state, row = step_month(config, state, month_index)
        rows.append(row)

    logger.debug(
        "Simulated %d months from %d-%02d: ending balance %.2f, contributions stopped=%s",
        len(rows),
        config.plan_start_year,
        config.plan_start_month,
        state.balance,
        state.contributions_stopped,
    )
    return rows
