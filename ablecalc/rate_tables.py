"""Immutable rate tables and the bracket lookups used by the tax overlay.

Tables are built once from :mod:`ablecalc.rate_data` and never mutated, so a
single instance can be shared by any number of concurrent projections.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
import math
import re
from types import MappingProxyType
from typing import Mapping

from . import rate_data

logger = logging.getLogger(__name__)

BENEFIT_TYPES = {"deduction", "credit", "none"}
SAVERS_BRACKET_TYPES = {"max", "min", "range", "exact"}

_MONEY_RE = re.compile(r"[^0-9.]")
_RANGE_SEPARATORS = ("–", "-")


class RateTableError(ValueError):
    """Raised when reference data cannot be turned into well-formed tables."""


@dataclass(frozen=True, slots=True)
class TaxBracket:
    filing_status: str
    rate: float
    min: float
    max: float | None = None

    def contains(self, income: float) -> bool:
        return income >= self.min and (self.max is None or income <= self.max)


@dataclass(frozen=True, slots=True)
class StateBenefit:
    type: str
    amount: float
    credit_percent: float


@dataclass(frozen=True, slots=True)
class StateBenefitInfo:
    type: str
    amount: float
    credit_percent: float
    applies: bool
    parity: bool


@dataclass(frozen=True, slots=True)
class StatePlanInfo:
    name: str = ""
    has_plan: bool = False
    parity: bool = False
    residency_required: bool = False
    max_account_balance: float | None = None


@dataclass(frozen=True, slots=True)
class FederalSaversBracket:
    type: str
    label: str
    value: float | None = None
    min: float | None = None
    max: float | None = None

    def matches(self, agi: float) -> bool:
        if self.type == "max":
            return self.value is not None and agi <= self.value
        if self.type == "min":
            return self.value is not None and agi > self.value
        if self.type == "range":
            return self.min is not None and self.max is not None and self.min <= agi <= self.max
        if self.type == "exact":
            return self.value is not None and agi == self.value
        return False


@dataclass(frozen=True, slots=True)
class FederalSaversRow:
    credit_rate: float
    brackets: Mapping[str, FederalSaversBracket]


@dataclass(frozen=True, slots=True)
class FederalSaversResult:
    credit_rate: float
    bracket_label: str | None = None


@dataclass(frozen=True, slots=True)
class RateTables:
    federal_brackets: Mapping[str, tuple[TaxBracket, ...]]
    state_brackets: Mapping[str, Mapping[str, tuple[TaxBracket, ...]]]
    state_benefits: Mapping[str, Mapping[str, StateBenefit]]
    state_plans: Mapping[str, StatePlanInfo]
    savers_rows: tuple[FederalSaversRow, ...]
    savers_limits: Mapping[str, float]
    contribution_limits: Mapping[int, float]
    poverty_levels: Mapping[int, Mapping[str, float]]
    ssi_balance_limit: float = rate_data.SSI_BALANCE_LIMIT


EMPTY_BENEFIT = StateBenefit(type="none", amount=0.0, credit_percent=0.0)
EMPTY_PLAN_INFO = StatePlanInfo()


def normalize_state_code(state_code: str | None) -> str:
    return (state_code or "").strip().upper()


def _build_brackets(filing_status: str, raw: list[tuple[float | None, float]], path: str) -> tuple[TaxBracket, ...]:
    if not raw:
        raise RateTableError(f"{path}: bracket list is empty")
    brackets: list[TaxBracket] = []
    lower = 0.0
    for idx, (upper, rate) in enumerate(raw):
        is_last = idx == len(raw) - 1
        if upper is None and not is_last:
            raise RateTableError(f"{path}[{idx}]: only the top bracket may be unbounded")
        if upper is not None and is_last:
            raise RateTableError(f"{path}[{idx}]: top bracket must be unbounded")
        if upper is not None and upper <= lower:
            raise RateTableError(f"{path}[{idx}]: upper bound must exceed {lower:,.0f}")
        brackets.append(TaxBracket(filing_status=filing_status, rate=float(rate), min=lower, max=upper))
        if upper is not None:
            lower = float(upper)
    return tuple(brackets)


def _parse_money(text: str) -> float | None:
    cleaned = _MONEY_RE.sub("", text)
    if not cleaned:
        return None
    try:
        return float(math.trunc(float(cleaned)))
    except ValueError:
        return None


def parse_savers_bracket(label: str) -> FederalSaversBracket:
    """Parse a Savers Credit AGI label such as ``"$23,001 – $25,000"``."""
    raw = label.strip()
    if not raw:
        raise RateTableError("savers bracket: label is empty")

    if "≤" in raw or "<=" in raw:
        value = _parse_money(raw)
        if value is None:
            raise RateTableError(f"savers bracket '{label}': missing amount")
        return FederalSaversBracket(type="max", label=raw, value=value)

    if ">" in raw or raw.lower().startswith("over"):
        value = _parse_money(raw)
        if value is None:
            raise RateTableError(f"savers bracket '{label}': missing amount")
        return FederalSaversBracket(type="min", label=raw, value=value)

    for separator in _RANGE_SEPARATORS:
        if separator in raw:
            low_text, _, high_text = raw.partition(separator)
            low = _parse_money(low_text)
            high = _parse_money(high_text)
            if low is None:
                raise RateTableError(f"savers bracket '{label}': missing lower bound")
            if high is None:
                return FederalSaversBracket(type="min", label=raw, value=low)
            if high < low:
                raise RateTableError(f"savers bracket '{label}': upper bound below lower bound")
            return FederalSaversBracket(type="range", label=raw, min=low, max=high)

    value = _parse_money(raw)
    if value is None:
        raise RateTableError(f"savers bracket '{label}': missing amount")
    return FederalSaversBracket(type="exact", label=raw, value=value)


def _build_benefit(raw: Mapping[str, float | str], path: str) -> StateBenefit:
    kind = str(raw.get("type", "none")).strip().lower()
    if kind not in BENEFIT_TYPES:
        raise RateTableError(f"{path}.type: '{kind}' is not a benefit type")
    return StateBenefit(
        type=kind,
        amount=float(raw.get("amount", 0.0)),
        credit_percent=float(raw.get("credit_percent", 0.0)),
    )


def load_rate_tables(
    *,
    federal_brackets: Mapping[str, list[tuple[float | None, float]]] = rate_data.FEDERAL_BRACKETS,
    state_brackets: Mapping[str, Mapping[str, list[tuple[float | None, float]]]] = rate_data.STATE_TAX_BRACKETS,
    state_benefits: Mapping[str, Mapping[str, Mapping[str, float | str]]] = rate_data.STATE_ABLE_BENEFITS,
    state_plans: Mapping[str, tuple[str, bool, bool, bool, float | None]] = rate_data.STATE_PLAN_INFO,
    savers_table: list[tuple[float, Mapping[str, str]]] = rate_data.FEDERAL_SAVERS_CREDIT_TABLE,
    savers_limits: Mapping[str, float] = rate_data.FEDERAL_SAVERS_CONTRIBUTION_LIMITS,
    contribution_limits: Mapping[int, float] = rate_data.ANNUAL_CONTRIBUTION_LIMITS,
    poverty_levels: Mapping[int, Mapping[str, float]] = rate_data.FEDERAL_POVERTY_LEVELS,
    ssi_balance_limit: float = rate_data.SSI_BALANCE_LIMIT,
) -> RateTables:
    """Build validated, read-only tables from raw reference data."""
    federal = {
        status: _build_brackets(status, raw, f"federal.{status}")
        for status, raw in federal_brackets.items()
    }
    states = {
        normalize_state_code(code): MappingProxyType(
            {status: _build_brackets(status, raw, f"state.{code}.{status}") for status, raw in by_status.items()}
        )
        for code, by_status in state_brackets.items()
    }
    benefits = {
        normalize_state_code(code): MappingProxyType(
            {status: _build_benefit(raw, f"benefits.{code}.{status}") for status, raw in by_status.items()}
        )
        for code, by_status in state_benefits.items()
    }
    plans = {
        normalize_state_code(code): StatePlanInfo(
            name=name,
            has_plan=has_plan,
            parity=parity,
            residency_required=residency_required,
            max_account_balance=max_balance,
        )
        for code, (name, has_plan, parity, residency_required, max_balance) in state_plans.items()
    }
    rows = tuple(
        FederalSaversRow(
            credit_rate=float(credit_rate),
            brackets=MappingProxyType({status: parse_savers_bracket(label) for status, label in labels.items()}),
        )
        for credit_rate, labels in savers_table
    )
    limits = {int(year): float(limit) for year, limit in contribution_limits.items()}
    if not limits:
        raise RateTableError("contribution_limits: table is empty")
    for year, limit in limits.items():
        if limit <= 0:
            raise RateTableError(f"contribution_limits.{year}: limit must be > 0")
    poverty = {
        int(year): MappingProxyType({normalize_state_code(code): float(amount) for code, amount in by_state.items()})
        for year, by_state in poverty_levels.items()
    }

    logger.debug(
        "Loaded rate tables: %d federal statuses, %d states, %d benefit states, %d savers rows",
        len(federal),
        len(states),
        len(benefits),
        len(rows),
    )
    return RateTables(
        federal_brackets=MappingProxyType(federal),
        state_brackets=MappingProxyType(states),
        state_benefits=MappingProxyType(benefits),
        state_plans=MappingProxyType(plans),
        savers_rows=rows,
        savers_limits=MappingProxyType(dict(savers_limits)),
        contribution_limits=MappingProxyType(limits),
        poverty_levels=MappingProxyType(poverty),
        ssi_balance_limit=float(ssi_balance_limit),
    )


@lru_cache(maxsize=1)
def default_rate_tables() -> RateTables:
    return load_rate_tables()


def find_bracket(brackets: tuple[TaxBracket, ...] | None, income: float) -> TaxBracket | None:
    if not brackets:
        return None
    normalized = max(0.0, income)
    for bracket in brackets:
        if bracket.contains(normalized):
            return bracket
    return None


def federal_rate(tables: RateTables, filing_status: str, taxable_income: float) -> float:
    brackets = tables.federal_brackets.get(filing_status)
    if not brackets or math.isnan(taxable_income):
        return rate_data.DEFAULT_FEDERAL_RATE
    match = find_bracket(brackets, taxable_income)
    return match.rate if match is not None else brackets[-1].rate


def state_rate(tables: RateTables, state_code: str | None, filing_status: str, income: float) -> float:
    code = normalize_state_code(state_code)
    if not code:
        return 0.0
    by_status = tables.state_brackets.get(code)
    if by_status is None:
        return 0.0
    match = find_bracket(by_status.get(filing_status), income)
    return match.rate if match is not None else 0.0


def state_plan_info(tables: RateTables, state_code: str | None) -> StatePlanInfo:
    code = normalize_state_code(state_code)
    if not code:
        return EMPTY_PLAN_INFO
    return tables.state_plans.get(code, EMPTY_PLAN_INFO)


def state_benefit(
    tables: RateTables,
    state_code: str | None,
    filing_status: str,
    plan_state_code: str | None = None,
) -> StateBenefitInfo:
    """Return the residence state's ABLE benefit and whether it applies to the plan used.

    A benefit applies when no plan state is given, when the plan is the
    residence state's own, or when the residence state has tax parity.
    """
    code = normalize_state_code(state_code)
    if not code:
        return StateBenefitInfo(type="none", amount=0.0, credit_percent=0.0, applies=False, parity=False)

    benefit = tables.state_benefits.get(code, {}).get(filing_status, EMPTY_BENEFIT)
    parity = state_plan_info(tables, code).parity
    plan_code = normalize_state_code(plan_state_code)
    applies = not plan_code or plan_code == code or parity
    return StateBenefitInfo(
        type=benefit.type,
        amount=benefit.amount,
        credit_percent=benefit.credit_percent,
        applies=applies,
        parity=parity,
    )


def federal_savers_credit(tables: RateTables, filing_status: str, agi: float) -> FederalSaversResult | None:
    for row in tables.savers_rows:
        bracket = row.brackets.get(filing_status)
        if bracket is not None and bracket.matches(agi):
            return FederalSaversResult(credit_rate=row.credit_rate, bracket_label=bracket.label)
    return None


def savers_contribution_limit(tables: RateTables, filing_status: str) -> float:
    return tables.savers_limits.get(filing_status, 0.0)


def available_state_codes(tables: RateTables) -> list[str]:
    return sorted(tables.state_brackets)


def annual_contribution_limit(tables: RateTables, year: int) -> float:
    """Statutory yearly contribution cap; years outside the table use the nearest known year."""
    limits = tables.contribution_limits
    if year in limits:
        return limits[year]
    known = sorted(limits)
    nearest = known[0] if year < known[0] else known[-1]
    return limits[nearest]


def latest_poverty_year(tables: RateTables) -> int | None:
    return max(tables.poverty_levels, default=None)


def poverty_level(tables: RateTables, state_code: str | None, year: int | None = None) -> float | None:
    code = normalize_state_code(state_code)
    if not code:
        return None
    target = latest_poverty_year(tables) if year is None else year
    if target is None:
        return None
    return tables.poverty_levels.get(target, {}).get(code)


def work_to_able_allowance(
    tables: RateTables,
    earned_income: float | None,
    has_employer_plan: bool | None,
    state_code: str | None,
    year: int | None = None,
) -> float:
    """Extra contribution room for a working beneficiary with no employer retirement plan.

    The allowance is the lesser of earned income and the one-person poverty
    guideline for the state. It is zero unless the beneficiary has earned
    income and has answered that no employer plan covers them.
    """
    if earned_income is None or earned_income <= 0 or has_employer_plan is not False:
        return 0.0
    level = poverty_level(tables, state_code, year)
    if level is None:
        return 0.0
    return min(earned_income, level)
