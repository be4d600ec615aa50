"""Projection request dataclass and JSON loading."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any


class SchemaError(ValueError):
    """Raised when raw JSON cannot be parsed into a projection request."""


def _expect_dict(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaError(f"{path}: expected object")
    return value


def _require(data: dict[str, Any], key: str, path: str) -> Any:
    if key not in data:
        raise SchemaError(f"{path}.{key}: missing required field")
    return data[key]


def _optional(data: dict[str, Any], key: str, default: Any = None) -> Any:
    return data.get(key, default)


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool):
        raise SchemaError(f"{path}: expected number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SchemaError(f"{path}: expected number") from exc


def _integer(value: Any, path: str) -> int:
    number = _number(value, path)
    if not number.is_integer():
        raise SchemaError(f"{path}: expected whole number")
    return int(number)


def _optional_number(data: dict[str, Any], key: str, path: str) -> float | None:
    value = _optional(data, key)
    return None if value is None else _number(value, f"{path}.{key}")


def _optional_integer(data: dict[str, Any], key: str, path: str) -> int | None:
    value = _optional(data, key)
    return None if value is None else _integer(value, f"{path}.{key}")


def _flag(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise SchemaError(f"{path}: expected boolean")
    return value


@dataclass(slots=True)
class ProjectionRequest:
    starting_balance: float
    upfront_contribution: float
    recurring_contribution: float
    recurring_cadence: str
    monthly_withdrawal_amount: float
    monthly_withdrawal_start_month: int
    monthly_withdrawal_start_year: int
    withdrawal_plan_decision: bool
    annual_return_percent: float
    horizon_years: float
    current_year: int
    is_ssi_beneficiary: bool
    filing_status: str
    account_agi: float
    state_code: str
    fsc_filing_status: str
    fsc_agi: float
    fsc_eligible_criteria_met: bool
    plan_max_balance: float | None = None
    contribution_end_month: int | None = None
    contribution_end_year: int | None = None
    plan_state_code: str | None = None
    annual_withdrawal_amount: float = 0.0
    annual_withdrawal_start_month: int | None = None
    annual_withdrawal_start_year: int | None = None
    work_to_able_earned_income: float | None = None
    work_to_able_has_employer_plan: bool | None = None
    work_to_able_state_code: str | None = None
    work_to_able_fpl_year: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "request") -> "ProjectionRequest":
        def num(key: str) -> float:
            return _number(_require(data, key, path), f"{path}.{key}")

        def whole(key: str) -> int:
            return _integer(_require(data, key, path), f"{path}.{key}")

        def flag(key: str) -> bool:
            return _flag(_require(data, key, path), f"{path}.{key}")

        plan_state = _optional(data, "plan_state_code")
        employer_plan = _optional(data, "work_to_able_has_employer_plan")
        work_state = _optional(data, "work_to_able_state_code")
        return cls(
            starting_balance=num("starting_balance"),
            upfront_contribution=num("upfront_contribution"),
            recurring_contribution=num("recurring_contribution"),
            recurring_cadence=str(_require(data, "recurring_cadence", path)),
            monthly_withdrawal_amount=num("monthly_withdrawal_amount"),
            monthly_withdrawal_start_month=whole("monthly_withdrawal_start_month"),
            monthly_withdrawal_start_year=whole("monthly_withdrawal_start_year"),
            withdrawal_plan_decision=flag("withdrawal_plan_decision"),
            annual_return_percent=num("annual_return_percent"),
            horizon_years=num("horizon_years"),
            current_year=whole("current_year"),
            is_ssi_beneficiary=flag("is_ssi_beneficiary"),
            filing_status=str(_require(data, "filing_status", path)),
            account_agi=num("account_agi"),
            state_code=str(_require(data, "state_code", path)),
            fsc_filing_status=str(_require(data, "fsc_filing_status", path)),
            fsc_agi=num("fsc_agi"),
            fsc_eligible_criteria_met=flag("fsc_eligible_criteria_met"),
            plan_max_balance=_optional_number(data, "plan_max_balance", path),
            contribution_end_month=_optional_integer(data, "contribution_end_month", path),
            contribution_end_year=_optional_integer(data, "contribution_end_year", path),
            plan_state_code=str(plan_state) if plan_state is not None else None,
            annual_withdrawal_amount=_optional_number(data, "annual_withdrawal_amount", path) or 0.0,
            annual_withdrawal_start_month=_optional_integer(data, "annual_withdrawal_start_month", path),
            annual_withdrawal_start_year=_optional_integer(data, "annual_withdrawal_start_year", path),
            work_to_able_earned_income=_optional_number(data, "work_to_able_earned_income", path),
            work_to_able_has_employer_plan=(
                _flag(employer_plan, f"{path}.work_to_able_has_employer_plan") if employer_plan is not None else None
            ),
            work_to_able_state_code=str(work_state) if work_state is not None else None,
            work_to_able_fpl_year=_optional_integer(data, "work_to_able_fpl_year", path),
        )


def load_request(path: str | Path) -> ProjectionRequest:
    """Load a projection request JSON file into a typed dataclass."""
    source = Path(path)
    raw = json.loads(source.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise SchemaError("request: root must be a JSON object")
    return ProjectionRequest.from_dict(_expect_dict(raw, "request"))
