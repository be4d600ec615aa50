"""Tax bracket, ABLE benefit and Savers Credit reference data."""

from __future__ import annotations

from typing import Final

BASE_TAX_YEAR: Final[int] = 2024

FILING_STATUSES: Final[tuple[str, ...]] = (
    "single",
    "married_filing_jointly",
    "married_filing_separately",
    "head_of_household",
)

# Countable resource limit applied to ABLE balances for SSI recipients.
SSI_BALANCE_LIMIT: Final[float] = 100_000.0

# Used when a filing status has no federal schedule.
DEFAULT_FEDERAL_RATE: Final[float] = 0.10

# Brackets are (upper_bound, marginal_rate). Upper bound None means infinity.
FEDERAL_BRACKETS: Final[dict[str, list[tuple[float | None, float]]]] = {
    "single": [
        (11_600.0, 0.10),
        (47_150.0, 0.12),
        (100_525.0, 0.22),
        (191_950.0, 0.24),
        (243_725.0, 0.32),
        (609_350.0, 0.35),
        (None, 0.37),
    ],
    "married_filing_jointly": [
        (23_200.0, 0.10),
        (94_300.0, 0.12),
        (201_050.0, 0.22),
        (383_900.0, 0.24),
        (487_450.0, 0.32),
        (731_200.0, 0.35),
        (None, 0.37),
    ],
    "married_filing_separately": [
        (11_600.0, 0.10),
        (47_150.0, 0.12),
        (100_525.0, 0.22),
        (191_950.0, 0.24),
        (243_725.0, 0.32),
        (365_600.0, 0.35),
        (None, 0.37),
    ],
    "head_of_household": [
        (16_550.0, 0.10),
        (63_100.0, 0.12),
        (100_500.0, 0.22),
        (191_950.0, 0.24),
        (243_700.0, 0.32),
        (609_350.0, 0.35),
        (None, 0.37),
    ],
}

STATE_BASE_RATES: Final[dict[str, float]] = {
    "AL": 0.0500,
    "AK": 0.0000,
    "AZ": 0.0250,
    "AR": 0.0440,
    "CA": 0.0930,
    "CO": 0.0440,
    "CT": 0.0500,
    "DE": 0.0520,
    "FL": 0.0000,
    "GA": 0.0549,
    "HI": 0.0800,
    "ID": 0.0580,
    "IL": 0.0495,
    "IN": 0.0305,
    "IA": 0.0570,
    "KS": 0.0520,
    "KY": 0.0400,
    "LA": 0.0425,
    "ME": 0.0715,
    "MD": 0.0575,
    "MA": 0.0500,
    "MI": 0.0425,
    "MN": 0.0680,
    "MS": 0.0470,
    "MO": 0.0480,
    "MT": 0.0590,
    "NE": 0.0584,
    "NV": 0.0000,
    "NH": 0.0000,
    "NJ": 0.0637,
    "NM": 0.0490,
    "NY": 0.0650,
    "NC": 0.0450,
    "ND": 0.0250,
    "OH": 0.0350,
    "OK": 0.0475,
    "OR": 0.0875,
    "PA": 0.0307,
    "RI": 0.0599,
    "SC": 0.0640,
    "SD": 0.0000,
    "TN": 0.0000,
    "TX": 0.0000,
    "UT": 0.0465,
    "VT": 0.0660,
    "VA": 0.0575,
    "WA": 0.0000,
    "WV": 0.0512,
    "WI": 0.0530,
    "WY": 0.0000,
    "DC": 0.0850,
}


def _flat_state_brackets(rate: float) -> dict[str, list[tuple[float | None, float]]]:
    return {status: [(None, rate)] for status in FILING_STATUSES}


def _build_state_tax_brackets() -> dict[str, dict[str, list[tuple[float | None, float]]]]:
    by_state = {state: _flat_state_brackets(rate) for state, rate in STATE_BASE_RATES.items()}

    # Approximate progressive schedules for states where filing status matters.
    ca_single = [
        (10_756.0, 0.01),
        (25_499.0, 0.02),
        (40_245.0, 0.04),
        (55_866.0, 0.06),
        (70_606.0, 0.08),
        (360_659.0, 0.093),
        (432_787.0, 0.103),
        (721_314.0, 0.113),
        (None, 0.123),
    ]
    ca_joint = [
        (21_512.0, 0.01),
        (50_998.0, 0.02),
        (80_490.0, 0.04),
        (111_732.0, 0.06),
        (141_212.0, 0.08),
        (721_318.0, 0.093),
        (865_574.0, 0.103),
        (1_442_628.0, 0.113),
        (None, 0.123),
    ]
    by_state["CA"] = {
        "single": ca_single,
        "married_filing_jointly": ca_joint,
        "married_filing_separately": ca_single,
        "head_of_household": [
            (21_527.0, 0.01),
            (51_001.0, 0.02),
            (65_747.0, 0.04),
            (81_368.0, 0.06),
            (96_108.0, 0.08),
            (490_493.0, 0.093),
            (588_593.0, 0.103),
            (980_987.0, 0.113),
            (None, 0.123),
        ],
    }

    ny_single = [
        (8_500.0, 0.04),
        (11_700.0, 0.045),
        (13_900.0, 0.0525),
        (80_650.0, 0.055),
        (215_400.0, 0.06),
        (1_077_550.0, 0.0685),
        (5_000_000.0, 0.0965),
        (25_000_000.0, 0.103),
        (None, 0.109),
    ]
    by_state["NY"] = {
        "single": ny_single,
        "married_filing_jointly": [
            (17_150.0, 0.04),
            (23_600.0, 0.045),
            (27_900.0, 0.0525),
            (161_550.0, 0.055),
            (323_200.0, 0.06),
            (2_155_350.0, 0.0685),
            (5_000_000.0, 0.0965),
            (25_000_000.0, 0.103),
            (None, 0.109),
        ],
        "married_filing_separately": ny_single,
        "head_of_household": [
            (12_800.0, 0.04),
            (17_650.0, 0.045),
            (20_900.0, 0.0525),
            (107_650.0, 0.055),
            (269_300.0, 0.06),
            (1_616_450.0, 0.0685),
            (5_000_000.0, 0.0965),
            (25_000_000.0, 0.103),
            (None, 0.109),
        ],
    }

    return by_state


STATE_TAX_BRACKETS: Final[dict[str, dict[str, list[tuple[float | None, float]]]]] = _build_state_tax_brackets()


def _benefit(kind: str, single: float, joint: float | None = None, credit_percent: float = 0.0) -> dict[str, dict[str, float | str]]:
    joint_amount = single if joint is None else joint
    return {
        status: {
            "type": kind,
            "amount": joint_amount if status == "married_filing_jointly" else single,
            "credit_percent": credit_percent,
        }
        for status in FILING_STATUSES
    }


# State ABLE contribution benefits. "amount" caps the deduction, or the credit
# itself for credit states; "credit_percent" applies to contributions.
STATE_ABLE_BENEFITS: Final[dict[str, dict[str, dict[str, float | str]]]] = {
    "AZ": _benefit("deduction", 2_000.0, 4_000.0),
    "IL": _benefit("deduction", 10_000.0, 20_000.0),
    "IN": _benefit("credit", 500.0, credit_percent=0.20),
    "KS": _benefit("deduction", 3_000.0, 6_000.0),
    "MO": _benefit("deduction", 8_000.0, 16_000.0),
    "NY": _benefit("deduction", 5_000.0, 10_000.0),
    "OH": _benefit("deduction", 4_000.0),
    "PA": _benefit("deduction", 18_000.0, 36_000.0),
    "UT": _benefit("credit", 114.0, 228.0, credit_percent=0.0465),
    "VA": _benefit("deduction", 2_000.0),
}

# name, has_plan, parity, residency_required, max_account_balance
STATE_PLAN_INFO: Final[dict[str, tuple[str, bool, bool, bool, float | None]]] = {
    "AZ": ("AZ ABLE", True, True, False, 539_000.0),
    "CA": ("CalABLE", True, False, False, 529_000.0),
    "FL": ("ABLE United", True, False, True, 418_000.0),
    "IL": ("Illinois ABLE", True, False, False, 450_000.0),
    "IN": ("INvestABLE Indiana", True, False, False, 450_000.0),
    "KS": ("Kansas ABLE", True, True, False, 508_000.0),
    "MO": ("MO ABLE", True, True, False, 550_000.0),
    "NY": ("NY ABLE", True, False, False, 520_000.0),
    "OH": ("STABLE Account", True, False, False, 538_000.0),
    "PA": ("PA ABLE", True, True, False, 511_758.0),
    "TX": ("Texas ABLE", True, False, False, 500_000.0),
    "UT": ("ABLE Utah", True, False, False, 540_000.0),
    "VA": ("ABLEnow", True, False, False, 550_000.0),
    "WI": ("", False, False, False, None),
}

# Retirement Savings Contributions Credit AGI table, one row per credit rate,
# keyed by filing status. Labels follow the published IRS table.
FEDERAL_SAVERS_CREDIT_TABLE: Final[list[tuple[float, dict[str, str]]]] = [
    (
        0.50,
        {
            "single": "≤ $23,000",
            "married_filing_jointly": "≤ $46,000",
            "married_filing_separately": "≤ $23,000",
            "head_of_household": "≤ $34,500",
        },
    ),
    (
        0.20,
        {
            "single": "$23,001 – $25,000",
            "married_filing_jointly": "$46,001 – $50,000",
            "married_filing_separately": "$23,001 – $25,000",
            "head_of_household": "$34,501 – $37,500",
        },
    ),
    (
        0.10,
        {
            "single": "$25,001 – $38,250",
            "married_filing_jointly": "$50,001 – $76,500",
            "married_filing_separately": "$25,001 – $38,250",
            "head_of_household": "$37,501 – $57,375",
        },
    ),
    (
        0.00,
        {
            "single": "> $38,250",
            "married_filing_jointly": "> $76,500",
            "married_filing_separately": "> $38,250",
            "head_of_household": "> $57,375",
        },
    ),
]

FEDERAL_SAVERS_CONTRIBUTION_LIMITS: Final[dict[str, float]] = {
    "single": 2_000.0,
    "married_filing_jointly": 4_000.0,
    "married_filing_separately": 2_000.0,
    "head_of_household": 2_000.0,
}

# Statutory yearly ABLE contribution cap (the federal gift tax exclusion).
ANNUAL_CONTRIBUTION_LIMITS: Final[dict[int, float]] = {
    2023: 17_000.0,
    2024: 18_000.0,
    2025: 19_000.0,
    2026: 19_000.0,
}

# HHS poverty guideline for a one-person household, by guideline year.
# Alaska and Hawaii publish their own figures.
_POVERTY_GUIDELINES: Final[dict[int, tuple[float, float, float]]] = {
    # year: (contiguous states and DC, AK, HI)
    2023: (14_580.0, 18_210.0, 16_770.0),
    2024: (15_060.0, 18_810.0, 17_310.0),
    2025: (15_650.0, 19_550.0, 17_990.0),
}


def _build_poverty_levels() -> dict[int, dict[str, float]]:
    by_year: dict[int, dict[str, float]] = {}
    for year, (contiguous, alaska, hawaii) in _POVERTY_GUIDELINES.items():
        levels = {state: contiguous for state in STATE_BASE_RATES}
        levels["AK"] = alaska
        levels["HI"] = hawaii
        by_year[year] = levels
    return by_year


FEDERAL_POVERTY_LEVELS: Final[dict[int, dict[str, float]]] = _build_poverty_levels()
