import pytest

from tests.helpers import clone_request, write_request
from ablecalc.schema import SchemaError, load_request


def test_load_request_rejects_non_object_root(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(SchemaError, match="request: root must be a JSON object"):
        load_request(path)


def test_load_request_requires_required_field(tmp_path, sample_request_dict):
    data = clone_request(sample_request_dict)
    del data["filing_status"]
    path = write_request(tmp_path, data)

    with pytest.raises(SchemaError, match=r"request\.filing_status: missing required field"):
        load_request(path)


@pytest.mark.parametrize(
    ("field", "value", "message"),
    [
        ("starting_balance", "lots", r"request\.starting_balance: expected number"),
        ("starting_balance", True, r"request\.starting_balance: expected number"),
        ("current_year", 2024.5, r"request\.current_year: expected whole number"),
        ("is_ssi_beneficiary", "yes", r"request\.is_ssi_beneficiary: expected boolean"),
        ("contribution_end_month", "soon", r"request\.contribution_end_month: expected number"),
    ],
)
def test_load_request_rejects_bad_values(tmp_path, sample_request_dict, field, value, message):
    data = clone_request(sample_request_dict)
    data[field] = value
    path = write_request(tmp_path, data)

    with pytest.raises(SchemaError, match=message):
        load_request(path)


def test_load_request_accepts_numeric_strings(tmp_path, sample_request_dict):
    data = clone_request(sample_request_dict)
    data["starting_balance"] = "1250.50"
    data["monthly_withdrawal_start_month"] = "06"
    path = write_request(tmp_path, data)

    request = load_request(path)
    assert request.starting_balance == 1250.5
    assert request.monthly_withdrawal_start_month == 6


def test_optional_fields_default(tmp_path, sample_request_dict):
    path = write_request(tmp_path, sample_request_dict)

    request = load_request(path)
    assert request.plan_max_balance is None
    assert request.plan_state_code is None
    assert request.annual_withdrawal_amount == 0.0
    assert request.annual_withdrawal_start_month is None
    assert request.contribution_end_year is None


def test_work_to_able_fields_load(tmp_path, sample_request_dict):
    data = clone_request(sample_request_dict)
    data["work_to_able_earned_income"] = "12000"
    data["work_to_able_has_employer_plan"] = False
    data["work_to_able_state_code"] = "ak"
    data["work_to_able_fpl_year"] = 2024
    path = write_request(tmp_path, data)

    request = load_request(path)
    assert request.work_to_able_earned_income == 12_000.0
    assert request.work_to_able_has_employer_plan is False
    assert request.work_to_able_state_code == "ak"
    assert request.work_to_able_fpl_year == 2024


def test_work_to_able_employer_plan_must_be_boolean(tmp_path, sample_request_dict):
    data = clone_request(sample_request_dict)
    data["work_to_able_has_employer_plan"] = "no"
    path = write_request(tmp_path, data)

    with pytest.raises(SchemaError, match=r"request\.work_to_able_has_employer_plan: expected boolean"):
        load_request(path)
