import json
from pathlib import Path

import pytest

SAMPLE_REQUEST = Path(__file__).resolve().parent.parent / "sample_request.json"


@pytest.fixture
def sample_request_dict() -> dict:
    return json.loads(SAMPLE_REQUEST.read_text(encoding="utf-8"))
