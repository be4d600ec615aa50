import copy
import json
from pathlib import Path

from ablecalc.schema import ProjectionRequest


def write_request(tmp_path: Path, data: dict, filename: str = "request.json") -> Path:
    path = tmp_path / filename
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def clone_request(data: dict) -> dict:
    return copy.deepcopy(data)


def make_request(data: dict, **overrides) -> ProjectionRequest:
    merged = clone_request(data)
    merged.update(overrides)
    return ProjectionRequest.from_dict(merged)
