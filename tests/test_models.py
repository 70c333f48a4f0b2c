import json
from datetime import date

import pytest
from pydantic import ValidationError

from src.releasenotes.domain.models import ReleaseRequest, TargetAudience


def _payload(**overrides):
    body = {
        "repo_link": "https://example.com/acme/widget.git",
        "product_name": "Widget",
        "release_tag": "v1.1",
        "prev_release_tag": "v1.0",
        "release_date": "2024-05-01",
        "target_audience": "NonTechnical",
        "tickets": [{"summary": "Add export", "description": "CSV export."}],
    }
    body.update(overrides)
    return json.dumps(body)


def test_request_parses_from_wire_json():
    req = ReleaseRequest.model_validate_json(_payload())
    assert req.release_date == date(2024, 5, 1)
    assert req.target_audience is TargetAudience.NON_TECHNICAL
    assert req.tickets[0].summary == "Add export"


def test_unknown_audience_is_rejected():
    with pytest.raises(ValidationError):
        ReleaseRequest.model_validate_json(_payload(target_audience="Executives"))


def test_missing_field_is_rejected():
    body = json.loads(_payload())
    body.pop("tickets")
    with pytest.raises(ValidationError):
        ReleaseRequest.model_validate_json(json.dumps(body))


def test_request_is_immutable():
    req = ReleaseRequest.model_validate_json(_payload())
    with pytest.raises(ValidationError):
        req.product_name = "Other"


def test_defaults_prefill_one_blank_ticket():
    req = ReleaseRequest.defaults(today=date(2024, 6, 1))
    assert req.release_date == date(2024, 6, 1)
    assert req.target_audience is TargetAudience.PROJECT_MANAGER
    assert len(req.tickets) == 1
    assert req.tickets[0].summary == ""
