from datetime import date

import pytest

from src.releasenotes.domain.models import ReleaseRequest, TargetAudience, Ticket
from src.releasenotes.domain.validation import any_field_empty


def _request(**overrides) -> ReleaseRequest:
    values = dict(
        repo_link="https://example.com/acme/widget.git",
        product_name="Widget",
        release_tag="v1.1",
        prev_release_tag="v1.0",
        release_date=date(2024, 5, 1),
        target_audience=TargetAudience.TECHNICAL,
        tickets=[Ticket(summary="Add export", description="Users can export reports as CSV.")],
    )
    values.update(overrides)
    return ReleaseRequest(**values)


def test_complete_request_is_accepted():
    assert any_field_empty(_request()) is False


def test_empty_ticket_list_is_rejected_regardless_of_other_fields():
    assert any_field_empty(_request(tickets=[])) is True


@pytest.mark.parametrize("field", ["repo_link", "product_name", "release_tag", "prev_release_tag"])
def test_empty_top_level_string_is_rejected(field):
    assert any_field_empty(_request(**{field: ""})) is True


def test_empty_ticket_summary_or_description_is_rejected():
    tickets = [
        Ticket(summary="Add export", description="CSV export."),
        Ticket(summary="", description="Second ticket without summary."),
    ]
    assert any_field_empty(_request(tickets=tickets)) is True
    assert any_field_empty(_request(tickets=[Ticket(summary="Only summary", description="")])) is True


def test_whitespace_only_fields_are_not_empty():
    assert any_field_empty(_request(product_name=" ")) is False
