"""Small helpers: chunking and payload validation."""

import pytest

from helpdesk.core.errors import InvalidRequest
from helpdesk.db.models.job import JobType
from helpdesk.services.job_payloads import build_payload
from helpdesk.utils.batching import chunked


def test_chunked_preserves_order_with_short_tail():
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]


def test_chunked_empty_input():
    assert list(chunked([], 3)) == []


def test_chunked_rejects_non_positive_size():
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_payload_collapses_duplicates_keeping_first_position():
    payload = build_payload(JobType.BULK_DELETE, ticket_ids=[3, 1, 3, 2, 1])
    assert payload.items == [3, 1, 2]


def test_payload_rejects_bad_ids():
    with pytest.raises(InvalidRequest, match="ticket_ids"):
        build_payload(JobType.BULK_DELETE, ticket_ids=["abc"])

