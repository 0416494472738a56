"""Tests for the policy request queue and issued-credential index."""
import pytest

from insurechain.core.exceptions import NotFoundError, ValidationError
from insurechain.intake import (
    POLICY_CREDENTIAL_TYPE,
    PolicyRequestQueue,
    RequestStatus,
    build_policy_credential,
)

from tests.fakes import INSURER_ADDRESS, PATIENT_ADDRESS


def _append(queue: PolicyRequestQueue, n: int = 1, **overrides):
    fields = {
        "patient_did": f"did:key:patient{n}",
        "patient_address": PATIENT_ADDRESS,
        "coverage_amount": str(1000 * n),
        "details": {"plan": "basic"},
    }
    fields.update(overrides)
    return queue.append(**fields)


def test_append_assigns_increasing_ids(queue):
    first = _append(queue, 1)
    second = _append(queue, 2)
    assert second.id > first.id
    assert first.status == RequestStatus.PENDING
    assert first.created_at is not None


def test_list_preserves_insertion_order(queue):
    created = [_append(queue, n) for n in range(1, 6)]
    listed = queue.list()
    assert [r.id for r in listed] == [r.id for r in created]
    assert [r.patient_did for r in listed] == [f"did:key:patient{n}" for n in range(1, 6)]


def test_list_does_not_dedup(queue):
    _append(queue, 1)
    _append(queue, 1)
    assert len(queue.list()) == 2


def test_list_empty(queue):
    assert queue.list() == []


def test_details_default_to_empty_map(queue):
    request = _append(queue, 1, details=None)
    assert queue.get(request.id).details == {}


def test_update_status_to_issued_once(queue):
    request = _append(queue)
    assert queue.update_status(request.id, RequestStatus.ISSUED, vc_cid="bafk1", onchain_policy_id="7")

    stored = queue.get(request.id)
    assert stored.status == RequestStatus.ISSUED
    assert stored.vc_cid == "bafk1"
    assert stored.onchain_policy_id == "7"

    # Second issuance is ignored and keeps the first artifacts
    assert queue.update_status(request.id, RequestStatus.ISSUED, vc_cid="bafk2") is False
    assert queue.get(request.id).vc_cid == "bafk1"


def test_update_status_accepts_wire_value(queue):
    request = _append(queue)
    assert queue.update_status(request.id, "issued")
    assert queue.get(request.id).status == RequestStatus.ISSUED


def test_update_status_cannot_return_to_pending(queue):
    request = _append(queue)
    queue.update_status(request.id, RequestStatus.ISSUED)
    with pytest.raises(ValidationError) as exc_info:
        queue.update_status(request.id, RequestStatus.PENDING)
    assert exc_info.value.code == "REQUEST_ALREADY_ISSUED"


def test_update_status_unknown_id(queue):
    with pytest.raises(NotFoundError):
        queue.update_status(999, RequestStatus.ISSUED)


def test_get_unknown_returns_none(queue):
    assert queue.get(42) is None


def test_credential_index_returns_latest(queue):
    queue.record_credential("1", {"n": 1}, "bafk-old")
    queue.record_credential("1", {"n": 2}, "bafk-new", request_id=1, onchain_policy_id="3")
    issued = queue.get_credential("1")
    assert issued.cid == "bafk-new"
    assert issued.vc == {"n": 2}
    assert issued.onchain_policy_id == "3"
    assert queue.get_credential("2") is None


def test_build_policy_credential_links_request(queue):
    request = _append(queue, 3)
    credential = build_policy_credential(request, INSURER_ADDRESS, "did:key:insurer")

    assert POLICY_CREDENTIAL_TYPE in credential["type"]
    assert credential["issuer"] == {"id": "did:key:insurer"}
    subject = credential["credentialSubject"]
    assert subject["id"] == "did:key:patient3"
    assert subject["policyId"] == str(request.id)
    assert subject["beneficiary"] == PATIENT_ADDRESS
    assert subject["insurer"] == INSURER_ADDRESS
    assert subject["coverageAmount"] == "3000"
