import pytest

from travelbuddy.errors import ResultStatus, ServiceError
from travelbuddy.models import RequestStatus
from travelbuddy.transitions import BUDDY, PARTICIPANT, Action, apply, response_action


P, A, R, B = RequestStatus.PENDING, RequestStatus.ACCEPTED, RequestStatus.REJECTED, RequestStatus.BLOCKED


def test_buddy_send_creates_pending_or_reopens_rejected():
    assert apply(BUDDY, None, Action.SEND) == P
    assert apply(BUDDY, R, Action.SEND) == P


@pytest.mark.parametrize("current", [P, A, B])
def test_buddy_send_refused_for_existing_relation(current):
    with pytest.raises(ServiceError) as exc:
        apply(BUDDY, current, Action.SEND)
    assert exc.value.status == ResultStatus.VALIDATION_ERROR


def test_buddy_answer_only_from_pending():
    assert apply(BUDDY, P, Action.ACCEPT) == A
    assert apply(BUDDY, P, Action.REJECT) == R
    with pytest.raises(ServiceError) as exc:
        apply(BUDDY, A, Action.REJECT)
    assert exc.value.status == ResultStatus.VALIDATION_ERROR


def test_buddy_remove_and_block_need_accepted_relation():
    assert apply(BUDDY, A, Action.REMOVE) is None
    assert apply(BUDDY, A, Action.BLOCK) == B
    for current in (None, P, R, B):
        with pytest.raises(ServiceError) as exc:
            apply(BUDDY, current, Action.REMOVE)
        assert exc.value.status == ResultStatus.RESOURCE_NOT_FOUND


def test_participant_join_and_rejoin():
    assert apply(PARTICIPANT, None, Action.REQUEST_JOIN) == P
    assert apply(PARTICIPANT, R, Action.REQUEST_JOIN) == P
    for current in (P, A, B):
        with pytest.raises(ServiceError) as exc:
            apply(PARTICIPANT, current, Action.REQUEST_JOIN)
        assert exc.value.status == ResultStatus.INVALID_OPERATION


def test_participant_owner_answers():
    assert apply(PARTICIPANT, P, Action.ACCEPT) == A
    assert apply(PARTICIPANT, P, Action.REJECT) == R
    assert apply(PARTICIPANT, P, Action.BLOCK) == B
    with pytest.raises(ServiceError) as exc:
        apply(PARTICIPANT, A, Action.ACCEPT)
    assert exc.value.status == ResultStatus.INVALID_OPERATION


def test_pending_is_not_an_answer():
    assert response_action(A) == Action.ACCEPT
    with pytest.raises(ServiceError) as exc:
        response_action(P)
    assert exc.value.status == ResultStatus.VALIDATION_ERROR
    assert exc.value.http_status == 400
