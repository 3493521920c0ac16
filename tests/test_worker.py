"""
Queue message dispatch and the one-off CLI entry point.
"""
import asyncio

import pytest

from app.schemas.risk_message import MessageType, Priority, RiskScoreMessage
from app.workers.risk_score_worker import RiskScoreWorker, _parse_message


class StubService:
    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    async def calculate_risk_score(self, membership_id):
        self.calls.append(("individual", membership_id))
        if self.fail_with:
            raise self.fail_with
        return membership_id

    async def calculate_many(self, membership_ids, box_id=None):
        self.calls.append(("batch", tuple(membership_ids)))
        return "batch-result"

    async def calculate_box_risk_scores(self, box_id):
        self.calls.append(("box", box_id))
        return "box-result"


def _process(worker, **fields):
    return asyncio.run(worker.process(RiskScoreMessage(**fields)))


class TestDispatch:
    def test_individual(self):
        service = StubService()
        assert _process(RiskScoreWorker(service), type="individual", membership_id="m-1") == "m-1"
        assert service.calls == [("individual", "m-1")]

    def test_batch(self):
        service = StubService()
        result = _process(RiskScoreWorker(service), type="batch", membership_ids=["a", "b"], priority="high")
        assert result == "batch-result"
        assert service.calls == [("batch", ("a", "b"))]

    def test_box(self):
        service = StubService()
        assert _process(RiskScoreWorker(service), type="box", box_id="box-1") == "box-result"
        assert service.calls == [("box", "box-1")]

    @pytest.mark.parametrize("fields", [
        {"type": "individual"},
        {"type": "batch", "membership_ids": []},
        {"type": "box"},
    ])
    def test_missing_target_rejected(self, fields):
        service = StubService()
        with pytest.raises(ValueError):
            _process(RiskScoreWorker(service), **fields)
        assert service.calls == []

    def test_individual_failure_reraised_for_retry(self):
        worker = RiskScoreWorker(StubService(fail_with=RuntimeError("db gone")))
        with pytest.raises(RuntimeError, match="db gone"):
            _process(worker, type="individual", membership_id="m-1")


class TestCommandLine:
    def test_box_id(self):
        message = _parse_message(["--box-id", "box-7"])
        assert message.type == MessageType.BOX
        assert message.box_id == "box-7"
        assert message.priority == Priority.NORMAL

    def test_membership_id(self):
        message = _parse_message(["--membership-id", "m-9"])
        assert message.type == MessageType.INDIVIDUAL
        assert message.membership_id == "m-9"

    def test_target_required(self):
        with pytest.raises(SystemExit):
            _parse_message([])

    def test_targets_are_exclusive(self):
        with pytest.raises(SystemExit):
            _parse_message(["--box-id", "b", "--membership-id", "m"])
