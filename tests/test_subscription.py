"""
Tests for ExtrinsicStatusSubscription against a scripted substrate session.
"""
import threading

import pytest
from substrateinterface.exceptions import SubstrateRequestException

from avail_submit.exceptions import SubscriptionClosedError
from avail_submit.subscription import SUBMIT_AND_WATCH, UNWATCH, ExtrinsicStatusSubscription
from avail_submit.types import StatusKind


class ScriptedSubstrate:
    """
    Mimics ``SubstrateInterface.rpc_request`` with a result handler: feeds
    the scripted results one by one, then blocks like a websocket read until
    ``close`` is called.
    """

    def __init__(self, results=(), error=None):
        self.results = list(results)
        self.error = error
        self.requests = []
        self.delivered = 0
        self.closed = False
        self._socket_closed = threading.Event()

    def rpc_request(self, method, params, result_handler=None):
        self.requests.append((method, params))
        if method == UNWATCH:
            return {"result": True}
        if self.error is not None:
            raise self.error

        for update_nr, result in enumerate(self.results):
            self.delivered += 1
            message = {"params": {"subscription": "sub-1", "result": result}}
            handler_result = result_handler(message, update_nr, "sub-1")
            if handler_result is not None:
                return handler_result

        self._socket_closed.wait(5)
        raise ConnectionError("websocket closed")

    def close(self):
        self.closed = True
        self._socket_closed.set()


def start(substrate, **kwargs):
    return ExtrinsicStatusSubscription(substrate, "0x1234", extrinsic_hash="0xee", **kwargs).start(timeout=2)


def test_statuses_in_order_then_unwatch():
    substrate = ScriptedSubstrate(["ready", {"broadcast": ["p"]}, {"inBlock": "0x11"}])

    sub = start(substrate)
    kinds = [sub.receive(timeout=2).kind for _ in range(3)]
    sub.unsubscribe()

    assert kinds == [StatusKind.READY, StatusKind.BROADCAST, StatusKind.IN_BLOCK]
    assert substrate.requests == [(SUBMIT_AND_WATCH, ["0x1234"]), (UNWATCH, ["sub-1"])]
    assert sub.subscription_id == "sub-1"
    assert not substrate.closed


def test_worker_waits_for_caller_between_events():
    substrate = ScriptedSubstrate(["ready", {"broadcast": []}, {"inBlock": "0x11"}])

    sub = start(substrate)
    assert substrate.delivered == 1

    sub.receive(timeout=2)
    # first event was already queued, the socket was not touched again
    assert substrate.delivered == 1

    sub.receive(timeout=2)
    assert substrate.delivered == 2
    sub.unsubscribe()


def test_terminal_status_is_not_unwatched():
    substrate = ScriptedSubstrate(["ready", {"finalized": "0x22"}])

    with start(substrate) as sub:
        sub.receive(timeout=2)
        assert sub.receive(timeout=2).is_finalized

    assert (UNWATCH, ["sub-1"]) not in substrate.requests
    assert sub.released


def test_stream_end_raises_closed():
    substrate = ScriptedSubstrate(["ready", "dropped"])

    with start(substrate) as sub:
        assert sub.receive(timeout=2).kind is StatusKind.READY
        assert sub.receive(timeout=2).kind is StatusKind.DROPPED
        with pytest.raises(SubscriptionClosedError):
            sub.receive(timeout=2)


def test_node_rejection_raised_from_start():
    error = SubstrateRequestException({"code": 1010, "message": "Invalid Transaction"})
    substrate = ScriptedSubstrate(error=error)

    with pytest.raises(SubstrateRequestException) as exc_info:
        start(substrate)
    assert exc_info.value is error


def test_timeout_then_abandon_closes_socket():
    substrate = ScriptedSubstrate(["ready"])
    abandoned = []

    sub = start(substrate, on_abandon=lambda: abandoned.append(True))
    sub.receive(timeout=2)
    with pytest.raises(TimeoutError):
        sub.receive(timeout=0.05)

    sub.unsubscribe()

    assert substrate.closed
    assert abandoned == [True]
    with pytest.raises(SubscriptionClosedError):
        sub.receive(timeout=0.05)


def test_unsubscribe_is_idempotent():
    substrate = ScriptedSubstrate(["ready", {"inBlock": "0x11"}])

    sub = start(substrate)
    sub.unsubscribe()
    sub.unsubscribe()

    assert substrate.requests.count((UNWATCH, ["sub-1"])) == 1


def test_unsubscribe_before_start_is_noop():
    substrate = ScriptedSubstrate(["ready"])
    sub = ExtrinsicStatusSubscription(substrate, "0x1234")

    sub.unsubscribe()

    assert substrate.requests == []
