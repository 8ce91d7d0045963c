"""
subscription.py

Status stream for a submitted extrinsic.

``SubstrateInterface.rpc_request`` only delivers subscription updates to a
callback and blocks until that callback returns a value, so the request runs
on a worker thread. The worker hands over one status at a time and parks
until the caller asks for the next one: the websocket is only ever read by
one thread, and between two ``receive`` calls the caller is free to use the
connection (e.g. to fetch the inclusion block).
"""
import logging
import threading
import time
from collections import deque
from typing import Callable, Optional

from .exceptions import SubscriptionClosedError
from .types import ExtrinsicStatus

logger = logging.getLogger(__name__)

SUBMIT_AND_WATCH = "author_submitAndWatchExtrinsic"
UNWATCH = "author_unwatchExtrinsic"


class ExtrinsicStatusSubscription:
    """
    Receive-next / unsubscribe view over ``author_submitAndWatchExtrinsic``.

    Use as a context manager so the subscription is always released::

        with connection.submit_and_watch_extrinsic(xt) as sub:
            status = sub.receive(timeout=30)
    """

    def __init__(
        self,
        substrate,
        extrinsic_hex: str,
        extrinsic_hash: Optional[str] = None,
        on_abandon: Optional[Callable[[], None]] = None,
    ):
        self._substrate = substrate
        self._extrinsic_hex = extrinsic_hex
        self.extrinsic_hash = extrinsic_hash
        self._on_abandon = on_abandon

        self._cond = threading.Condition()
        self._events = deque()
        self._demand = False      # caller waits for the next event
        self._parked = False      # worker sits in the callback, not on the socket
        self._closed = False      # caller unsubscribed
        self._finished = False    # rpc_request returned or raised
        self._released = False
        self._error: Optional[BaseException] = None

        self.subscription_id: Optional[str] = None
        self._thread = threading.Thread(
            target=self._run, name=f"extrinsic-watch-{(extrinsic_hash or '')[:10]}", daemon=True
        )

    # ------------- worker side -------------
    def _run(self):
        try:
            self._substrate.rpc_request(SUBMIT_AND_WATCH, [self._extrinsic_hex], result_handler=self._handle)
        except Exception as e:
            # handed over to the caller thread, re-raised from receive()/start()
            self._error = e
        finally:
            with self._cond:
                self._finished = True
                self._parked = False
                self._cond.notify_all()

    def _handle(self, message, update_nr, subscription_id):
        self.subscription_id = subscription_id
        status = ExtrinsicStatus.from_rpc(message["params"]["result"])
        logger.debug("Subscription %s update #%d: %s", subscription_id, update_nr, status)

        with self._cond:
            self._events.append(status)
            self._demand = False
            self._parked = True
            self._cond.notify_all()
            while not (self._demand or self._closed):
                self._cond.wait()
            self._parked = False
            closed = self._closed

        if status.is_terminal:
            # node already dropped the subscription
            return status
        if closed:
            self._substrate.rpc_request(UNWATCH, [subscription_id])
            return status
        return None

    # ------------- caller side -------------
    def start(self, timeout: Optional[float] = None) -> "ExtrinsicStatusSubscription":
        """
        Start watching. Waits up to ``timeout`` for the first status so an
        immediate rejection by the node is raised here.
        """
        self._thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._events or self._finished, timeout=timeout)
            if self._finished and not self._events and self._error is not None:
                raise self._error
        return self

    def receive(self, timeout: Optional[float] = None) -> ExtrinsicStatus:
        """
        Next status event.

        Raises:
            TimeoutError: nothing arrived within ``timeout`` seconds
            SubscriptionClosedError: the stream ended
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            if self._released:
                raise SubscriptionClosedError("Subscription was released")
            if not self._events and not self._finished:
                self._demand = True
                self._cond.notify_all()
            while not self._events and not self._finished:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise TimeoutError(f"No extrinsic status within {timeout}s")
                self._cond.wait(remaining)
            if self._events:
                return self._events.popleft()

        if self._error is not None and self.subscription_id is None:
            # the node refused the submission itself
            raise self._error
        if self._error is not None:
            raise SubscriptionClosedError(f"Status stream failed: {self._error}") from self._error
        raise SubscriptionClosedError("Status stream closed")

    def unsubscribe(self, join_timeout: float = 10.0):
        """Release the subscription. Safe to call more than once."""
        with self._cond:
            if self._released:
                return
            self._released = True
            if not self._thread.is_alive() and not self._finished:
                # never started
                return
            self._closed = True
            self._cond.notify_all()
            reading = not self._finished and not self._parked

        if reading:
            # worker is blocked on the socket; closing it is the only way out
            logger.warning("Abandoning status subscription %s, closing websocket", self.subscription_id)
            self._substrate.close()
            if self._on_abandon is not None:
                self._on_abandon()

        self._thread.join(join_timeout)

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()
        return False
