import threading
import time

from batchiter.exceptions import Cancelled, DeadlineExceeded


class Context:
    """
    Carries cancellation and an optional deadline into every batch fetch.

    A context is done once `cancel()` was called or its deadline passed.
    Deadlines are expressed on the `time.monotonic` clock.

    :param timeout [float]: seconds from now until the context expires.
    :param deadline [float]: absolute monotonic time at which the context expires.
    """

    def __init__(self, timeout=None, deadline=None):
        if timeout is not None:
            timeout_deadline = time.monotonic() + timeout
            deadline = timeout_deadline if deadline is None else min(deadline, timeout_deadline)
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls):
        return cls()

    def cancel(self):
        self._cancelled.set()

    def remaining(self):
        """
        Seconds left until the deadline, or None when there is no deadline.
        """
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def error(self):
        if self._cancelled.is_set():
            return Cancelled()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceeded()
        return None

    def done(self):
        return self.error() is not None

    def raise_if_done(self):
        err = self.error()
        if err is not None:
            raise err

    def sleep(self, seconds):
        """
        Block for `seconds` unless the context is cancelled or expires first,
        in which case the context error is raised.
        """
        self.raise_if_done()
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._cancelled.wait(remaining)
            self.raise_if_done()
            raise DeadlineExceeded()
        if self._cancelled.wait(seconds):
            raise Cancelled()

    def __repr__(self):
        return f'<Context deadline={self.deadline} done={self.done()}>'
