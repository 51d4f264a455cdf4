import logging
import math
import threading
import time

from batchiter.exceptions import BurstExceeded, DeadlineExceeded, LimiterError


logger = logging.getLogger(__name__)

INF = math.inf


class Limiter:
    """
    Token bucket limiter.

    The bucket holds up to `burst` tokens and is refilled at `rate` tokens
    per second. It starts full. A single limiter can be shared between
    iterators and threads.

    :param rate [float]: tokens added per second, `INF` disables limiting.
    :param burst [int]: bucket capacity.
    :param clock [Callable[[], float]]: monotonic clock, seconds.
    """

    def __init__(self, rate, burst, clock=time.monotonic):
        assert rate >= 0, "'rate' must not be negative"
        assert burst >= 0, "'burst' must not be negative"

        self.rate = rate
        self.burst = burst
        self.clock = clock
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    @classmethod
    def every(cls, interval, burst=1, **kwargs):
        """
        Limiter granting one token per `interval` seconds.
        """
        rate = INF if interval <= 0 else 1.0 / interval
        return cls(rate, burst, **kwargs)

    @property
    def tokens(self):
        with self._lock:
            self._advance(self.clock())
            return self._tokens

    def _advance(self, now):
        elapsed = max(0.0, now - self._last)
        self._last = now
        if self.rate == INF:
            self._tokens = float(self.burst)
            return
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)

    def _restore(self, n):
        with self._lock:
            self._advance(self.clock())
            self._tokens = min(float(self.burst), self._tokens + n)

    def allow(self, n=1):
        """
        Take `n` tokens if they are available right now.
        """
        if self.rate == INF:
            return True
        with self._lock:
            self._advance(self.clock())
            if self._tokens < n:
                return False
            self._tokens -= n
            return True

    def wait(self, ctx, n=1):
        """
        Block until `n` tokens are granted.

        The wait is cut short when `ctx` is cancelled or would expire before
        the tokens accrue; the reserved tokens are handed back in that case.

        :param ctx [Context]: context bounding the wait.
        :param n [int]: number of tokens.
        """
        if self.rate == INF:
            ctx.raise_if_done()
            return
        if n > self.burst:
            raise BurstExceeded(f'rate: Wait(n={n}) exceeds limiter\'s burst {self.burst}')
        ctx.raise_if_done()

        with self._lock:
            self._advance(self.clock())
            self._tokens -= n
            if self._tokens >= 0:
                return
            if self.rate == 0:
                self._tokens += n
                raise LimiterError(f'rate: Wait(n={n}) would block forever')
            delay = -self._tokens / self.rate
            remaining = ctx.remaining()
            if remaining is not None and delay > remaining:
                self._tokens += n
                raise DeadlineExceeded(f'rate: Wait(n={n}) would exceed context deadline')

        logger.debug('waiting %.3fs for %d token(s)', delay, n)
        try:
            ctx.sleep(delay)
        except Exception:
            self._restore(n)
            raise

    def __repr__(self):
        return f'<Limiter rate={self.rate} burst={self.burst}>'
