import logging
from collections import namedtuple

from batchiter.constants import STATE
from batchiter.context import Context
from batchiter.exceptions import ImproperlyConfigured


logger = logging.getLogger(__name__)


Batch = namedtuple('Batch', ['items', 'has_more_items', 'error'], defaults=(None,))
Batch.__doc__ = """
Result of a single batch fetch.

:param items [Sequence[T]]: items of the batch, may be None or empty.
:param has_more_items [bool]: True when further fetches may yield items, also
    when this is not known yet (rate limited or filtered responses).
:param error [Exception]: set when the fetch failed, iteration stops.
"""


def _call(next_batch_func, ctx):
    try:
        batch = Batch(*next_batch_func(ctx))
        return batch._replace(items=list(batch.items) if batch.items is not None else [])
    except Exception as exc:
        return Batch(None, False, exc)


class Iterator:
    """
    Iterates item by item over a source that delivers items in batches.

    `next_batch_func` is any callable taking a `Context` and returning a
    `Batch` (or an equivalent tuple). It is called whenever the buffered
    batch is used up. Raising from it is the same as returning a batch with
    the exception as error.

    The iterator is not safe for concurrent use.

    Usage:

        iterator = Iterator(fetch)
        while iterator.advance(ctx):
            handle(iterator.current)
        if iterator.error is not None:
            ...
    """

    def __init__(self, next_batch_func=None):
        self.next_batch_func = next_batch_func
        self._batch = []
        self._pos = 0
        self._state = STATE.ACTIVE
        self._error = None
        self._is_last_batch = False

    def _clear(self):
        self._batch = []
        self._pos = 0

    def _fail(self, error):
        self._clear()
        if self._state != STATE.FAILED:
            logger.warning('batch iteration failed: %s', error)
        self._state = STATE.FAILED
        self._error = error

    def _exhaust(self):
        self._clear()
        self._state = STATE.EXHAUSTED

    def advance(self, ctx=None):
        """
        Prepare the next item for reading with `current`.

        Returns True on success, False when there are no more items or an
        error happened while fetching; consult `error` to tell them apart.

        :param ctx [Context]: passed on to the batch function.
        """
        if ctx is None:
            ctx = Context.background()

        retrying = False
        while True:
            if self.next_batch_func is None:
                self._fail(ImproperlyConfigured())
                return False
            if self._state != STATE.ACTIVE:
                self._clear()
                return False
            if len(self._batch) - self._pos > 1:
                self._pos += 1
                return True
            if self._is_last_batch:
                self._exhaust()
                return False

            if retrying and ctx.done():
                self._fail(ctx.error())
                return False

            logger.debug('fetching next batch')
            items, has_more_items, error = _call(self.next_batch_func, ctx)
            self._batch = items
            self._pos = 0
            self._is_last_batch = not has_more_items

            if error is not None:
                self._fail(error)
                return False
            if not self._batch:
                if not self._is_last_batch:
                    logger.debug('empty batch with more items possible, fetching again')
                    retrying = True
                    continue
                self._exhaust()
                return False
            return True

    @property
    def current(self):
        """
        The current item, or None when there is none.
        """
        if self._pos >= len(self._batch):
            return None
        return self._batch[self._pos]

    @property
    def error(self):
        if self._state == STATE.FAILED:
            return self._error
        return None

    @property
    def state(self):
        return self._state

    def iterate(self, ctx=None):
        while self.advance(ctx):
            yield self.current

    def __iter__(self):
        return self.iterate()
