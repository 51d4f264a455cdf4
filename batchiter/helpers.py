import logging
from functools import update_wrapper

from batchiter.constants import DEFAULT_PER_PAGE
from batchiter.exceptions import BatchIterError, LimiterError
from batchiter.iterator import Batch


logger = logging.getLogger(__name__)


def static_batch(items):
    """
    Batch function returning all of `items` as a single, final batch.
    """
    items = list(items) if items is not None else []

    def next_batch(ctx):
        return Batch(items, False)
    return next_batch


def rate_limit(limiter, next_batch_func=None):
    """
    Gate every call of `next_batch_func` behind `limiter`.

    Can be called directly, `rate_limit(limiter, fetch)`, or used as a
    decorator, `@rate_limit(limiter)`.

    A failed wait (missing limiter, cancelled or expired context, exceeded
    burst) is returned as the batch error and the wrapped function is not
    called.

    :param limiter [Limiter]: token bucket, may be shared.
    :param next_batch_func [Callable[[Context], Batch]]: function to wrap.
    """
    if next_batch_func is None:
        return lambda func: rate_limit(limiter, func)

    def wrapper(ctx):
        if limiter is None:
            return Batch(None, False, LimiterError())
        try:
            limiter.wait(ctx)
        except BatchIterError as exc:
            logger.debug('rate limiter wait failed: %s', exc)
            return Batch(None, False, exc)
        return next_batch_func(ctx)
    return update_wrapper(wrapper, next_batch_func, updated=())


class PageFetcher:
    """
    Batch function over a page numbered resource.

    `fetcher` is called as `fetcher(ctx, page=page, per_page=per_page)` and
    returns the items of that page. Pages start at 1. A page shorter than
    `per_page`, or reaching `limit` items in total, is the last one.
    Items past `limit` are dropped.

    :param fetcher [Callable]: returns the items of one page.
    :param per_page [int]: page size.
    :param limit [int]: maximum number of items to fetch.
    """

    def __init__(self, fetcher, per_page=DEFAULT_PER_PAGE, limit=None):
        self.fetcher = fetcher
        self.page = 1
        self.per_page = per_page
        self.limit = limit
        self.fetched_count = 0

        if self.limit and self.limit < self.per_page:
            self.per_page = self.limit

    def __call__(self, ctx):
        result = self.fetcher(ctx, page=self.page, per_page=self.per_page)
        result = list(result) if result is not None else []
        self.page += 1

        if self.limit:
            # page numbers depend on a constant page size, trim instead
            result = result[:self.limit - self.fetched_count]
        self.fetched_count += len(result)

        finished = len(result) < self.per_page or self.fetched_count == self.limit
        return Batch(result, not finished)
