from batchiter.context import Context
from batchiter.helpers import PageFetcher, rate_limit, static_batch
from batchiter.iterator import Batch, Iterator
from batchiter.ratelimit import INF, Limiter


__all__ = [
    'Batch',
    'Context',
    'INF',
    'Iterator',
    'Limiter',
    'PageFetcher',
    'rate_limit',
    'static_batch',
]
