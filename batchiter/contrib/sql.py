import logging
import re

from batchiter.iterator import Batch


logger = logging.getLogger(__name__)

_ORDER_BY_RE = re.compile(r'\border\s+by\b', re.IGNORECASE)
_LIMIT_RE = re.compile(r'\blimit\b', re.IGNORECASE)
_OFFSET_RE = re.compile(r'\boffset\b', re.IGNORECASE)


def apply_limit_offset(base_query, limit, offset):
    """
    Append LIMIT/OFFSET to `base_query`.

    :param base_query [str]: query with a deterministic ORDER BY and no LIMIT/OFFSET.
    :param limit [int]: rows per page.
    :param offset [int]: rows to skip.
    """
    q = (base_query or '').strip().rstrip(';')

    if not _ORDER_BY_RE.search(q):
        raise ValueError('Offset pagination requires a deterministic ORDER BY in the query.')

    if _LIMIT_RE.search(q) or _OFFSET_RE.search(q):
        raise ValueError('Query must not contain LIMIT/OFFSET; they are applied per batch.')

    return f'{q} LIMIT {int(limit)} OFFSET {int(offset)}'


class OffsetQuerySource:
    """
    Batch function reading a query `rows_per_query` rows at a time.

    Works with any DB-API 2 connection. A page shorter than `rows_per_query`
    is the last one.

    :param connection: DB-API 2 connection.
    :param query [str]: query with ORDER BY, see `apply_limit_offset`.
    :param rows_per_query [int]: page size.
    :param params [Sequence[Any]]: parameters for the query placeholders.
    :param transform [Callable]: applied to every row.
    """

    def __init__(self, connection, query, rows_per_query, params=(), transform=None):
        if rows_per_query <= 0:
            raise ValueError('rows_per_query must be positive.')
        apply_limit_offset(query, limit=rows_per_query, offset=0)

        self.connection = connection
        self.query = query
        self.rows_per_query = rows_per_query
        self.params = params
        self.transform = transform
        self.offset = 0

    def __call__(self, ctx):
        ctx.raise_if_done()

        sql = apply_limit_offset(self.query, limit=self.rows_per_query, offset=self.offset)
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql, self.params)
            rows = cursor.fetchall()
        finally:
            cursor.close()

        logger.debug('fetched %d rows at offset %d', len(rows), self.offset)
        self.offset += self.rows_per_query
        if self.transform is not None:
            rows = [self.transform(row) for row in rows]
        return Batch(rows, len(rows) == self.rows_per_query)
