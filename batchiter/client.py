import logging
from functools import partial
from http import HTTPStatus

from batchiter.base import RequestHandler
from batchiter.constants import NEXT_PAGE_TOKEN_HEADER
from batchiter.exceptions import RequestError, RequestLimitExceeded
from batchiter.helpers import PageFetcher, rate_limit
from batchiter.iterator import Batch, Iterator
from batchiter.settings import batchiter_settings


logger = logging.getLogger(__name__)


class TokenPageSource:
    """
    Batch function over an endpoint paginated by a continuation token.

    The token of the next page is sent and received in the `token_header`
    header. A 204 response, or a page without a next token, ends the
    iteration. A 429 response yields an empty batch so the iterator asks
    again; combine with `rate_limit` to space those attempts.
    """

    def __init__(self, client, path, token_header=NEXT_PAGE_TOKEN_HEADER, **params):
        self.client = client
        self.path = path
        self.token_header = token_header
        self.params = params
        self.next_page_token = ''

    def __call__(self, ctx):
        try:
            response = self.client._dispatcher(
                'get',
                self.path,
                ctx=ctx,
                headers={self.token_header: self.next_page_token},
                **self.params,
            )
        except RequestLimitExceeded as exc:
            logger.warning('request limit exceeded on %s, retry after %s', self.path, exc.retry_after)
            return Batch(None, True)

        if response.status_code == HTTPStatus.NO_CONTENT:
            return Batch(None, False)
        if response.status_code != HTTPStatus.OK:
            raise RequestError(f'unknown status code {response.status_code}', response=response)

        items = response.json()
        self.next_page_token = response.headers.get(self.token_header, '')
        return Batch(items, bool(self.next_page_token))


class ApiClient(RequestHandler):
    """
    HTTP client producing batch functions for paginated endpoints.

    Arguments left out are read from `batchiter_settings`.
    """

    def __init__(self, api_domain=None, api_path=None, access_token=None, timeout=None):
        super().__init__()
        self.api_domain = api_domain or batchiter_settings.API_DOMAIN
        self.api_path = api_path or batchiter_settings.API_PATH
        self.access_token = access_token or batchiter_settings.ACCESS_TOKEN
        self.timeout = timeout if timeout is not None else batchiter_settings.REQUEST_TIMEOUT

    def _get_json(self, path, ctx=None, **params):
        return self._dispatcher('get', path, ctx=ctx, **params).json()

    def token_pages(self, path, token_header=NEXT_PAGE_TOKEN_HEADER, **params):
        """
        Batch function over an endpoint paginated with a next page token header.

        :param path [str]: URL path on the API.
        :param token_header [str]: header carrying the page token.
        :param params [Dict[str, Any]]: querystring params sent with every page.
        """
        return TokenPageSource(self, path, token_header=token_header, **params)

    def numbered_pages(self, path, per_page=None, limit=None, **params):
        """
        Batch function over an endpoint paginated with `page` and `per_page` params.

        :param path [str]: URL path on the API.
        :param per_page [int]: page size.
        :param limit [int]: maximum number of items to fetch.
        :param params [Dict[str, Any]]: querystring params sent with every page.
        """
        per_page = per_page or batchiter_settings.PER_PAGE
        fetcher = partial(self._get_json, path, **params)
        return PageFetcher(fetcher, per_page=per_page, limit=limit)

    def iterate(self, next_batch_func, limiter=None):
        """
        Iterator over `next_batch_func`, rate limited by `limiter` when given.
        """
        if limiter is not None:
            next_batch_func = rate_limit(limiter, next_batch_func)
        return Iterator(next_batch_func)
