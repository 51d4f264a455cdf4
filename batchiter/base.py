import logging
from http import HTTPStatus
from urllib.parse import urljoin

import requests

from batchiter import constants
from batchiter.exceptions import (
    ImproperlyConfigured,
    RequestError,
    Unauthenticated,
    PermissionDenied,
    NotFound,
    InvalidRequest,
    RequestLimitExceeded,
)


logger = logging.getLogger('batchiter.client')


class RequestHandler:

    api_domain: str = None
    api_path: str = None
    access_token: str = None
    timeout: float = None

    error_mapping = {
        HTTPStatus.BAD_REQUEST: InvalidRequest,
        HTTPStatus.UNAUTHORIZED: Unauthenticated,
        HTTPStatus.FORBIDDEN: PermissionDenied,
        HTTPStatus.NOT_FOUND: NotFound,
        HTTPStatus.TOO_MANY_REQUESTS: RequestLimitExceeded,
    }

    def __init__(self):
        self.last_response = None
        self.rate_limit = None
        self.rate_limit_remaining = None

    def _build_url(self, path):
        if not self.api_domain:
            raise ImproperlyConfigured("Missing the 'api_domain' setting for the API client.")
        if not self.api_path:
            raise ImproperlyConfigured("Missing the 'api_path' setting for the API client.")

        domain = self.api_domain
        if not domain.startswith('http'):
            domain = f'https://{domain}'

        domain = domain if domain.endswith('/') else domain + '/'
        base_url = urljoin(domain, self.api_path.lstrip('/'))
        base_url = base_url if base_url.endswith('/') else base_url + '/'

        url = urljoin(base_url, path.lstrip('/'))
        return url.strip('/')

    def _request_timeout(self, ctx):
        if ctx is None:
            return self.timeout
        ctx.raise_if_done()
        remaining = ctx.remaining()
        if remaining is None:
            return self.timeout
        if self.timeout is None:
            return remaining
        return min(remaining, self.timeout)

    def _dispatcher(self, method, path, ctx=None, headers=None, **params):
        """
        :param method [str]: HTTP method.

        :param path [str]: URL path on the API.

        :param ctx [Context]: bounds the request, its remaining time is used as timeout.

        :param headers [Dict[str, str]]: extra request headers.

        :param params [Dict[str, Any]]: Dict of params to be passed as querystring on the request.
        """
        url = self._build_url(path)
        context = {
            'http_method': method.upper(),
            'url': url,
            'params': params,
            'headers': headers,
        }

        self._before_request(context)

        kwargs = {'params': params, 'timeout': self._request_timeout(ctx)}
        request_headers = dict(headers or {})
        if self._get_authorization_header():
            request_headers.update(self._get_authorization_header())
        if request_headers:
            kwargs['headers'] = request_headers

        response = requests.request(method.lower(), url, **kwargs)
        self._after_request(response)

        logger.info(
            "%s %s %d",
            method.upper(),
            response.request.url,
            response.status_code,
            extra=dict(request=response.request, response=response),
        )

        self.handle_response(response)
        self.last_response = response
        return response

    def _get_authorization_header(self):
        if getattr(self, 'access_token', None):
            return {'authorization': 'Bearer {}'.format(self.access_token)}

    def _get_rate_limits(self, response):
        limit = response.headers.get(constants.RATE_LIMIT_HEADER)
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            logger.debug(f'invalid rate limit header. Header {constants.RATE_LIMIT_HEADER} {limit}')
            limit = None

        remaining = response.headers.get(constants.RATE_LIMIT_REMAINING_HEADER)
        try:
            remaining = int(remaining)
        except (TypeError, ValueError):
            logger.debug(f'invalid rate limit remaining header. Header {constants.RATE_LIMIT_REMAINING_HEADER} {remaining}')
            remaining = None

        self.rate_limit = limit
        self.rate_limit_remaining = remaining

    def _before_request(self, context):
        """
        Hook called before the request to be made

        :param context [Dict[str, Any]]: the context of the request.
        """
        if hasattr(self, '_before_request_subscribers'):
            for fn in self._before_request_subscribers:
                fn(context)

    def _after_request(self, response):
        """
        Hook called after the request to be made

        :param response requests.Response: the response object.
        """
        if hasattr(self, '_after_request_subscribers'):
            for fn in self._after_request_subscribers:
                fn(response)

    def before_request_hook(self, func):
        """
        Add a callable to be called before the request be made.

        callable signature: (context) where context is a dict
        containing the request data:
            - http_method,
            - url,
            - params,
            - headers,

        :param func [Callable]: callable to be called before make the request
        """
        assert callable(func), "'func' must be a callable"

        if not hasattr(self, '_before_request_subscribers'):
            self._before_request_subscribers = [func]
        else:
            self._before_request_subscribers.append(func)

    def after_request_hook(self, func):
        """
        Add a callable to be called after the request was made.

        callable signature: (response) - The response object.

        :param func [Callable]: callable to be called after the request
        """
        assert callable(func), "'func' must be a callable"

        if not hasattr(self, '_after_request_subscribers'):
            self._after_request_subscribers = [func]
        else:
            self._after_request_subscribers.append(func)

    @property
    def exceeded_budget(self):
        """
        Indicates if the server reported no requests left for the current window
        """
        if self.rate_limit is not None and self.rate_limit_remaining is not None:
            return self.rate_limit_remaining <= 0

    def handle_response(self, response):
        self._get_rate_limits(response)

        try:
            response.raise_for_status()
        except requests.HTTPError:
            exp_cls = self.error_mapping.get(response.status_code, RequestError)
            if exp_cls is RequestLimitExceeded:
                raise exp_cls(response=response, retry_after=self._get_retry_after(response))
            raise exp_cls(response=response)
        return response

    def _get_retry_after(self, response):
        value = response.headers.get(constants.RETRY_AFTER_HEADER)
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
