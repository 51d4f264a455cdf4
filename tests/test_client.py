import json
from unittest import mock

import pytest
import requests

from batchiter import Context, Limiter
from batchiter.client import ApiClient, TokenPageSource
from batchiter.exceptions import (
    ImproperlyConfigured,
    NotFound,
    RequestError,
    RequestLimitExceeded,
    Unauthenticated,
)


def make_response(status_code, body=None, headers=None, url='https://api.example.com/v1/users'):
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(body).encode() if body is not None else b''
    response.headers.update(headers or {})
    response.url = url
    response.request = requests.Request('GET', url).prepare()
    return response


def get_all_values(iterator, ctx=None):
    values = []
    while iterator.advance(ctx):
        values.append(iterator.current)
    return values, iterator.error


@pytest.fixture
def client():
    return ApiClient(api_domain='api.example.com', api_path='v1', access_token='secret', timeout=10)


class UsersServer:
    """Serves users in pages linked by the X-NextPageToken header."""

    def __init__(self, pages=None):
        self.pages = pages or {
            '': (['Alice', 'Bob'], 'A'),
            'A': (['Charlie'], 'B'),
        }
        self.calls = []

    def __call__(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        token = kwargs['headers']['X-NextPageToken']
        if token not in self.pages:
            return make_response(204)
        users, next_token = self.pages[token]
        return make_response(200, users, headers={'X-NextPageToken': next_token})


def test_build_url(client):
    assert client._build_url('/users/') == 'https://api.example.com/v1/users'


def test_build_url_without_api_path():
    client = ApiClient(api_domain='api.example.com', api_path=None)
    client.api_path = None

    with pytest.raises(ImproperlyConfigured):
        client._build_url('users')


def test_settings_are_used_as_defaults(monkeypatch):
    monkeypatch.setenv('BATCHITER_API_DOMAIN', 'http://localhost:8080')
    monkeypatch.setenv('BATCHITER_API_PATH', 'api')
    monkeypatch.setenv('BATCHITER_REQUEST_TIMEOUT', '2.5')

    client = ApiClient()

    assert client._build_url('users') == 'http://localhost:8080/api/users'
    assert client.timeout == 2.5
    assert client.access_token is None


def test_token_pages(client):
    server = UsersServer()

    with mock.patch('requests.request', side_effect=server):
        values, error = get_all_values(client.iterate(client.token_pages('users')))

    assert error is None
    assert values == ['Alice', 'Bob', 'Charlie']
    assert [call[2]['headers']['X-NextPageToken'] for call in server.calls] == ['', 'A', 'B']
    assert server.calls[0][2]['headers']['authorization'] == 'Bearer secret'
    assert server.calls[0][0] == 'get'
    assert server.calls[0][1] == 'https://api.example.com/v1/users'


def test_token_pages_without_next_token_ends_iteration(client):
    server = UsersServer(pages={'': (['Alice'], '')})

    with mock.patch('requests.request', side_effect=server):
        values, error = get_all_values(client.iterate(client.token_pages('users')))

    assert error is None
    assert values == ['Alice']
    assert len(server.calls) == 1


def test_token_pages_custom_header_and_params(client):
    responses = [
        make_response(200, [1, 2], headers={'X-Cursor': 'next'}),
        make_response(204),
    ]

    with mock.patch('requests.request', side_effect=responses) as request:
        source = client.token_pages('numbers', token_header='X-Cursor', active=True)
        values, error = get_all_values(client.iterate(source))

    assert values == [1, 2]
    assert request.call_args_list[1][1]['headers']['X-Cursor'] == 'next'
    assert request.call_args_list[1][1]['params'] == {'active': True}


def test_token_pages_too_many_requests_is_retried(client):
    responses = [
        make_response(200, ['Alice'], headers={'X-NextPageToken': 'A'}),
        make_response(429, headers={'Retry-After': '1'}),
        make_response(200, ['Bob'], headers={'X-NextPageToken': 'B'}),
        make_response(204),
    ]

    with mock.patch('requests.request', side_effect=responses):
        values, error = get_all_values(client.iterate(client.token_pages('users')))

    assert error is None
    assert values == ['Alice', 'Bob']


def test_token_pages_error_is_latched(client):
    responses = [
        make_response(200, ['Alice'], headers={'X-NextPageToken': 'A'}),
        make_response(404),
    ]

    with mock.patch('requests.request', side_effect=responses) as request:
        iterator = client.iterate(client.token_pages('users'))
        values, error = get_all_values(iterator)
        assert iterator.advance() is False

    assert values == ['Alice']
    assert isinstance(error, NotFound)
    assert error.response.status_code == 404
    assert request.call_count == 2


def test_token_pages_unknown_status(client):
    with mock.patch('requests.request', return_value=make_response(202, [])):
        with pytest.raises(RequestError, match='unknown status code 202'):
            TokenPageSource(client, 'users')(Context())


def test_token_pages_rate_limited(client):
    server = UsersServer()
    limiter = Limiter(100, 1)

    with mock.patch('requests.request', side_effect=server):
        values, error = get_all_values(client.iterate(client.token_pages('users'), limiter=limiter))

    assert error is None
    assert values == ['Alice', 'Bob', 'Charlie']


def test_context_bounds_request_timeout(client):
    with mock.patch('requests.request', return_value=make_response(204)) as request:
        client.token_pages('users')(Context(timeout=1))

    assert 0 < request.call_args[1]['timeout'] <= 1


def test_done_context_skips_request(client):
    ctx = Context()
    ctx.cancel()

    with mock.patch('requests.request') as request:
        iterator = client.iterate(client.token_pages('users'))
        assert iterator.advance(ctx) is False

    assert str(iterator.error) == 'context canceled'
    request.assert_not_called()


def test_numbered_pages(client):
    pages = {1: [{'id': 1}, {'id': 2}], 2: [{'id': 3}]}

    def respond(method, url, **kwargs):
        return make_response(200, pages.get(kwargs['params']['page'], []))

    with mock.patch('requests.request', side_effect=respond) as request:
        source = client.numbered_pages('activities', per_page=2, before=10)
        values, error = get_all_values(client.iterate(source))

    assert error is None
    assert values == [{'id': 1}, {'id': 2}, {'id': 3}]
    assert request.call_args_list[0][1]['params'] == {'before': 10, 'page': 1, 'per_page': 2}
    assert request.call_count == 2


def test_numbered_pages_unauthenticated(client):
    with mock.patch('requests.request', return_value=make_response(401)):
        iterator = client.iterate(client.numbered_pages('activities'))
        assert iterator.advance() is False

    assert isinstance(iterator.error, Unauthenticated)


def test_rate_limit_headers(client):
    response = make_response(200, [], headers={'X-RateLimit-Limit': '100', 'X-RateLimit-Remaining': '0'})

    with mock.patch('requests.request', return_value=response):
        client._dispatcher('get', 'users')

    assert client.rate_limit == 100
    assert client.rate_limit_remaining == 0
    assert client.exceeded_budget is True
    assert client.last_response is response


def test_invalid_rate_limit_headers(client):
    response = make_response(200, [], headers={'X-RateLimit-Limit': 'many'})

    with mock.patch('requests.request', return_value=response):
        client._dispatcher('get', 'users')

    assert client.rate_limit is None
    assert client.exceeded_budget is None


def test_request_limit_exceeded_carries_retry_after(client):
    response = make_response(429, headers={'Retry-After': '30'})

    with pytest.raises(RequestLimitExceeded) as exc_info:
        client.handle_response(response)

    assert exc_info.value.retry_after == 30.0


def test_unmapped_status_raises_request_error(client):
    with pytest.raises(RequestError):
        client.handle_response(make_response(500))


def test_request_hooks(client):
    before, after = [], []
    client.before_request_hook(before.append)
    client.after_request_hook(after.append)
    response = make_response(204)

    with mock.patch('requests.request', return_value=response):
        client._dispatcher('get', 'users', ctx=Context(), headers={'X-Trace': '1'}, q='x')

    assert before == [{
        'http_method': 'GET',
        'url': 'https://api.example.com/v1/users',
        'params': {'q': 'x'},
        'headers': {'X-Trace': '1'},
    }]
    assert after == [response]
