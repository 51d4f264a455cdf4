class BatchIterError(Exception):
    default_message = 'Unknown Error.'

    def __init__(self, message=None, *args, **kwargs):
        self.message = message or self.default_message
        super().__init__(self.message, *args, **kwargs)


class ImproperlyConfigured(BatchIterError):
    default_message = 'iterator has no next batch function'


class LimiterError(BatchIterError):
    default_message = 'limiter cannot be nil'


class BurstExceeded(LimiterError):
    default_message = "requested tokens exceed the limiter's burst"


class ContextError(BatchIterError):
    pass


class Cancelled(ContextError):
    default_message = 'context canceled'


class DeadlineExceeded(ContextError):
    default_message = 'context deadline exceeded'


class RequestError(BatchIterError):
    default_message = 'Request failed.'

    def __init__(self, message=None, response=None, *args, **kwargs):
        self.response = response
        super().__init__(message, *args, **kwargs)


class Unauthenticated(RequestError):
    default_message = 'You are not authenticated.'


class PermissionDenied(RequestError):
    default_message = 'You do not have permission to perform this action.'


class NotFound(RequestError):
    default_message = 'Resource not found.'


class InvalidRequest(RequestError):
    default_message = 'Validation error.'


class RequestLimitExceeded(RequestError):
    default_message = 'Limit of requests for the period was exceeded.'

    def __init__(self, message=None, response=None, retry_after=None, *args, **kwargs):
        self.retry_after = retry_after
        super().__init__(message, response, *args, **kwargs)
