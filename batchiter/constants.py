class Enum:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)

    def __contains__(self, value):
        return value in self.__dict__.values()

    def __iter__(self):
        return iter(self.__dict__.values())

    def values(self):
        return iter(self.__dict__.values())


STATE = Enum(
    ACTIVE='active',
    EXHAUSTED='exhausted',
    FAILED='failed',
)


DEFAULT_PER_PAGE = 100

NEXT_PAGE_TOKEN_HEADER = 'X-NextPageToken'

RATE_LIMIT_HEADER = 'X-RateLimit-Limit'

RATE_LIMIT_REMAINING_HEADER = 'X-RateLimit-Remaining'

RETRY_AFTER_HEADER = 'Retry-After'
