import os


DEFAULT_SETTINGS = {
    'API_DOMAIN': '',
    'API_PATH': '',
    'ACCESS_TOKEN': None,
    'PER_PAGE': 100,
    'REQUEST_TIMEOUT': 30.0,
}


class BatchIterSettings:
    """
    Reads `BATCHITER_<KEY>` environment variables, falling back to `DEFAULT_SETTINGS`.
    """
    prefix = 'BATCHITER_'

    def __getattr__(self, key):
        try:
            default = DEFAULT_SETTINGS[key]
        except KeyError:
            raise AttributeError(key)

        value = os.environ.get(self.prefix + key)
        if value is None:
            return default
        if default is None:
            return value
        return type(default)(value)


batchiter_settings = BatchIterSettings()
