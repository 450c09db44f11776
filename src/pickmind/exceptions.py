from __future__ import annotations


class PickMindError(RuntimeError):
    pass


class UnsupportedSportError(PickMindError, ValueError):
    pass


class PredictionInvariantError(PickMindError, AssertionError):
    """A factor or probability left its documented range: a calculator bug."""


class DataSourceError(PickMindError):
    pass


class DataSourceAuthError(DataSourceError):
    pass


class DataSourceRateLimitError(DataSourceError):
    pass


class DataSourceServerError(DataSourceError):
    pass


class DataSourceClientError(DataSourceError):
    pass
