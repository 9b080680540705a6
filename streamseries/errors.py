from __future__ import annotations


class StreamSeriesError(Exception):
    """Base class for errors raised by the catalog and the relay."""


class DataFormatError(StreamSeriesError):
    """The catalog source is missing or does not have the expected shape."""


class NotFoundError(StreamSeriesError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"series not found: {name!r}")


class BadRequestError(StreamSeriesError):
    """The relay target is missing, malformed or not allowed."""


class UpstreamError(StreamSeriesError):
    def __init__(self, message: str, target: str = ""):
        self.message = message
        self.target = target
        super().__init__(self.message)
