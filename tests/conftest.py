import json
from unittest.mock import MagicMock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from streamseries.config import Settings
from streamseries.ratelimit import FixedWindowLimiter
from streamseries.relay import StreamRelay
from streamseries.repository import CatalogRepository
from streamseries.web import create_app

SAMPLE_RECORDS = [
    {"series": "Breaking Bad", "season": "1", "ep": 2, "title": "Cat's in the Bag", "url": "http://cdn.test/bb/1x02.mp4", "posterUrl": "http://img.test/bb.jpg"},
    {"series": "Breaking Bad", "season": "1", "ep": 1, "title": "Pilot", "url": "http://cdn.test/bb/1x01.mp4"},
    {"series": "Breaking Bad", "season": "2", "ep": 1, "title": "Seven Thirty-Seven", "url": "http://cdn.test/bb/2x01.mp4"},
    {"series": "Dark", "season": 1, "ep": 1, "title": "Secrets", "url": "https://cdn.test/dark/1x01.mp4", "logo serie": "http://img.test/dark.jpg"},
    {"series": "Better Call Saul", "season": "1", "ep": 1, "url": "http://cdn.test/bcs/1x01.mp4"},
    {"series": "Ángel Negro", "season": "1", "ep": 1, "title": "Uno"},
    {"series": "alf", "ep": "3"},
]


class FakeUpstream:
    """Stands in for a streamed ``requests.Response``."""

    def __init__(self, status_code=200, headers=None, chunks=(), error=None):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.chunks = list(chunks)
        self.error = error
        self.closed = False
        self.chunks_read = 0

    def iter_content(self, chunk_size=1):
        for chunk in self.chunks:
            self.chunks_read += 1
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


@pytest.fixture
def records():
    return [dict(r) for r in SAMPLE_RECORDS]


@pytest.fixture
def data_file(tmp_path, records):
    path = tmp_path / "data.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


@pytest.fixture
def repository(data_file):
    repo = CatalogRepository(data_file)
    assert repo.reload()
    return repo


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def relay(session):
    return StreamRelay(session=session)


@pytest.fixture
def app(data_file, repository, relay):
    settings = Settings(data_file=data_file)
    app = create_app(settings, repository=repository, relay=relay, limiter=FixedWindowLimiter(1000, 60))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client
