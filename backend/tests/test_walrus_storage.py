import pytest

from walrus_storage import WalrusError, WalrusStorage


class FakeResponse:
    def __init__(self, status_code=200, body=None, content=b"", text=""):
        self.status_code = status_code
        self._body = body
        self.content = content
        self.text = text

    def json(self):
        return self._body


class FakeSession:
    def __init__(self):
        self.put_response = None
        self.get_responses = {}
        self.puts = []

    def put(self, url, params=None, data=None, timeout=None):
        self.puts.append((url, params, data))
        return self.put_response

    def get(self, url, timeout=None):
        return self.get_responses.get(url, FakeResponse(404))


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def storage(session):
    return WalrusStorage("https://publisher.test/", "https://aggregator.test", epochs=5, session=session)


def test_upload_newly_created(storage, session):
    session.put_response = FakeResponse(body={"newlyCreated": {"blobObject": {"blobId": "abc123"}}})

    assert storage.upload_bytes(b"image") == "abc123"
    url, params, data = session.puts[0]
    assert url == "https://publisher.test/v1/blobs"
    assert params == {"epochs": 5, "deletable": "true"}
    assert data == b"image"


def test_upload_already_certified(storage, session):
    session.put_response = FakeResponse(body={"alreadyCertified": {"blobId": "abc123"}})
    assert storage.upload_bytes(b"image", epochs=2, deletable=False) == "abc123"
    assert session.puts[0][1] == {"epochs": 2}


def test_upload_rejects_empty(storage):
    with pytest.raises(WalrusError):
        storage.upload_bytes(b"")


def test_upload_publisher_error(storage, session):
    session.put_response = FakeResponse(status_code=500, text="out of WAL")
    with pytest.raises(WalrusError) as exc:
        storage.upload_bytes(b"image")
    assert "out of WAL" in str(exc.value)


def test_upload_from_url(storage, session):
    session.get_responses["https://example.com/cat.png"] = FakeResponse(content=b"cat")
    session.put_response = FakeResponse(body={"newlyCreated": {"blobObject": {"blobId": "cat1"}}})
    assert storage.upload_from_url("https://example.com/cat.png") == "cat1"
    assert session.puts[0][2] == b"cat"


def test_upload_from_unreachable_url(storage):
    with pytest.raises(WalrusError):
        storage.upload_from_url("https://example.com/missing.png")


def test_blob_url_and_read(storage, session):
    assert storage.blob_url("abc") == "https://aggregator.test/v1/blobs/abc"
    session.get_responses["https://aggregator.test/v1/blobs/abc"] = FakeResponse(content=b"data")
    assert storage.get_blob("abc") == b"data"
    with pytest.raises(WalrusError):
        storage.get_blob("nope")
