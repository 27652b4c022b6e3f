"""BlobStorage against a stand-in S3 client."""
from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from duka.core.exceptions import BlobStorageError, InvalidImageError
from duka.services.storage_service import MAX_IMAGE_SIZE, BlobStorage


class RecordingClient:
    def __init__(self, error=None):
        self.error = error
        self.uploads = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        if self.error:
            raise self.error
        self.uploads.append({"bucket": bucket, "key": key, "body": fileobj.read(), "extra": ExtraArgs})


@pytest.fixture()
def client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture()
def storage(client) -> BlobStorage:
    return BlobStorage(client=client, bucket="duka", public_url="https://cdn.duka.test")


def test_upload_returns_public_url(storage, client) -> None:
    url = storage.upload_blob("products/p1/front.jpg", b"jpeg-bytes", "image/jpeg")

    assert url == "https://cdn.duka.test/duka/products/p1/front.jpg"
    upload = client.uploads[0]
    assert upload["key"] == "products/p1/front.jpg"
    assert upload["body"] == b"jpeg-bytes"
    assert upload["extra"] == {"ContentType": "image/jpeg", "ACL": "public-read"}


def test_content_type_guessed_from_path(storage, client) -> None:
    storage.upload_blob("products/p1/side.png", b"png-bytes")
    assert client.uploads[0]["extra"]["ContentType"] == "image/png"


@pytest.mark.parametrize(
    "data, content_type",
    [
        (b"", "image/png"),
        (b"x" * (MAX_IMAGE_SIZE + 1), "image/png"),
        (b"%PDF", "application/pdf"),
    ],
)
def test_rejected_uploads_never_reach_s3(storage, client, data, content_type) -> None:
    with pytest.raises(InvalidImageError):
        storage.upload_blob("products/p1/file", data, content_type)
    assert client.uploads == []


def test_client_errors_are_wrapped() -> None:
    error = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
    storage = BlobStorage(client=RecordingClient(error), bucket="duka", public_url="https://cdn")

    with pytest.raises(BlobStorageError, match="Image upload failed"):
        storage.upload_blob("products/p1/front.jpg", b"jpeg-bytes", "image/jpeg")
