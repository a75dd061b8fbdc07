import io
import os
from urllib.parse import unquote

import boto3
import httpx
import pytest
import pytest_asyncio
from moto import mock_aws
from PIL import Image

# Set test environment variables BEFORE importing app modules
os.environ["TESTING"] = "true"

# Dummy AWS credentials for moto
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["S3_BUCKET"] = "snapvault-images"
os.environ["DYNAMODB_TABLE"] = "image-metadata"
# Clear the AWS_ENDPOINT_URL so moto mocks are used instead of localstack
os.environ.pop("AWS_ENDPOINT_URL", None)

from fastapi.testclient import TestClient

from snapvault.main import app
from snapvault.storage.s3 import S3Service
from snapvault.storage.dynamodb import DynamoDBService
from snapvault.client.api import ImageAPIClient

API_BASE = "http://testserver"


def make_image_bytes(fmt="PNG", size=(10, 10), pad_to=None):
    """Generate a small valid image in-memory, optionally padded to a byte size."""
    img = Image.new("RGB", size, color="red")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    data = buf.getvalue()
    if pad_to and len(data) < pad_to:
        data += b"\0" * (pad_to - len(data))
    return data


@pytest.fixture(scope="function")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"


@pytest.fixture(scope="function")
def aws(aws_credentials):
    """S3 bucket and DynamoDB table inside a moto context, wired into the app."""
    with mock_aws():
        s3_service = S3Service()
        db_service = DynamoDBService()
        app.state.s3 = s3_service
        app.state.db = db_service
        yield s3_service, db_service


@pytest.fixture(scope="function")
def test_client(aws):
    with TestClient(app) as client:
        yield client


class CloudTransport(httpx.AsyncBaseTransport):
    """Sends API calls into the ASGI app and pre-signed PUTs into moto's S3."""

    def __init__(self, fail_transfer_status=None):
        self.api = httpx.ASGITransport(app=app)
        self.s3 = boto3.client("s3", region_name="us-east-1")
        self.fail_transfer_status = fail_transfer_status
        self.api_calls = []
        self.transfers = []

    def _bucket_and_key(self, url: httpx.URL):
        path = unquote(url.path).lstrip("/")
        host = url.host
        if host.startswith("s3.") or host == "s3.amazonaws.com":
            bucket, _, key = path.partition("/")
            return bucket, key
        return host.split(".")[0], path

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "testserver":
            self.api_calls.append((request.method, request.url.path))
            return await self.api.handle_async_request(request)

        body = await request.aread()
        self.transfers.append((request.url, request.headers.get("content-type")))
        if self.fail_transfer_status:
            return httpx.Response(self.fail_transfer_status, text="<Error>AccessDenied</Error>")
        bucket, key = self._bucket_and_key(request.url)
        self.s3.put_object(Bucket=bucket, Key=key, Body=body, ContentType=request.headers["content-type"])
        return httpx.Response(200)


@pytest.fixture(scope="function")
def cloud(aws):
    return CloudTransport()


@pytest_asyncio.fixture
async def api_client(cloud):
    async with httpx.AsyncClient(transport=cloud, base_url=API_BASE) as http:
        yield ImageAPIClient(http)
