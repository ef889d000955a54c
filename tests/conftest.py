# tests/conftest.py
"""
Pytest configuration and fixtures for the s3cp integration tests.

This module sets up the testing environment, including:
- Spinning up a Docker container for an S3 service (MinIO).
- Providing the S3 connection settings of that service.
- Creating and cleaning up isolated S3 buckets for each test function.
"""

import uuid
from pathlib import Path
from typing import Any, AsyncGenerator, Dict

import boto3
import pytest
import pytest_asyncio
import requests
from aiobotocore.session import AioSession, get_session
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from requests.exceptions import ConnectionError
from types_boto3_s3.service_resource import Bucket, S3ServiceResource

from s3cp.config import S3Config

# --- Constants ---
S3_ACCESS_KEY: str = "minio-key"
S3_SECRET_KEY: str = "minio-secret"
S3_REGION: str = "us-east-1"


# --- Docker Fixtures ---
@pytest.fixture(scope="session")
def docker_compose_file(pytestconfig: pytest.Config) -> str:
    """
    Locate the docker-compose.yml file for the test suite.

    Args:
        pytestconfig (pytest.Config): The pytest configuration objects.

    Returns:
        str: The absolute path to the docker-compose.yml file.
    """
    return str(Path(pytestconfig.rootdir) / "tests" / "docker-compose.yml")


@pytest.fixture(scope="session")
def docker_compose_project_name() -> str:
    """
    Define a unique, static project name for the Docker stack.

    Returns:
        str: A unique name for the docker-compose project.
    """
    return "s3cp-tests"


def _is_s3_responsive(url: str) -> bool:
    """
    Check if the MinIO health endpoint is responsive.

    Args:
        url (str): The base URL of the MinIO API.

    Returns:
        bool: True if the service is responsive, False otherwise.
    """
    try:
        response: requests.Response = requests.get(f"{url}/minio/health/live")
        return response.status_code == 200
    except ConnectionError:
        return False


@pytest.fixture(scope="session")
def s3_service(docker_ip: str, docker_services: Any) -> S3Config:
    """
    Ensure the S3 service is running and return its connection settings.

    Args:
        docker_ip (str): The IP address of the Docker host, provided by pytest-docker.
        docker_services (Any): The pytest-docker services fixture.

    Returns:
        S3Config: The connection settings of the S3 service.
    """
    port: int = docker_services.port_for("minio", 9000)
    api_url: str = f"http://{docker_ip}:{port}"
    docker_services.wait_until_responsive(
        timeout=30.0, pause=0.1, check=lambda: _is_s3_responsive(api_url)
    )
    return S3Config(
        region=S3_REGION,
        endpoint_url=api_url,
        access_key_id=S3_ACCESS_KEY,
        secret_access_key=S3_SECRET_KEY,
    )


# --- Application Fixtures ---
@pytest_asyncio.fixture(scope="function")
async def s3_buckets(s3_service: S3Config) -> AsyncGenerator[Dict[str, str], None]:
    """
    Create unique, isolated S3 buckets for a single test function.

    Both buckets live on the same service, which is what a server-side copy
    requires. Buckets and their contents are removed after the test.

    Args:
        s3_service (S3Config): Connection settings of the S3 service.

    Yield:
        AsyncGenerator[Dict[str, str], None]: A dictionary with the names of
            the created source and destination buckets.
    """
    session: AioSession = get_session()
    bucket_name_suffix: str = f"test-bucket-{uuid.uuid4()}"
    source_bucket: str = f"source-{bucket_name_suffix}"
    dest_bucket: str = f"dest-{bucket_name_suffix}"

    async with session.create_client("s3", **s3_service.as_boto_dict()) as s3:
        await s3.create_bucket(Bucket=source_bucket)
        await s3.create_bucket(Bucket=dest_bucket)

    yield {"source": source_bucket, "destination": dest_bucket}

    # Cleanup: boto3 is simpler for synchronous, recursive delete
    boto_config: BotoConfig = BotoConfig(
        retries={"max_attempts": 0, "mode": "standard"}
    )
    s3_resource: S3ServiceResource = boto3.resource(
        "s3", **s3_service.as_boto_dict(), config=boto_config
    )

    for bucket in [source_bucket, dest_bucket]:
        try:
            bucket_obj: Bucket = s3_resource.Bucket(bucket)
            bucket_obj.multipart_uploads.all().delete()
            bucket_obj.objects.all().delete()
            bucket_obj.delete()
        except ClientError as e:
            if e.response["Error"]["Code"] != "NoSuchBucket":
                raise
