# tests/unit/test_config.py
"""Unit tests for the configuration dataclasses."""

import os
from unittest.mock import patch

import pytest

from s3cp.config import (
    DEFAULT_COPY_CONCURRENCY,
    DEFAULT_COPY_PART_SIZE,
    MAX_UPLOAD_PARTS,
    MIB,
    CopierConfig,
    S3Config,
)
from s3cp.exceptions import ConfigError


def test_copier_defaults_cover_max_object_size() -> None:
    config: CopierConfig = CopierConfig()

    assert config.part_size == DEFAULT_COPY_PART_SIZE
    assert config.concurrency == DEFAULT_COPY_CONCURRENCY
    assert config.leave_parts_on_error is False
    assert config.part_size * MAX_UPLOAD_PARTS >= 5 * 1024**4


def test_copier_replace_layers_on_a_copy() -> None:
    """
    Tests that per-call overrides never change the original configuration,
    and that no validation happens on the way.
    """
    config: CopierConfig = CopierConfig()

    layered: CopierConfig = config.replace(part_size=MIB, concurrency=1)

    assert layered.part_size == MIB
    assert layered.concurrency == 1
    assert config.part_size == DEFAULT_COPY_PART_SIZE
    assert config.replace() is config


def test_s3_config_from_env() -> None:
    env = {
        "AWS_DEFAULT_REGION": "eu-west-1",
        "S3CP_ENDPOINT_URL": "http://localhost:9000",
        "AWS_ACCESS_KEY_ID": "key",
        "AWS_SECRET_ACCESS_KEY": "secret",
    }
    with patch.dict(os.environ, env):
        config: S3Config = S3Config.from_env()

    assert config.as_boto_dict() == {
        "region_name": "eu-west-1",
        "endpoint_url": "http://localhost:9000",
        "aws_access_key_id": "key",
        "aws_secret_access_key": "secret",
    }
    assert config.for_region("us-east-2").region == "us-east-2"
    assert config.region == "eu-west-1"


def test_s3_config_requires_a_region() -> None:
    with patch.dict(os.environ, clear=True):
        with pytest.raises(ConfigError, match="AWS_DEFAULT_REGION"):
            S3Config.from_env()

        assert S3Config.from_env("us-east-1").as_boto_dict() == {
            "region_name": "us-east-1"
        }
