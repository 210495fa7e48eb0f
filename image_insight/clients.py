"""Explicit handles for the remote services the pipeline talks to.

Clients are built once at process start and passed into the router, analyzers and
handlers, so tests can swap any of them for a fake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import boto3

from .config import AppConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AwsClients:
    s3: Any = None
    rekognition: Any = None
    bedrock_runtime: Any = None
    lambda_: Any = None

    @classmethod
    def from_config(cls, config: AppConfig, *, session: Any = None) -> AwsClients:
        """Create every client from a single boto3 session."""
        session = session or boto3.session.Session()
        logger.debug(
            "Creating AWS clients in %s (model region %s)",
            config.aws_region,
            config.effective_bedrock_region,
        )
        return cls(
            s3=session.client("s3", region_name=config.aws_region),
            rekognition=session.client("rekognition", region_name=config.aws_region),
            bedrock_runtime=session.client(
                "bedrock-runtime", region_name=config.effective_bedrock_region
            ),
            lambda_=session.client("lambda", region_name=config.aws_region),
        )
