"""
silib.aws_client — boto3 session/client factory and region utilities.

Provides a retry-configured client factory, region resolution for the
template bucket URL and a credential sanity check.

Imports from silib.config only.
"""

import logging
import os
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from silib.config import config_value

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session and client factory
# ---------------------------------------------------------------------------


def get_aws_session(region_name: Optional[str] = None, profile_name: Optional[str] = None):
    """
    Create a boto3 session.

    AWS_PROFILE is honoured by boto3 itself when profile_name is None.

    Args:
        region_name: AWS region (None = default from the profile)
        profile_name: Named profile (None = AWS_PROFILE or default chain)

    Returns:
        boto3.Session: Configured session
    """
    return boto3.Session(region_name=region_name, profile_name=profile_name)


def get_boto3_client(service: str, region_name: Optional[str] = None, **kwargs):
    """
    Create boto3 client with standard configuration including retries.

    Args:
        service: AWS service name (e.g., 'cloudformation', 'iam', 's3')
        region_name: AWS region name (optional)
        **kwargs: Additional arguments to pass to client creation

    Returns:
        boto3.client: Configured boto3 client with retry logic
    """
    sdk_config = config_value("aws_sdk_config", default={})

    config = Config(
        retries=sdk_config.get("retries", {"max_attempts": 5, "mode": "adaptive"}),
        connect_timeout=sdk_config.get("connect_timeout", 10),
        read_timeout=sdk_config.get("read_timeout", 60),
    )

    session = get_aws_session(region_name or get_region())
    return session.client(service, config=config, **kwargs)


# ---------------------------------------------------------------------------
# Region helpers
# ---------------------------------------------------------------------------


def get_region() -> str:
    """
    Resolve the region used for API calls and the template bucket URL.

    Order: AWS_REGION, AWS_DEFAULT_REGION, the profile's configured region,
    then ``default_region`` from config.json.

    Returns:
        str: Region name
    """
    for var in ("AWS_REGION", "AWS_DEFAULT_REGION"):
        if os.environ.get(var):
            return os.environ[var]

    try:
        region = boto3.Session().region_name
    except BotoCoreError as e:
        logger.debug("Could not read region from profile: %s", e)
        region = None

    return region or config_value("default_region", "ap-southeast-2")


# ---------------------------------------------------------------------------
# Credential validation
# ---------------------------------------------------------------------------


def validate_aws_credentials() -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate AWS credentials.

    Returns:
        tuple: (is_valid, account_id, error_message)
    """
    try:
        sts = get_boto3_client("sts")
        response = sts.get_caller_identity()
        return True, response["Account"], None
    except Exception as e:
        return False, None, str(e)
