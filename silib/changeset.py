"""
silib.changeset — The CloudFormation resource import pipeline.

Runs the fixed sequence: upload the intermediate template, create an IMPORT
change set, wait for it, execute it, wait for the import, then tag the stack
with its template version so later deployments update it in place.

Every failure is fatal. Nothing created in AWS is rolled back: a failed
change set must be cleaned up by hand.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError, WaiterError

import utils
from silib.aws_client import get_boto3_client, get_region
from silib.config import config_value
from silib.context import ImportContext
from silib.errors import ChangeSetError, ImportPipelineError

logger = logging.getLogger(__name__)


def _change_set_name() -> str:
    return config_value("change_set_name", "ImportChangeSet")


def _capabilities() -> List[str]:
    return list(config_value("capabilities", ["CAPABILITY_NAMED_IAM"]))


def _waiter_config() -> Dict[str, int]:
    waiter = config_value("waiter", {})
    return {
        "Delay": int(waiter.get("delay", 10)),
        "MaxAttempts": int(waiter.get("max_attempts", 360)),
    }


def template_url(bucket: str, template_path: Path, region: Optional[str] = None) -> str:
    """Virtual-hosted S3 URL of the uploaded intermediate template."""
    region = region or get_region()
    return f"https://{bucket}.s3.{region}.amazonaws.com/{Path(template_path).name}"


def push_template(ctx: ImportContext, s3_client=None) -> str:
    """
    Upload the intermediate template to the root of the template bucket.

    Returns:
        str: The object key
    """
    s3 = s3_client or get_boto3_client("s3")
    key = Path(ctx.initial_template).name

    utils.log_aws_operation("upload_file", "s3", details=f"{ctx.initial_template} -> s3://{ctx.template_bucket_name}/{key}")
    try:
        s3.upload_file(str(ctx.initial_template), ctx.template_bucket_name, key)
    except (ClientError, S3UploadFailedError, OSError) as e:
        raise ImportPipelineError(f"Failed to upload {ctx.initial_template} to {ctx.template_bucket_name}: {e}") from e
    return key


def change_set_failure(ctx: ImportContext, cfn_client=None) -> ChangeSetError:
    """
    Fetch the reason a change set failed.

    Returns the error for the caller to raise; the CLI prints it.
    """
    cfn = cfn_client or get_boto3_client("cloudformation")
    try:
        response = cfn.describe_change_set(ChangeSetName=_change_set_name(), StackName=ctx.stack_name)
        reason = response.get("StatusReason") or "Unknown change set failure"
    except ClientError as e:
        reason = e.response.get("Error", {}).get("Message", str(e))

    return ChangeSetError(reason, stack_name=ctx.stack_name)


def create_change_set(ctx: ImportContext, resources: List[Dict[str, Any]], cfn_client=None, region: Optional[str] = None) -> str:
    """
    Create the IMPORT change set and wait until it is ready to execute.

    Raises:
        ChangeSetError: creation was rejected (carries the API error message)
            or the change set failed (carries the StatusReason)
    """
    cfn = cfn_client or get_boto3_client("cloudformation")
    name = _change_set_name()
    url = template_url(ctx.template_bucket_name, ctx.initial_template, region)

    utils.log_aws_operation(
        "create_change_set", "cloudformation",
        details=f"stack={ctx.stack_name} change_set={name} type=IMPORT template={url}",
    )
    logger.debug("Resources to import: %s", resources)

    try:
        response = cfn.create_change_set(
            StackName=ctx.stack_name,
            ChangeSetName=name,
            ChangeSetType="IMPORT",
            ResourcesToImport=resources,
            TemplateURL=url,
            Capabilities=_capabilities(),
        )
    except ClientError as e:
        # No change set exists, so there is no StatusReason to fetch
        message = e.response.get("Error", {}).get("Message", str(e))
        raise ChangeSetError(message, stack_name=ctx.stack_name) from e

    try:
        utils.log_aws_operation("wait change_set_create_complete", "cloudformation", details=f"stack={ctx.stack_name}")
        cfn.get_waiter("change_set_create_complete").wait(
            StackName=ctx.stack_name,
            ChangeSetName=name,
            WaiterConfig=_waiter_config(),
        )
    except (ClientError, WaiterError) as e:
        logger.debug("Change set creation failed: %s", e)
        raise change_set_failure(ctx, cfn) from e

    return response.get("Id", name)


def execute_change_set(ctx: ImportContext, cfn_client=None) -> None:
    """Execute the import change set and wait for the import to finish."""
    cfn = cfn_client or get_boto3_client("cloudformation")
    name = _change_set_name()

    try:
        with utils.handle_aws_operation(f"Executing change set {name}"):
            utils.log_aws_operation("execute_change_set", "cloudformation", details=f"stack={ctx.stack_name} change_set={name}")
            cfn.execute_change_set(ChangeSetName=name, StackName=ctx.stack_name)
            utils.log_aws_operation("wait stack_import_complete", "cloudformation", details=f"stack={ctx.stack_name}")
            cfn.get_waiter("stack_import_complete").wait(
                StackName=ctx.stack_name,
                WaiterConfig=_waiter_config(),
            )
    except (ClientError, WaiterError) as e:
        raise ImportPipelineError(f"Import of stack {ctx.stack_name} did not complete: {e}") from e


def add_version_tag(ctx: ImportContext, cfn_client=None) -> None:
    """
    Tag the stack with Version=<template_version>.

    The deploy workflow can then update the stack without forcing it.
    """
    cfn = cfn_client or get_boto3_client("cloudformation")

    try:
        with utils.handle_aws_operation(f"Tagging stack {ctx.stack_name}"):
            utils.log_aws_operation(
                "update_stack", "cloudformation",
                details=f"stack={ctx.stack_name} tags=Version={ctx.template_version}",
            )
            cfn.update_stack(
                StackName=ctx.stack_name,
                UsePreviousTemplate=True,
                Tags=[{"Key": "Version", "Value": ctx.template_version}],
                Capabilities=_capabilities(),
            )
            utils.log_aws_operation("wait stack_update_complete", "cloudformation", details=f"stack={ctx.stack_name}")
            cfn.get_waiter("stack_update_complete").wait(
                StackName=ctx.stack_name,
                WaiterConfig=_waiter_config(),
            )
    except (ClientError, WaiterError) as e:
        raise ImportPipelineError(f"Tagging stack {ctx.stack_name} failed: {e}") from e
