#!/usr/bin/env python3
"""
===========================
= SCEPTRE RESOURCE IMPORTER =
===========================

Title: S3 Bucket Importer

Description:
Imports an existing S3 bucket into the s3-bucket Sceptre stack. The bucket
listing is a plain list of names, so the framework's line-match existence
check is used as-is.
"""

import sys
from typing import Any, Dict

from botocore.exceptions import ClientError

import utils
from importers import register
from silib.aws_client import get_boto3_client
from silib.context import ImportContext
from silib.importer import ResourceImporter

# What S3 applies to every bucket since January 2023
DEFAULT_ENCRYPTION = (
    '{"Rules":[{"ApplyServerSideEncryptionByDefault":{"SSEAlgorithm":"AES256"},'
    '"BucketKeyEnabled":false}]}'
)

NO_TAGS_ERROR = "NoSuchTagSet"
NO_ENCRYPTION_ERROR = "ServerSideEncryptionConfigurationNotFoundError"
NO_PUBLIC_ACCESS_BLOCK_ERROR = "NoSuchPublicAccessBlockConfiguration"


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


@register("s3-bucket")
class S3BucketImporter(ResourceImporter):
    sceptre_resource_id = "S3Bucket"
    sceptre_stack_name = "s3-bucket"
    importable_resource_type = "AWS::S3::Bucket"
    importable_parameter_name = "BucketName"
    script_name = "s3_bucket.py"
    suggested_output_dir = "s3"

    def setup_temp(self, ctx: ImportContext) -> None:
        ctx.new_response("bucket_encryption")
        ctx.new_response("public_access_block")
        ctx.new_response("bucket_tagging")

    @utils.aws_error_handler("Listing S3 buckets", reraise=True)
    def list_resources(self, ctx: ImportContext) -> None:
        s3 = get_boto3_client("s3")
        names = [bucket["Name"] for bucket in s3.list_buckets().get("Buckets", [])]
        ctx.list_resources_report.write_text("".join(f"{name}\n" for name in names), encoding="utf-8")

    @utils.aws_error_handler("Describing S3 bucket", reraise=True)
    def describe_resource(self, ctx: ImportContext) -> None:
        s3 = get_boto3_client("s3")
        try:
            ctx.response.write(s3.get_bucket_versioning(Bucket=ctx.resource_name))
        except ClientError as e:
            if _error_code(e) == "NoSuchBucket":
                ctx.response.clear()
                return
            raise

        encryption = ctx.responses["bucket_encryption"]
        try:
            response = s3.get_bucket_encryption(Bucket=ctx.resource_name)
            encryption.write(response["ServerSideEncryptionConfiguration"])
        except ClientError as e:
            if _error_code(e) != NO_ENCRYPTION_ERROR:
                raise
            encryption.clear()

        public_access = ctx.responses["public_access_block"]
        try:
            response = s3.get_public_access_block(Bucket=ctx.resource_name)
            public_access.write(response["PublicAccessBlockConfiguration"])
        except ClientError as e:
            if _error_code(e) != NO_PUBLIC_ACCESS_BLOCK_ERROR:
                raise
            public_access.clear()

    def get_tagging(self, ctx: ImportContext) -> bool:
        s3 = get_boto3_client("s3")
        try:
            response = s3.get_bucket_tagging(Bucket=ctx.resource_name)
        except ClientError as e:
            if _error_code(e) == NO_TAGS_ERROR:
                return False
            raise
        ctx.responses["bucket_tagging"].write(response)
        return True

    def generate_final_values_file(self, ctx: ImportContext) -> str:
        encryption = ctx.responses["bucket_encryption"]
        public_access = ctx.responses["public_access_block"]

        blocks: Dict[str, Any] = {
            "BucketName": ctx.resource_name,
            "VersioningEnabled": ctx.response.query("Status") == "Enabled",
        }
        if encryption.is_not_empty() and encryption.not_equals(DEFAULT_ENCRYPTION):
            blocks["BucketEncryption"] = {"ServerSideEncryptionConfiguration": encryption.query("Rules")}
        if public_access.is_not_empty():
            blocks["PublicAccessBlockConfiguration"] = public_access.data

        blocks.update(self.custom_tags(ctx, key="TagSet", response=ctx.responses["bucket_tagging"]))
        return self.render_values(ctx, blocks)


def main(argv=None) -> int:
    import sceptre_import
    return sceptre_import.main(argv, resource_type="s3-bucket", prog="s3_bucket.py")


if __name__ == "__main__":
    sys.exit(main())
