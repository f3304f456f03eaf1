"""
Unit tests for silib.changeset — the CloudFormation import pipeline.

CloudFormation and S3 clients are MagicMocks: moto does not implement
IMPORT change sets.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError, WaiterError

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
from silib import changeset, config
from silib.context import ImportContext
from silib.errors import ChangeSetError, ImportPipelineError


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "_config_path", lambda: tmp_path / "missing.json")
    config.reset_config()
    yield
    config.reset_config()


@pytest.fixture
def ctx(tmp_path):
    context = ImportContext(
        resource_name="my-role",
        sceptre_stack_name="iam-generic",
        template_version="1.4.0",
        template_bucket_name="my-template-bucket",
        stack_name="my-role-iam-generic",
        initial_template=tmp_path / "initial-template.yaml",
        list_resources_report=tmp_path / "resources.json",
    )
    context.initial_template.write_text("---\nResources: {}\n", encoding="utf-8")
    return context


def _client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


RESOURCES = [{
    "ResourceType": "AWS::IAM::Role",
    "LogicalResourceId": "IAMRole",
    "ResourceIdentifier": {"RoleName": "my-role"},
}]


# ---------------------------------------------------------------------------
# Template upload
# ---------------------------------------------------------------------------


class TestPushTemplate:
    def test_template_url(self):
        url = changeset.template_url("my-template-bucket", Path("/tmp/initial-template.yaml"), "ap-southeast-2")
        assert url == "https://my-template-bucket.s3.ap-southeast-2.amazonaws.com/initial-template.yaml"

    def test_uploads_to_bucket_root(self, ctx):
        s3 = MagicMock()
        key = changeset.push_template(ctx, s3_client=s3)
        assert key == "initial-template.yaml"
        s3.upload_file.assert_called_once_with(str(ctx.initial_template), "my-template-bucket", "initial-template.yaml")

    def test_upload_failure(self, ctx):
        s3 = MagicMock()
        s3.upload_file.side_effect = S3UploadFailedError("Access Denied")
        with pytest.raises(ImportPipelineError, match="Failed to upload"):
            changeset.push_template(ctx, s3_client=s3)


# ---------------------------------------------------------------------------
# Change set creation
# ---------------------------------------------------------------------------


class TestCreateChangeSet:
    def test_creates_import_change_set_and_waits(self, ctx):
        cfn = MagicMock()
        cfn.create_change_set.return_value = {"Id": "arn:aws:cloudformation:cs/ImportChangeSet"}

        change_set_id = changeset.create_change_set(ctx, RESOURCES, cfn_client=cfn, region="ap-southeast-2")

        assert change_set_id == "arn:aws:cloudformation:cs/ImportChangeSet"
        cfn.create_change_set.assert_called_once_with(
            StackName="my-role-iam-generic",
            ChangeSetName="ImportChangeSet",
            ChangeSetType="IMPORT",
            ResourcesToImport=RESOURCES,
            TemplateURL="https://my-template-bucket.s3.ap-southeast-2.amazonaws.com/initial-template.yaml",
            Capabilities=["CAPABILITY_NAMED_IAM"],
        )
        cfn.get_waiter.assert_called_once_with("change_set_create_complete")
        cfn.get_waiter.return_value.wait.assert_called_once_with(
            StackName="my-role-iam-generic",
            ChangeSetName="ImportChangeSet",
            WaiterConfig={"Delay": 10, "MaxAttempts": 360},
        )

    def test_failed_change_set_reports_status_reason(self, ctx, capsys):
        cfn = MagicMock()
        cfn.get_waiter.return_value.wait.side_effect = WaiterError(
            name="ChangeSetCreateComplete", reason="Waiter encountered a terminal failure state", last_response={},
        )
        cfn.describe_change_set.return_value = {
            "Status": "FAILED",
            "StatusReason": "Resources [IAMRole] is missing required property AssumeRolePolicyDocument",
        }

        with pytest.raises(ChangeSetError) as exc_info:
            changeset.create_change_set(ctx, RESOURCES, cfn_client=cfn, region="ap-southeast-2")

        assert "AssumeRolePolicyDocument" in exc_info.value.reason
        assert exc_info.value.stack_name == "my-role-iam-generic"
        cfn.describe_change_set.assert_called_once_with(
            ChangeSetName="ImportChangeSet", StackName="my-role-iam-generic",
        )
        # Printing is left to the CLI
        assert "AssumeRolePolicyDocument" not in capsys.readouterr().out

    def test_create_rejected(self, ctx):
        cfn = MagicMock()
        cfn.create_change_set.side_effect = _client_error(
            "ValidationError", "Stack [my-role-iam-generic] already exists", "CreateChangeSet",
        )
        cfn.describe_change_set.side_effect = _client_error(
            "ChangeSetNotFound", "ChangeSet [ImportChangeSet] does not exist", "DescribeChangeSet",
        )

        with pytest.raises(ChangeSetError) as exc_info:
            changeset.create_change_set(ctx, RESOURCES, cfn_client=cfn, region="ap-southeast-2")

        assert exc_info.value.reason == "Stack [my-role-iam-generic] already exists"
        assert exc_info.value.stack_name == "my-role-iam-generic"
        cfn.describe_change_set.assert_not_called()
        cfn.get_waiter.assert_not_called()


# ---------------------------------------------------------------------------
# Execution and tagging
# ---------------------------------------------------------------------------


class TestExecuteAndTag:
    def test_execute_waits_for_import(self, ctx):
        cfn = MagicMock()
        changeset.execute_change_set(ctx, cfn_client=cfn)

        cfn.execute_change_set.assert_called_once_with(
            ChangeSetName="ImportChangeSet", StackName="my-role-iam-generic",
        )
        cfn.get_waiter.assert_called_once_with("stack_import_complete")

    def test_execute_failure(self, ctx):
        cfn = MagicMock()
        cfn.get_waiter.return_value.wait.side_effect = WaiterError(
            name="StackImportComplete", reason="terminal failure", last_response={},
        )
        with pytest.raises(ImportPipelineError, match="did not complete"):
            changeset.execute_change_set(ctx, cfn_client=cfn)

    def test_version_tag(self, ctx):
        cfn = MagicMock()
        changeset.add_version_tag(ctx, cfn_client=cfn)

        cfn.update_stack.assert_called_once_with(
            StackName="my-role-iam-generic",
            UsePreviousTemplate=True,
            Tags=[{"Key": "Version", "Value": "1.4.0"}],
            Capabilities=["CAPABILITY_NAMED_IAM"],
        )
        cfn.get_waiter.assert_called_once_with("stack_update_complete")

    def test_version_tag_failure(self, ctx):
        cfn = MagicMock()
        cfn.update_stack.side_effect = _client_error("ValidationError", "No updates are to be performed.", "UpdateStack")
        with pytest.raises(ImportPipelineError, match="Tagging stack my-role-iam-generic failed"):
            changeset.add_version_tag(ctx, cfn_client=cfn)

    def test_waiter_config_from_config_file(self, ctx, tmp_path, monkeypatch):
        config_file = tmp_path / "config.json"
        config_file.write_text('{"waiter": {"delay": 5, "max_attempts": 12}}', encoding="utf-8")
        monkeypatch.setattr(config, "_config_path", lambda: config_file)
        config.reset_config()

        cfn = MagicMock()
        changeset.execute_change_set(ctx, cfn_client=cfn)

        cfn.get_waiter.return_value.wait.assert_called_once_with(
            StackName="my-role-iam-generic",
            WaiterConfig={"Delay": 5, "MaxAttempts": 12},
        )
