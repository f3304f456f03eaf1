#!/usr/bin/env python3
"""
Moto-based tests for importers/iam_role.py.

Covers:
- existence check against the list_roles report
- values file generation (generate-only run)
"""

import json
import sys
from pathlib import Path

import boto3
import pytest
import yaml
from moto import mock_aws

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
from importers.iam_role import IamRoleImporter
from silib.errors import ResourceNotFoundError
from silib.responses import ApiResponse

TRUST_POLICY = {
    "Version": "2012-10-17",
    "Statement": [{
        "Effect": "Allow",
        "Principal": {"Service": "lambda.amazonaws.com"},
        "Action": "sts:AssumeRole",
    }],
}

INLINE_POLICY = {
    "Version": "2012-10-17",
    "Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "*"}],
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def fake_aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_PROFILE", raising=False)


def _context(importer, tmp_path, name):
    return importer.new_context(
        name,
        generate_only=True,
        output_path=tmp_path,
        template_version="3.0.1",
        initial_template=tmp_path / "initial-template.yaml",
        list_resources_report=tmp_path / "resources.json",
        response=ApiResponse(tmp_path / "response.json"),
    )


def _create_role():
    iam = boto3.client("iam", region_name="us-east-1")
    iam.create_role(
        RoleName="data-loader",
        Path="/service/",
        Description="Loads the lake",
        AssumeRolePolicyDocument=json.dumps(TRUST_POLICY),
        Tags=[
            {"Key": "Owner", "Value": "data-eng"},
            {"Key": "Team", "Value": "ignored"},
        ],
    )
    policy = iam.create_policy(PolicyName="read-lake", PolicyDocument=json.dumps(INLINE_POLICY))
    iam.attach_role_policy(RoleName="data-loader", PolicyArn=policy["Policy"]["Arn"])
    iam.put_role_policy(RoleName="data-loader", PolicyName="inline-read", PolicyDocument=json.dumps(INLINE_POLICY))
    return policy["Policy"]["Arn"]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestIamRoleImporter:
    """Tests for IamRoleImporter."""

    @mock_aws
    def test_values_file(self, tmp_path):
        """A generate-only run writes the role's values file."""
        policy_arn = _create_role()
        importer = IamRoleImporter()
        ctx = _context(importer, tmp_path, "data-loader")

        final_values = importer.run(ctx)

        assert final_values == tmp_path / "data-loader.yaml"
        text = final_values.read_text(encoding="utf-8")
        assert text.startswith("# Generated by iam_role.py\n---\n")

        values = yaml.safe_load(text)
        assert values["source"] == {"path": "iam-generic", "version": "3.0.1"}
        assert values["RoleName"] == "data-loader"
        assert values["Path"] == "/service/"
        assert values["Description"] == "Loads the lake"
        assert values["AssumeRolePolicyDocument"] == TRUST_POLICY
        assert values["ManagedPolicyArns"] == [policy_arn]
        assert values["Policies"] == [{"PolicyName": "inline-read", "PolicyDocument": INLINE_POLICY}]
        assert values["CommonTags"] == {"Owner": "data-eng"}
        assert "MaxSessionDuration" not in values

    @mock_aws
    def test_missing_role(self, tmp_path):
        """An unknown role name stops the run before anything is written."""
        _create_role()
        importer = IamRoleImporter()
        ctx = _context(importer, tmp_path, "no-such-role")

        with pytest.raises(ResourceNotFoundError, match="Role no-such-role not found"):
            importer.run(ctx)
        assert not (tmp_path / "no-such-role.yaml").exists()

    @mock_aws
    def test_intermediate_template_carries_trust_policy(self, tmp_path):
        """The import template includes the required trust policy."""
        _create_role()
        importer = IamRoleImporter()
        ctx = _context(importer, tmp_path, "data-loader")
        importer.setup_temp(ctx)
        importer.list_resources(ctx)
        importer.describe_resource(ctx)

        template = yaml.safe_load(importer.generate_intermediate_template(ctx))

        properties = template["Resources"]["IAMRole"]["Properties"]
        assert properties["RoleName"] == "data-loader"
        assert properties["AssumeRolePolicyDocument"] == TRUST_POLICY
