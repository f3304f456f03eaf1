#!/usr/bin/env python3
"""
===========================
= SCEPTRE RESOURCE IMPORTER =
===========================

Title: IAM Role Importer

Description:
Imports an existing IAM role into the iam-generic Sceptre stack. The values
file carries the trust policy, managed and inline policies and custom tags.
"""

import sys
from typing import Any, Dict, List, Optional

import utils
from importers import register
from silib.aws_client import get_boto3_client
from silib.context import ImportContext
from silib.errors import ResourceNotFoundError
from silib.importer import ResourceImporter
from silib.responses import ApiResponse

DEFAULT_PATH = "/"
DEFAULT_MAX_SESSION_DURATION = 3600


@register("iam-role")
class IamRoleImporter(ResourceImporter):
    sceptre_resource_id = "IAMRole"
    sceptre_stack_name = "iam-generic"
    importable_resource_type = "AWS::IAM::Role"
    importable_parameter_name = "RoleName"
    script_name = "iam_role.py"
    suggested_output_dir = "iam"

    def setup_temp(self, ctx: ImportContext) -> None:
        ctx.new_response("list_role_tags")
        ctx.new_response("attached_role_policies")
        ctx.new_response("inline_role_policies")

    @utils.aws_error_handler("Listing IAM roles", reraise=True)
    def list_resources(self, ctx: ImportContext) -> None:
        iam = get_boto3_client("iam")
        roles: List[Dict[str, Any]] = []
        for page in iam.get_paginator("list_roles").paginate():
            roles.extend(page.get("Roles", []))
        ApiResponse(ctx.list_resources_report).write({"Roles": roles})

    def _find_role(self, ctx: ImportContext) -> Optional[Dict[str, Any]]:
        report = ApiResponse(ctx.list_resources_report).data or {}
        for role in report.get("Roles", []):
            if role.get("RoleName") == ctx.resource_name:
                return role
        return None

    def check_resource_exists(self, ctx: ImportContext) -> None:
        if self._find_role(ctx) is None:
            raise ResourceNotFoundError(f"Role {ctx.resource_name} not found; exiting")

    @utils.aws_error_handler("Describing IAM role", reraise=True)
    def describe_resource(self, ctx: ImportContext) -> None:
        role = self._find_role(ctx)
        if role is None:
            ctx.response.clear()
            return
        ctx.response.write(role)

        iam = get_boto3_client("iam")

        attached: List[Dict[str, Any]] = []
        for page in iam.get_paginator("list_attached_role_policies").paginate(RoleName=ctx.resource_name):
            attached.extend(page.get("AttachedPolicies", []))
        ctx.responses["attached_role_policies"].write({"AttachedPolicies": attached})

        inline = []
        for page in iam.get_paginator("list_role_policies").paginate(RoleName=ctx.resource_name):
            for policy_name in page.get("PolicyNames", []):
                policy = iam.get_role_policy(RoleName=ctx.resource_name, PolicyName=policy_name)
                inline.append({
                    "PolicyName": policy_name,
                    "PolicyDocument": policy["PolicyDocument"],
                })
        ctx.responses["inline_role_policies"].write({"Policies": inline})

    def intermediate_properties(self, ctx: ImportContext) -> Dict[str, Any]:
        # Import requires every required property, and the trust policy is one
        properties = super().intermediate_properties(ctx)
        properties["AssumeRolePolicyDocument"] = ctx.response.query("AssumeRolePolicyDocument")
        return properties

    @utils.aws_error_handler("Listing IAM role tags", reraise=True)
    def get_tagging(self, ctx: ImportContext) -> bool:
        iam = get_boto3_client("iam")
        response = iam.list_role_tags(RoleName=ctx.resource_name)
        ctx.responses["list_role_tags"].write(response)
        return True

    def generate_final_values_file(self, ctx: ImportContext) -> str:
        role = ctx.response
        path = role.query("Path")
        max_session = role.query("MaxSessionDuration")

        blocks: Dict[str, Any] = {
            "RoleName": role.query("RoleName"),
            "Path": path if path and path != DEFAULT_PATH else None,
            "Description": role.query("Description") or None,
            "MaxSessionDuration": max_session if max_session and max_session != DEFAULT_MAX_SESSION_DURATION else None,
            "AssumeRolePolicyDocument": role.query("AssumeRolePolicyDocument"),
            "ManagedPolicyArns": ctx.responses["attached_role_policies"].query("AttachedPolicies[].PolicyArn") or None,
            "Policies": ctx.responses["inline_role_policies"].query("Policies") or None,
        }
        blocks.update(self.custom_tags(ctx, response=ctx.responses["list_role_tags"]))
        return self.render_values(ctx, blocks)


def main(argv=None) -> int:
    import sceptre_import
    return sceptre_import.main(argv, resource_type="iam-role", prog="iam_role.py")


if __name__ == "__main__":
    sys.exit(main())
