#!/usr/bin/env python3
"""
===========================
= SCEPTRE RESOURCE IMPORTER =
===========================

Title: Security Group Importer

Description:
Imports an existing EC2 security group, given by name, into the
security-group Sceptre stack. CloudFormation identifies security groups by
group ID, so the ID is resolved in setup_custom and used in the
resources-to-import document.
"""

import re
import sys
from typing import Any, Dict, List, Optional

import utils
from importers import register
from silib.aws_client import get_boto3_client
from silib.context import ImportContext
from silib.errors import ConfigurationError, ResourceNotFoundError
from silib.importer import ResourceImporter
from silib.responses import ApiResponse
from silib import templates

_STACK_NAME_INVALID = re.compile(r"[^A-Za-z0-9-]+")


def _rules(permissions: Optional[List[Dict[str, Any]]], egress: bool = False) -> List[Dict[str, Any]]:
    """
    Flatten EC2 IpPermissions into CloudFormation rule entries.

    One entry is produced per CIDR, IPv6 CIDR, prefix list or peer group.
    """
    peer_group_key = "DestinationSecurityGroupId" if egress else "SourceSecurityGroupId"
    prefix_list_key = "DestinationPrefixListId" if egress else "SourcePrefixListId"

    rules: List[Dict[str, Any]] = []
    for permission in permissions or []:
        base: Dict[str, Any] = {"IpProtocol": permission.get("IpProtocol")}
        if "FromPort" in permission:
            base["FromPort"] = permission["FromPort"]
        if "ToPort" in permission:
            base["ToPort"] = permission["ToPort"]

        sources = (
            [("CidrIp", r["CidrIp"], r.get("Description")) for r in permission.get("IpRanges", [])]
            + [("CidrIpv6", r["CidrIpv6"], r.get("Description")) for r in permission.get("Ipv6Ranges", [])]
            + [(prefix_list_key, r["PrefixListId"], r.get("Description")) for r in permission.get("PrefixListIds", [])]
            + [(peer_group_key, r["GroupId"], r.get("Description")) for r in permission.get("UserIdGroupPairs", [])]
        )
        for key, value, description in sources:
            rule = dict(base)
            rule[key] = value
            if description:
                rule["Description"] = description
            rules.append(rule)
    return rules


@register("security-group")
class SecurityGroupImporter(ResourceImporter):
    sceptre_resource_id = "SecurityGroup"
    sceptre_stack_name = "security-group"
    importable_resource_type = "AWS::EC2::SecurityGroup"
    importable_parameter_name = "Id"
    script_name = "security_group.py"
    suggested_output_dir = "security-groups"

    @utils.aws_error_handler("Listing security groups", reraise=True)
    def list_resources(self, ctx: ImportContext) -> None:
        ec2 = get_boto3_client("ec2")
        groups: List[Dict[str, Any]] = []
        for page in ec2.get_paginator("describe_security_groups").paginate():
            groups.extend(page.get("SecurityGroups", []))
        ApiResponse(ctx.list_resources_report).write({"SecurityGroups": groups})

    def _matching_groups(self, ctx: ImportContext) -> List[Dict[str, Any]]:
        report = ApiResponse(ctx.list_resources_report).data or {}
        return [g for g in report.get("SecurityGroups", []) if g.get("GroupName") == ctx.resource_name]

    def setup_custom(self, ctx: ImportContext) -> None:
        """Resolve the group ID for the group name given on the command line."""
        matches = self._matching_groups(ctx)
        if len(matches) > 1:
            found = ", ".join(f"{g['GroupId']} ({g.get('VpcId', 'no VPC')})" for g in matches)
            raise ConfigurationError(f"Security group name {ctx.resource_name} is ambiguous: {found}")
        ctx.custom["group_id"] = matches[0]["GroupId"] if matches else None

    def check_resource_exists(self, ctx: ImportContext) -> None:
        if not ctx.custom.get("group_id"):
            raise ResourceNotFoundError(f"Security group {ctx.resource_name} not found; exiting")

    def describe_resource(self, ctx: ImportContext) -> None:
        matches = self._matching_groups(ctx)
        if matches:
            ctx.response.write(matches[0])
        else:
            ctx.response.clear()

    def resources_to_import(self, ctx: ImportContext) -> List[Dict[str, Any]]:
        return templates.resources_to_import(
            self.importable_resource_type,
            self.sceptre_resource_id,
            self.importable_parameter_name,
            ctx.custom["group_id"],
        )

    def intermediate_properties(self, ctx: ImportContext) -> Dict[str, Any]:
        properties = {
            "GroupName": ctx.response.query("GroupName"),
            "GroupDescription": ctx.response.query("Description"),
        }
        vpc_id = ctx.response.query("VpcId")
        if vpc_id:
            properties["VpcId"] = vpc_id
        return properties

    def set_stack_name(self, ctx: ImportContext) -> str:
        # Group names allow spaces, underscores and dots; stack names do not
        safe_name = _STACK_NAME_INVALID.sub("-", ctx.resource_name).strip("-")
        ctx.stack_name = f"{safe_name}-{ctx.sceptre_stack_name}"
        return ctx.stack_name

    def get_tagging(self, ctx: ImportContext) -> bool:
        # The describe response already carries the tags
        return bool(ctx.response.query("Tags"))

    def generate_final_values_file(self, ctx: ImportContext) -> str:
        group = ctx.response
        blocks: Dict[str, Any] = {
            "GroupName": group.query("GroupName"),
            "GroupDescription": group.query("Description"),
            "VpcId": group.query("VpcId"),
            "SecurityGroupIngress": _rules(group.query("IpPermissions")) or None,
            "SecurityGroupEgress": _rules(group.query("IpPermissionsEgress"), egress=True) or None,
        }
        blocks.update(self.custom_tags(ctx))
        return self.render_values(ctx, blocks)


def main(argv=None) -> int:
    import sceptre_import
    return sceptre_import.main(argv, resource_type="security-group", prog="security_group.py")


if __name__ == "__main__":
    sys.exit(main())
