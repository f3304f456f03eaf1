"""
silib.templates — Documents produced during an import.

Builds the resources-to-import list passed to CreateChangeSet, the
intermediate CloudFormation template that owns the resource until Sceptre
takes over, and the Sceptre values file.
"""

from typing import Any, Dict, List, Mapping, Optional

import yaml

GHA_SKIP_DEPLOY = "#gha skip-deploy\n"


class _ValuesDumper(yaml.SafeDumper):
    """Safe dumper that indents sequences under their parent key."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def dump_yaml(data: Any) -> str:
    """Render data as block-style YAML, keeping key order."""
    return yaml.dump(data, Dumper=_ValuesDumper, default_flow_style=False, sort_keys=False)


def resources_to_import(
    resource_type: str,
    logical_resource_id: str,
    parameter_name: str,
    resource_name: str,
) -> List[Dict[str, Any]]:
    """The --resources-to-import document for a single resource."""
    return [{
        "ResourceType": resource_type,
        "LogicalResourceId": logical_resource_id,
        "ResourceIdentifier": {
            parameter_name: resource_name,
        },
    }]


def intermediate_template(
    sceptre_stack_name: str,
    logical_resource_id: str,
    resource_type: str,
    properties: Mapping[str, Any],
    parameters: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    The CloudFormation template used to create the import stack.

    The resource is retained on stack deletion so that a failed migration
    never destroys it.
    """
    return {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Description": f"Initial import of {sceptre_stack_name}",
        "Parameters": dict(parameters or {}),
        "Resources": {
            logical_resource_id: {
                "Type": resource_type,
                "DeletionPolicy": "Retain",
                "Properties": dict(properties),
            },
        },
        "Outputs": {},
    }


def render_template(template: Mapping[str, Any]) -> str:
    return "---\n" + dump_yaml(dict(template))


def header(script_name: str, sceptre_stack_name: str, template_version: str) -> str:
    """The header every generated values file begins with."""
    return (
        f"# Generated by {script_name}\n"
        "---\n"
        + dump_yaml({"source": {"path": sceptre_stack_name, "version": template_version}})
        + "\n"
    )


def gha_skip_deploy() -> str:
    """Marker line telling the deploy workflow to leave the stack alone."""
    return GHA_SKIP_DEPLOY


def render_blocks(blocks: Mapping[str, Any]) -> str:
    """
    Render each top-level key as its own YAML block followed by a blank line.

    Keys whose value is None are skipped.
    """
    rendered = []
    for key, value in blocks.items():
        if value is None:
            continue
        rendered.append(dump_yaml({key: value}) + "\n")
    return "".join(rendered)


def render_values(
    script_name: str,
    sceptre_stack_name: str,
    template_version: str,
    blocks: Mapping[str, Any],
    skip_deploy: bool = False,
) -> str:
    """Assemble a complete values file: marker, header, then blocks."""
    prefix = gha_skip_deploy() if skip_deploy else ""
    return prefix + header(script_name, sceptre_stack_name, template_version) + render_blocks(blocks)
