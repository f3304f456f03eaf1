"""
silib.importer — The importer base class.

``ResourceImporter`` fixes the order in which an import runs (``run``) and
provides a default for every hook. A plugin for a resource type subclasses
it, fills in the six identity attributes and overrides the hooks it needs,
most importantly ``generate_final_values_file``.

Hooks and their defaults:

    resources_to_import            one entry built from the identity attributes
    generate_intermediate_template minimal template, DeletionPolicy Retain
    generate_final_values_file     header only
    setup_temp                     no-op
    setup_custom                   no-op
    list_resources                 no-op
    check_resource_exists          whole-line match in list_resources_report
    describe_resource              no-op
    set_stack_name                 <resource_name>-<sceptre_stack_name>
    get_tagging                    nothing fetched
    final_launch_steps             prints the values file path and next steps
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import utils
from silib import changeset, environment, templates
from silib.context import ImportContext
from silib.errors import PluginDefinitionError, ResourceNotFoundError
from silib.responses import ApiResponse, as_response
from silib.tags import common_tags_block
from silib.text import delete_blanks, indent

logger = logging.getLogger(__name__)

REQUIRED_ATTRIBUTES = (
    "sceptre_resource_id",
    "sceptre_stack_name",
    "importable_resource_type",
    "importable_parameter_name",
    "script_name",
    "suggested_output_dir",
)

PLUGIN_USAGE = """\
Example importer:

@register("iam-role")
class IamRoleImporter(ResourceImporter):
    sceptre_resource_id = "IAMRole"              # The resource ID used in the Sceptre/CloudFormation template
    sceptre_stack_name = "iam-generic"           # The Sceptre stack name that appears in the source block
    importable_resource_type = "AWS::IAM::Role"  # The CloudFormation resource type that supports import
    importable_parameter_name = "RoleName"       # The CloudFormation property that identifies the resource
    script_name = "iam_role.py"                  # The name of the importer module
    suggested_output_dir = "iam"                 # Values file dir, relative to the account dir holding
                                                 #   common-env.yaml e.g. nonprod/streamotion-datalake-nonprod
"""


class ResourceImporter:
    """Base class for resource-type importers."""

    resource_type_name: str = ""

    sceptre_resource_id: str = ""
    sceptre_stack_name: str = ""
    importable_resource_type: str = ""
    importable_parameter_name: str = ""
    script_name: str = ""
    suggested_output_dir: str = ""

    @classmethod
    def validate(cls) -> None:
        """
        Check every required identity attribute is set.

        Raises:
            PluginDefinitionError: naming the first empty attribute
        """
        for attribute in REQUIRED_ATTRIBUTES:
            if not getattr(cls, attribute, ""):
                raise PluginDefinitionError(attribute, PLUGIN_USAGE)

    def new_context(self, resource_name: str, **kwargs) -> ImportContext:
        return ImportContext(
            resource_name=resource_name,
            sceptre_stack_name=self.sceptre_stack_name,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def resources_to_import(self, ctx: ImportContext) -> List[Dict[str, Any]]:
        """
        The --resources-to-import document.

        Override when importing more than one resource.
        """
        return templates.resources_to_import(
            self.importable_resource_type,
            self.sceptre_resource_id,
            self.importable_parameter_name,
            ctx.resource_name,
        )

    def intermediate_properties(self, ctx: ImportContext) -> Dict[str, Any]:
        return {self.importable_parameter_name: ctx.resource_name}

    def intermediate_parameters(self, ctx: ImportContext) -> Dict[str, Any]:
        return {}

    def generate_intermediate_template(self, ctx: ImportContext) -> str:
        """
        The CloudFormation template that owns the resource until Sceptre's
        template takes over the stack.
        """
        template = templates.intermediate_template(
            ctx.sceptre_stack_name,
            self.sceptre_resource_id,
            self.importable_resource_type,
            self.intermediate_properties(ctx),
            self.intermediate_parameters(ctx),
        )
        return templates.render_template(template)

    def header(self, ctx: ImportContext) -> str:
        return templates.header(self.script_name, ctx.sceptre_stack_name, ctx.template_version)

    def render_values(self, ctx: ImportContext, blocks: Mapping[str, Any], skip_deploy: bool = False) -> str:
        """Header plus the given top-level blocks, ready to write."""
        return templates.render_values(
            self.script_name,
            ctx.sceptre_stack_name,
            ctx.template_version,
            blocks,
            skip_deploy=skip_deploy,
        )

    def generate_final_values_file(self, ctx: ImportContext) -> str:
        """
        The Sceptre values file for the imported resource.

        Generating this file is the main job of a plugin.
        """
        return self.header(ctx)

    def setup_temp(self, ctx: ImportContext) -> None:
        """Create extra response files with ctx.new_response()."""

    def setup_custom(self, ctx: ImportContext) -> None:
        """Resolve any plugin-specific values into ctx.custom."""

    def list_resources(self, ctx: ImportContext) -> None:
        """
        Save all resources of this type to ctx.list_resources_report.

        The report is for the existence check. Use describe_resource to fill
        ctx.response for values file generation.
        """

    def check_resource_exists(self, ctx: ImportContext) -> None:
        """
        Verify the resource exists, raising ResourceNotFoundError otherwise.

        The default expects list_resources to have written one name per line.
        JSON-shaped reports need an override.
        """
        report = Path(ctx.list_resources_report)
        names = report.read_text(encoding="utf-8").splitlines() if report.exists() else []
        if ctx.resource_name not in names:
            raise ResourceNotFoundError(f"Resource {ctx.resource_name} not found")

    def describe_resource(self, ctx: ImportContext) -> None:
        """Prepopulate ctx.response with a describe-like API call."""

    def set_stack_name(self, ctx: ImportContext) -> str:
        """
        The stack name Sceptre will later give this stack.

        Sceptre's naming is inconsistent between templates, so plugins often
        override this.
        """
        ctx.stack_name = f"{ctx.resource_name}-{ctx.sceptre_stack_name}"
        return ctx.stack_name

    def get_tagging(self, ctx: ImportContext) -> bool:
        """
        Save the resource's tags into a response.

        Return True when tags were fetched, False when there is nothing to
        import.
        """
        return False

    def custom_tags(self, ctx: ImportContext, key: str = "Tags", response: Optional[ApiResponse] = None) -> Dict[str, Any]:
        """
        The CommonTags block built from the resource's own tags.

        Args:
            key: Name of the tag list in the tagging response, e.g. "TagSet"
            response: Response get_tagging saved to (default ctx.response)
        """
        logger.info("Importing custom tags if any...")

        if not self.get_tagging(ctx):
            return {}

        return common_tags_block(as_response(response, ctx.response), key)

    def final_launch_steps(self, ctx: ImportContext) -> None:
        """Instructions printed after a full import. Override for manual steps."""
        utils.print_color(
            f"Your generated values file is {ctx.final_values}. To complete the migration:",
            utils.YELLOW,
        )
        print(indent(
            f"1. Review {ctx.final_values} against the live resource.\n"
            f"2. Commit it and raise a pull request.\n"
            f"3. Let the deploy workflow update stack {ctx.stack_name} with Sceptre.\n",
            1,
        ), end="")

    # ------------------------------------------------------------------
    # Fixed sequence
    # ------------------------------------------------------------------

    def write_values(self, ctx: ImportContext) -> Path:
        final_values = Path(ctx.output_path) / f"{ctx.resource_name}.yaml"
        final_values.write_text(self.generate_final_values_file(ctx), encoding="utf-8")
        delete_blanks(final_values)
        ctx.final_values = final_values
        return final_values

    def generate(self, ctx: ImportContext, message: bool = True) -> Path:
        """
        Write the values file.

        Generate-only runs default the output path to the current directory.
        """
        if ctx.output_path is None:
            ctx.output_path = Path(".")

        if message:
            utils.print_color("GENERATING SCEPTRE VALUES FILE", utils.YELLOW)

        final_values = self.write_values(ctx)

        if message:
            utils.print_color(f"Generated values file in {final_values}", utils.GREEN)
        utils.log_success(f"Generated values file {final_values}")
        return final_values

    def import_resources(self, ctx: ImportContext) -> None:
        """
        Import the resource into a new CloudFormation stack.

        Plugins do not override this; customise
        generate_intermediate_template or resources_to_import instead.
        """
        environment.set_common_env_path(ctx)
        environment.set_output_path(ctx, self.suggested_output_dir)
        environment.set_template_bucket(ctx)

        self.set_stack_name(ctx)
        ctx.final_values = Path(ctx.output_path) / f"{ctx.resource_name}.yaml"

        utils.print_color("IMPORTING RESOURCES", utils.YELLOW)
        utils.log_section(f"Importing {ctx.resource_name} into stack {ctx.stack_name}")

        Path(ctx.initial_template).write_text(self.generate_intermediate_template(ctx), encoding="utf-8")
        resources = self.resources_to_import(ctx)
        logger.debug("resources-to-import: %s", json.dumps(resources, separators=(",", ":")))

        changeset.push_template(ctx)
        changeset.create_change_set(ctx, resources)
        changeset.execute_change_set(ctx)
        changeset.add_version_tag(ctx)

    def run(self, ctx: ImportContext) -> Path:
        """
        The import sequence every plugin follows.

        The response files are removed when the run ends, even on failure.

        Returns:
            Path: The generated values file
        """
        try:
            self.setup_temp(ctx)
            self.list_resources(ctx)
            self.setup_custom(ctx)
            self.describe_resource(ctx)
            self.check_resource_exists(ctx)

            if ctx.generate_only:
                return self.generate(ctx)

            self.import_resources(ctx)
            final_values = self.generate(ctx, message=False)
            self.final_launch_steps(ctx)
            return final_values
        finally:
            ctx.remove_responses()
