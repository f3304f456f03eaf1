#!/usr/bin/env python3
"""
===========================
= SCEPTRE RESOURCE IMPORTER =
===========================

Title: SceptreImport - Import existing AWS resources into Sceptre
Version: v0.1.0

Description:
Imports a pre-existing AWS resource into a new CloudFormation stack through
an IMPORT change set, then generates the Sceptre values file that lets the
Sceptre template take the stack over.

Usage:
    [DEV_MODE=true] sceptre_import.py [-h] [-g] [-o OUTPUT_PATH] [-c COMMON_ENV] RESOURCE_TYPE RESOURCE_NAME

Each importer module can also be run directly:
    python -m importers.iam_role [-h] [-g] [-o OUTPUT_PATH] [-c COMMON_ENV] RESOURCE_NAME

Deployment Structure:
- SCEPTRE_ENV_DIR points at the sceptre-environment repository (values files)
- SCEPTRE_TEMPLATE_DIR points at the Sceptre template repository
- AWS_PROFILE selects both the credentials and <env>/*/<profile>/common-env.yaml
"""

import argparse
import datetime
import sys
from pathlib import Path
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

import utils
from importers import available_types, get_importer
from silib import environment
from silib.aws_client import validate_aws_credentials
from silib.errors import ConfigurationError, PluginDefinitionError, SceptreImportError
from silib.text import print_err

DESCRIPTION = "A script to import resources into Sceptre"

EPILOG = """\
environment:
  DEV_MODE              skip the tracked-branch check on the template repository
  SCEPTRE_ENV_DIR       sceptre-environment checkout (default /app/sceptre-environment)
  SCEPTRE_TEMPLATE_DIR  Sceptre template checkout
  AWS_PROFILE           AWS profile, also used to find common-env.yaml
"""


def build_parser(resource_type: Optional[str] = None, prog: Optional[str] = None) -> argparse.ArgumentParser:
    """
    Build the command line parser.

    With resource_type fixed (an importer run as its own script) the
    RESOURCE_TYPE positional is omitted.
    """
    parser = argparse.ArgumentParser(
        prog=prog,
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-g", dest="generate_only", action="store_true",
        help="Generate the values file only (no import)",
    )
    parser.add_argument(
        "-o", dest="output_path", metavar="OUTPUT_PATH", type=Path,
        help="Set a custom location for the generated values file",
    )
    parser.add_argument(
        "-c", dest="common_env", metavar="COMMON_ENV", type=Path,
        help="Path to common-env.yaml. Defaults to $SCEPTRE_ENV_DIR/*/$AWS_PROFILE/common-env.yaml",
    )
    if resource_type is None:
        types = available_types()
        parser.add_argument(
            "resource_type", metavar="RESOURCE_TYPE", choices=types,
            help=f"Resource type to import, one of: {', '.join(types)}",
        )
    parser.add_argument("resource_name", metavar="RESOURCE_NAME", help="Name of the resource to import")
    parser.set_defaults(resource_type=resource_type)
    return parser


def parse_args(argv: Optional[List[str]] = None, resource_type: Optional[str] = None,
               prog: Optional[str] = None) -> argparse.Namespace:
    """Parse arguments; unknown flags or a missing name exit with usage (status 2)."""
    parser = build_parser(resource_type, prog=prog)
    args = parser.parse_args(argv)
    if not args.resource_name.strip():
        parser.error("RESOURCE_NAME must not be empty")
    return args


def run_import(args: argparse.Namespace) -> Path:
    """
    Resolve the importer and environment for parsed arguments and run it.

    Raises:
        SceptreImportError: any failure along the way
    """
    importer_cls = get_importer(args.resource_type)
    importer_cls.validate()
    importer = importer_cls()

    ctx = importer.new_context(
        args.resource_name,
        generate_only=args.generate_only,
        output_path=args.output_path,
        common_env=args.common_env,
    )
    environment.resolve_environment(ctx)

    valid, account_id, error = validate_aws_credentials()
    if not valid:
        raise ConfigurationError(f"Unable to validate AWS credentials: {error}")
    utils.log_info(f"Account: {account_id}")
    utils.log_info(f"Template version: {ctx.sceptre_stack_name} {ctx.template_version}")

    return importer.run(ctx)


def main(argv: Optional[List[str]] = None, resource_type: Optional[str] = None,
         prog: Optional[str] = None) -> int:
    """
    Command line entry point.

    Returns:
        int: Process exit status
    """
    args = parse_args(argv, resource_type, prog=prog)

    script_name = f"import-{args.resource_type}"
    start_time = datetime.datetime.now()
    utils.setup_logging(script_name, log_to_file=True)
    utils.log_script_start(script_name, f"Import {args.resource_type} {args.resource_name} into Sceptre")

    try:
        run_import(args)
    except PluginDefinitionError as e:
        print_err(e.usage)
        utils.print_color(str(e), utils.RED, stream=sys.stderr)
        utils.log_error(f"Importer {args.resource_type} is incomplete", e)
        return e.exit_code
    except SceptreImportError as e:
        utils.print_color(str(e), utils.RED, stream=sys.stderr)
        utils.log_error(f"Import of {args.resource_name} failed", e)
        return e.exit_code
    except (ClientError, BotoCoreError, OSError) as e:
        utils.print_color(str(e), utils.RED, stream=sys.stderr)
        utils.log_error(f"Import of {args.resource_name} failed", e)
        return 1
    finally:
        utils.log_script_end(script_name, start_time)

    return 0


if __name__ == "__main__":
    sys.exit(main())
