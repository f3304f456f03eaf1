"""
silib.errors — Exception taxonomy for SceptreImport.

Every error is fatal: the CLI prints it and exits non-zero. Nothing is
retried or rolled back.
"""


class SceptreImportError(Exception):
    """Base class for all SceptreImport failures."""

    exit_code = 1


class ConfigurationError(SceptreImportError):
    """Missing directories, unreadable VERSION files, bad common-env.yaml."""


class PluginDefinitionError(ConfigurationError):
    """An importer plugin left a required attribute empty."""

    def __init__(self, attribute: str, usage: str = ""):
        self.attribute = attribute
        self.usage = usage
        super().__init__(f"{attribute} not set")


class RepositorySyncError(ConfigurationError):
    """The template repository is not on its tracked branch or not in sync."""


class UnknownResourceTypeError(ConfigurationError):
    """No importer is registered for the requested resource type."""


class ResourceNotFoundError(SceptreImportError):
    """The resource to import does not exist in the account."""


class ImportPipelineError(SceptreImportError):
    """A step of the CloudFormation import pipeline failed."""


class ChangeSetError(ImportPipelineError):
    """The import change set could not be created."""

    def __init__(self, reason: str, stack_name: str = ""):
        self.reason = reason
        self.stack_name = stack_name
        super().__init__(reason)
