"""
silib.context — Per-invocation state threaded through every importer hook.
"""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from silib.responses import ApiResponse


def _temp_path(name: str) -> Path:
    return Path(tempfile.gettempdir()) / name


@dataclass
class ImportContext:
    """
    State for a single import or generate run.

    Attributes set from the command line are filled by the CLI; the rest are
    resolved by silib.environment and the importer hooks as the run proceeds.
    """

    resource_name: str
    sceptre_stack_name: str = ""
    generate_only: bool = False
    output_path: Optional[Path] = None
    common_env: Optional[Path] = None
    dev_mode: bool = False

    sceptre_environment: Optional[Path] = None
    sceptre_templates: Optional[Path] = None
    template_version: str = ""
    template_bucket_name: str = ""
    stack_name: str = ""
    final_values: Optional[Path] = None

    initial_template: Path = field(default_factory=lambda: _temp_path("initial-template.yaml"))
    list_resources_report: Path = field(default_factory=lambda: _temp_path("resources.json"))
    response: ApiResponse = field(default_factory=ApiResponse.temporary)

    # Extra responses and values plugins create in setup_temp/setup_custom
    responses: Dict[str, ApiResponse] = field(default_factory=dict)
    custom: Dict[str, Any] = field(default_factory=dict)

    def new_response(self, name: str) -> ApiResponse:
        """Create and remember an additional temp-file-backed response."""
        response = ApiResponse.temporary(prefix=f"{name}-")
        self.responses[name] = response
        return response

    def remove_responses(self) -> None:
        """Delete the response files behind ctx.response and ctx.responses."""
        self.response.remove()
        for response in self.responses.values():
            response.remove()
