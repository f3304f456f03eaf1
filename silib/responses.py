"""
silib.responses — File-backed holder for the last AWS API response.

Importer plugins save an API response (usually from describe_resource or
get_tagging) and then pull values out of it while generating the values
file. Queries use JMESPath, the same language as the AWS CLI ``--query``
option.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import jmespath
import yaml


class ApiResponse:
    """A single saved API response, stored as JSON text in a file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"ApiResponse({str(self.path)!r})"

    @classmethod
    def temporary(cls, prefix: str = "response-") -> "ApiResponse":
        """Create a response backed by a fresh temp file."""
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=".json")
        os.close(fd)
        return cls(path)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, data: Any) -> "ApiResponse":
        """Save a parsed response (boto3 dict/list) as JSON."""
        data = _strip_metadata(data)
        self.path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        return self

    def write_text(self, text: str) -> "ApiResponse":
        self.path.write_text(text, encoding="utf-8")
        return self

    def clear(self) -> "ApiResponse":
        return self.write_text("")

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def text(self) -> str:
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8")

    @property
    def data(self) -> Any:
        """The parsed response, or None when nothing has been saved."""
        raw = self.text()
        if not raw.strip():
            return None
        return json.loads(raw)

    def query(self, expression: str) -> Any:
        """Run a JMESPath expression against the response."""
        return jmespath.search(expression, self.data)

    def query_text(self, expression: str) -> str:
        """
        Query and render the result as text.

        Strings come back raw, None as an empty string, anything else as
        JSON.
        """
        result = self.query(expression)
        if result is None:
            return ""
        if isinstance(result, str):
            return result
        return json.dumps(result, indent=2, default=str)

    def compact(self, expression: str = "@") -> str:
        """Query and render the result as minified JSON."""
        return json.dumps(self.query(expression), separators=(",", ":"), default=str)

    def to_yaml(self, expression: str = "@", newline: bool = True) -> str:
        """
        Query and render the result as block-style YAML.

        Returns an empty string when the query yields nothing, otherwise the
        YAML followed by a blank line unless newline is False.
        """
        result = self.query(expression)
        if result in (None, "", [], {}):
            return ""
        rendered = yaml.safe_dump(result, default_flow_style=False, sort_keys=False)
        return rendered + ("\n" if newline else "")

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def equals(self, expected: Union[str, Any]) -> bool:
        """
        Compare the whole response with an expected value.

        A string is treated as minified JSON, as produced by compact().
        """
        if isinstance(expected, str):
            return self.compact() == expected
        return self.data == expected

    def not_equals(self, expected: Union[str, Any]) -> bool:
        return not self.equals(expected)

    def is_empty(self) -> bool:
        return not self.text()

    def is_not_empty(self) -> bool:
        return not self.is_empty()

    def seen(self, word: str) -> bool:
        """Whole-word search of the raw response text."""
        return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", self.text()) is not None

    def not_seen(self, word: str) -> bool:
        return not self.seen(word)

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


def _strip_metadata(data: Any) -> Any:
    if isinstance(data, dict) and "ResponseMetadata" in data:
        return {k: v for k, v in data.items() if k != "ResponseMetadata"}
    return data


def as_response(target: Optional[ApiResponse], default: ApiResponse) -> ApiResponse:
    """Pick an explicit target response or fall back to the default one."""
    return target if target is not None else default
