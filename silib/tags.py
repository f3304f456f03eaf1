"""
silib.tags — Translate live AWS tags into a Sceptre CommonTags block.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from silib.config import get_tags_to_ignore
from silib.responses import ApiResponse

logger = logging.getLogger(__name__)

AWS_RESERVED_PREFIX = "aws:"


def filter_tags(
    tags: Optional[Iterable[Dict[str, Any]]],
    ignore: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Reduce a list of ``{"Key": ..., "Value": ...}`` tags to a mapping.

    Keys in the ignore list and keys with the ``aws:`` prefix are dropped.
    Later duplicates win.

    Args:
        tags: Tag list as returned by the AWS tagging APIs
        ignore: Keys to exclude (default: tags_to_ignore from config)

    Returns:
        dict: Key to value mapping, in API order
    """
    if ignore is None:
        ignore = get_tags_to_ignore()

    filtered: Dict[str, Any] = {}
    for tag in tags or []:
        key = tag.get("Key")
        if key is None or key in ignore or key.startswith(AWS_RESERVED_PREFIX):
            continue
        filtered[key] = tag.get("Value")
    return filtered


def common_tags_block(
    response: ApiResponse,
    tag_key: str = "Tags",
    ignore: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Build the CommonTags block from a saved tagging response.

    Args:
        response: The response holding the tag list
        tag_key: Name of the list in the response, e.g. "TagSet" for S3

    Returns:
        dict: ``{"CommonTags": {...}}`` or an empty dict when no tags survive
    """
    data = response.data
    tags = data.get(tag_key) if isinstance(data, dict) else None
    filtered = filter_tags(tags, ignore)
    if not filtered:
        logger.debug("No custom tags to import")
        return {}
    logger.debug("Importing %d custom tag(s)", len(filtered))
    return {"CommonTags": filtered}
