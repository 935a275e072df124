"""Merging of freshly translated keys into previously translated locale files."""
import logging
from typing import Any, Dict, Iterable, Optional, Union

from locale_sync.locale_files import read_existing_tree
from locale_sync.locale_tree import deep_merge, remove_paths

logger = logging.getLogger(__name__)


def merge_incremental(
    existing: Optional[Dict[str, Any]],
    incoming: Dict[str, Any],
    deleted_paths: Iterable[str]
) -> Dict[str, Any]:
    """
    Combine an existing translated tree with newly translated keys.

    The incoming keys are deep-merged over the existing tree, then every
    deleted source path is pruned. Without an existing tree the incoming
    content stands alone.
    """
    merged = deep_merge(existing, incoming) if existing is not None else incoming
    deleted_paths = list(deleted_paths)
    if deleted_paths:
        merged = remove_paths(merged, deleted_paths)
    return merged


def build_final_content(
    output_file: str,
    incoming: Union[Dict[str, Any], str],
    deleted_paths: Iterable[str],
    is_incremental: bool
) -> Union[Dict[str, Any], str]:
    """
    Decide the content to write for one target-language file.

    Args:
        output_file: Path of the target-language file on disk.
        incoming: The translation returned for this language.
        deleted_paths: Source paths removed since the previous revision.
        is_incremental: Whether ``incoming`` only holds the changed keys.

    Returns:
        The merged tree in incremental mode, otherwise ``incoming`` unchanged.
    """
    if not is_incremental or not isinstance(incoming, dict):
        return incoming

    existing = read_existing_tree(output_file)
    if existing is None:
        logger.info("New file: %s", output_file)
        return merge_incremental(None, incoming, deleted_paths)

    logger.info("Merging translated keys into %s", output_file)
    return merge_incremental(existing, incoming, deleted_paths)


def prune_deleted_keys(output_file: str, deleted_paths: Iterable[str]) -> Optional[Dict[str, Any]]:
    """
    Remove deleted source paths from an existing translated file.

    Returns:
        The pruned tree, or None when there is no usable file to prune.
    """
    existing = read_existing_tree(output_file)
    if existing is None:
        logger.info("Skipping %s (not found)", output_file)
        return None
    return remove_paths(existing, deleted_paths)
