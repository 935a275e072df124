import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from locale_sync.locale_tree import flatten


@dataclass(frozen=True)
class ChangeSet:
    """Leaf paths added, modified and deleted between two revisions of a source tree."""
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def paths_to_translate(self) -> List[str]:
        return self.added + self.modified

    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.deleted)


def _canonical(value: Any) -> str:
    # Distinguishes True from 1 and 1 from 1.0, which plain == does not.
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def detect_changed_keys(old_tree: Dict[str, Any], new_tree: Dict[str, Any]) -> ChangeSet:
    """
    Classify every leaf path of two source trees as added, modified or deleted.

    Values are compared structurally, so lists and other opaque leaves count as
    modified only when their content differs. Paths with equal values appear in
    none of the three lists. ``added`` and ``modified`` follow the order of
    ``new_tree``; ``deleted`` follows the order of ``old_tree``.

    The caller decides what a missing baseline means; pass an empty dict only
    when the previous revision really was empty.
    """
    old_flat = flatten(old_tree)
    new_flat = flatten(new_tree)

    added: List[str] = []
    modified: List[str] = []
    for path, value in new_flat.items():
        if path not in old_flat:
            added.append(path)
        elif _canonical(old_flat[path]) != _canonical(value):
            modified.append(path)

    deleted = [path for path in old_flat if path not in new_flat]
    return ChangeSet(added=added, modified=modified, deleted=deleted)
