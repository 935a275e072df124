"""Matching of dot-paths against the keys and path globs that must not be translated."""
import fnmatch
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from locale_sync.locale_tree import PATH_SEPARATOR


def parse_list_input(raw_value) -> List[str]:
    """
    Normalize a comma-separated string (or a list) into a list of non-empty items.

    Example:
        ' brandName , company.name,, ' -> ['brandName', 'company.name']
    """
    if not raw_value:
        return []
    if isinstance(raw_value, str):
        items = raw_value.split(',')
    else:
        items = raw_value
    return [str(item).strip() for item in items if str(item).strip()]


def _match_segments(pattern: Sequence[str], segments: Sequence[str]) -> bool:
    if not pattern:
        return not segments
    head, rest = pattern[0], pattern[1:]
    if head == '**':
        # '**' absorbs zero or more segments.
        return any(_match_segments(rest, segments[i:]) for i in range(len(segments) + 1))
    if not segments:
        return False
    return fnmatch.fnmatchcase(segments[0], head) and _match_segments(rest, segments[1:])


def path_matches_glob(path: str, pattern: str) -> bool:
    """
    Check a dot-path against a glob where '*' is one segment and '**' any number.

    Examples:
        path_matches_glob('states.CA', 'states.*') -> True
        path_matches_glob('states.CA.name', 'states.*') -> False
        path_matches_glob('a.b.internal', '**.internal') -> True
    """
    return _match_segments(pattern.split(PATH_SEPARATOR), path.split(PATH_SEPARATOR))


@dataclass(frozen=True)
class SkipRules:
    """Keys and dot-path globs whose values are copied from the source verbatim."""
    skip_keys: List[str] = field(default_factory=list)
    skip_paths: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.skip_keys or self.skip_paths)

    def is_excluded(self, path: str) -> bool:
        leaf_key = path.rsplit(PATH_SEPARATOR, 1)[-1]
        for key in self.skip_keys:
            if key == path or key == leaf_key:
                return True
        return any(path_matches_glob(path, pattern) for pattern in self.skip_paths)

    def split(self, flat_map: Dict[str, object]) -> tuple[Dict[str, object], Dict[str, object]]:
        """Split a flat map into (translatable, excluded) parts, keeping order."""
        translatable: Dict[str, object] = {}
        excluded: Dict[str, object] = {}
        for path, value in flat_map.items():
            if self.is_excluded(path):
                excluded[path] = value
            else:
                translatable[path] = value
        return translatable, excluded
