import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from locale_sync.locale_tree import flatten

KIND_PLACEHOLDER = 'placeholder'
KIND_KEY_PARITY = 'key_parity'
KIND_LENGTH = 'length'
KIND_OTHER = 'other'

SEVERITY_ERROR = 'error'
SEVERITY_WARNING = 'warning'

# Number of example paths listed in a batched key-parity message.
KEY_PARITY_EXAMPLES = 5

# Strings shorter than this are too noisy for the length ratio check.
MIN_LENGTH_FOR_RATIO = 5
MAX_LENGTH_RATIO = 5.0
MIN_LENGTH_RATIO = 0.2

PLACEHOLDER_PATTERNS = (
    re.compile(r'\{\{[^{}]+\}\}'),             # {{name}} - i18next/Handlebars
    re.compile(r'(?<!\{)\{[^{}]+\}(?!\})'),     # {name}, {0} - ICU/general
    re.compile(r'%[sd@]'),                      # %s, %d, %@ - printf
    re.compile(r'%\d+\$[sd@]'),                 # %1$s - positional printf
)

# 'Ã' followed by a byte in 0x80-0xFF is what UTF-8 text looks like after being
# decoded as latin-1 or cp1252.
MOJIBAKE_PATTERN = re.compile(r'Ã[\x80-\xff]')


@dataclass(frozen=True)
class VerificationIssue:
    """A single finding produced while verifying one translated file."""
    path: Optional[str]
    kind: str
    severity: str
    message: str
    language: str
    paths: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.path or self.kind


def check_key_coverage(base_keys: Sequence[str], target_keys: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Compares the dot-paths of a translated tree against the source tree.

    Args:
        base_keys: Paths of the source tree, in document order.
        target_keys: Paths of the translated tree, in document order.

    Returns:
        A tuple containing two lists:
        - missing_keys: Paths present in the source but missing from the translation.
        - extra_keys: Paths present in the translation but absent from the source.
    """
    target_set = set(target_keys)
    base_set = set(base_keys)
    missing_keys = [key for key in base_keys if key not in target_set]
    extra_keys = [key for key in target_keys if key not in base_set]
    return missing_keys, extra_keys


def _describe_paths(paths: List[str]) -> str:
    shown = ', '.join(paths[:KEY_PARITY_EXAMPLES])
    return shown + ('...' if len(paths) > KEY_PARITY_EXAMPLES else '')


def verify_key_parity(source_paths: List[str], translated_paths: List[str], language: str) -> List[VerificationIssue]:
    """Report missing and unexpected paths, batched into one warning each."""
    missing_keys, extra_keys = check_key_coverage(source_paths, translated_paths)
    issues = []
    if missing_keys:
        issues.append(VerificationIssue(
            path=None,
            kind=KIND_KEY_PARITY,
            severity=SEVERITY_WARNING,
            message=f"{len(missing_keys)} key(s) missing in {language}: {_describe_paths(missing_keys)}",
            language=language,
            paths=tuple(missing_keys)
        ))
    if extra_keys:
        issues.append(VerificationIssue(
            path=None,
            kind=KIND_KEY_PARITY,
            severity=SEVERITY_WARNING,
            message=f"{len(extra_keys)} unexpected key(s) in {language}: {_describe_paths(extra_keys)}",
            language=language,
            paths=tuple(extra_keys)
        ))
    return issues


def extract_placeholders(text: str) -> Set[str]:
    """
    Collect the distinct placeholder tokens in a string.

    Recognizes {{name}}, {name}/{0}, %s/%d/%@ and positional %1$s.
    """
    placeholders: Set[str] = set()
    for pattern in PLACEHOLDER_PATTERNS:
        placeholders.update(pattern.findall(text))
    return placeholders


def check_placeholder_parity(base_string: str, target_string: str) -> Tuple[List[str], List[str]]:
    """
    Compares the placeholder sets of a source string and its translation.

    Order and repetition are ignored; only distinct tokens matter.

    Returns:
        A tuple of (missing, unexpected) tokens, each sorted. Both empty means the
        placeholders survived translation.
    """
    base_placeholders = extract_placeholders(base_string)
    target_placeholders = extract_placeholders(target_string)
    missing = sorted(base_placeholders - target_placeholders)
    unexpected = sorted(target_placeholders - base_placeholders)
    return missing, unexpected


def verify_placeholders(source_value: str, translated_value: str, path: str,
                        language: str) -> Optional[VerificationIssue]:
    missing, unexpected = check_placeholder_parity(source_value, translated_value)
    if not missing and not unexpected:
        return None
    if missing:
        message = f"Missing placeholders: {', '.join(missing)}"
    else:
        message = f"Unexpected placeholders: {', '.join(unexpected)}"
    return VerificationIssue(
        path=path,
        kind=KIND_PLACEHOLDER,
        severity=SEVERITY_ERROR,
        message=message,
        language=language
    )


def verify_length_sanity(source_value: str, translated_value: str, path: str,
                         language: str) -> Optional[VerificationIssue]:
    """
    Flag translations far longer or shorter than their source.

    Catches truncation and runaway output, e.g. an error message returned in
    place of a translation. Bounds are exclusive: a ratio of exactly 5.0 passes.
    """
    if len(source_value) < MIN_LENGTH_FOR_RATIO:
        return None

    ratio = len(translated_value) / len(source_value)
    if ratio > MAX_LENGTH_RATIO:
        direction = 'longer'
    elif ratio < MIN_LENGTH_RATIO:
        direction = 'shorter'
    else:
        return None

    return VerificationIssue(
        path=path,
        kind=KIND_LENGTH,
        severity=SEVERITY_WARNING,
        message=f"Translation is {ratio:.1f}x {direction} than source",
        language=language
    )


def check_encoding_and_mojibake(text: str) -> List[str]:
    """
    Checks a translated string for common mojibake patterns.

    Returns:
        A list of problem descriptions. An empty list means the text looks clean.
    """
    problems = []
    if MOJIBAKE_PATTERN.search(text):
        problems.append("Potential mojibake detected (patterns like 'Ã¼', 'Ã¤')")
    if '\uFFFD' in text:
        problems.append("Contains the Unicode replacement character (\uFFFD)")
    return problems


def verify_encoding(translated_value: str, path: str, language: str) -> Optional[VerificationIssue]:
    problems = check_encoding_and_mojibake(translated_value)
    if not problems:
        return None
    return VerificationIssue(
        path=path,
        kind=KIND_OTHER,
        severity=SEVERITY_WARNING,
        message='; '.join(problems),
        language=language
    )


def run_verification(source_tree: Dict[str, Any], translated_tree: Dict[str, Any],
                     language: str) -> List[VerificationIssue]:
    """
    Run every local check for one translated tree against the full source tree.

    Key parity comes first, then per source path (document order) the
    placeholder, length and encoding checks for paths whose source and
    translated values are both strings.
    """
    source_flat = flatten(source_tree)
    translated_flat = flatten(translated_tree)

    issues = verify_key_parity(list(source_flat), list(translated_flat), language)

    for path, source_value in source_flat.items():
        translated_value = translated_flat.get(path)
        if not isinstance(source_value, str) or not isinstance(translated_value, str):
            continue

        for issue in (
            verify_placeholders(source_value, translated_value, path, language),
            verify_length_sanity(source_value, translated_value, path, language),
            verify_encoding(translated_value, path, language),
        ):
            if issue is not None:
                issues.append(issue)

    return issues


def unparseable_output_issue(language: str, reason: str) -> VerificationIssue:
    return VerificationIssue(
        path=None,
        kind=KIND_OTHER,
        severity=SEVERITY_ERROR,
        message=f"Translated output for {language} could not be parsed: {reason}",
        language=language
    )
