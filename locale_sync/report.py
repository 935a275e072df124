import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from locale_sync.exceptions import OutputFileError
from locale_sync.translation_validator import SEVERITY_ERROR, SEVERITY_WARNING, VerificationIssue

logger = logging.getLogger(__name__)

MAX_LISTED_ERRORS = 10
MAX_LISTED_WARNINGS = 5
MAX_LISTED_REVIEW_ITEMS = 5


@dataclass
class SelfCorrectionStats:
    """Totals reported by the self-correcting translate calls."""
    corrected: int = 0
    # {"file", "language", "items"} per language that has translations needing review.
    needs_review: List[Dict[str, Any]] = field(default_factory=list)
    cost: float = 0.0

    @property
    def needs_review_count(self) -> int:
        return sum(len(entry["items"]) for entry in self.needs_review)

    def add(self, other: "SelfCorrectionStats") -> None:
        self.corrected += other.corrected
        self.needs_review.extend(other.needs_review)
        self.cost += other.cost


@dataclass
class RunReport:
    """Counters and verification findings accumulated over one run."""
    source_files: List[str] = field(default_factory=list)
    # (language, path) for every file written or pruned, in write order.
    written_files: List[Tuple[str, str]] = field(default_factory=list)
    keys_translated: int = 0
    keys_deleted: int = 0
    keys_excluded: int = 0
    issues: List[VerificationIssue] = field(default_factory=list)
    # Set only when self-correcting mode is on.
    self_correction: Optional[SelfCorrectionStats] = None

    @property
    def files_changed(self) -> List[str]:
        return [path for _, path in self.written_files]

    @property
    def errors(self) -> List[VerificationIssue]:
        return [issue for issue in self.issues if issue.severity == SEVERITY_ERROR]

    @property
    def warnings(self) -> List[VerificationIssue]:
        return [issue for issue in self.issues if issue.severity == SEVERITY_WARNING]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


def _issue_line(issue: VerificationIssue) -> str:
    return f"- [{issue.language}] `{issue.label}`: {issue.message}\n"


def _review_line(entry: Dict[str, Any], item: Dict[str, Any]) -> str:
    key = item.get('key', '?')
    reason = item.get('reason') or item.get('message')
    suffix = f": {reason}" if reason else ""
    return f"- [{entry['language']}] `{key}` in {entry['file']}{suffix}\n"


def format_self_correction_summary(stats: SelfCorrectionStats) -> str:
    summary = "### Self-Correction Results\n"
    summary += f"- Translations auto-corrected: {stats.corrected}\n"
    if stats.needs_review_count:
        summary += f"- **Needs human review: {stats.needs_review_count}**\n"
        listed = [(entry, item) for entry in stats.needs_review for item in entry['items']]
        for entry, item in listed[:MAX_LISTED_REVIEW_ITEMS]:
            summary += "  " + _review_line(entry, item)
        if len(listed) > MAX_LISTED_REVIEW_ITEMS:
            summary += f"  - ... and {len(listed) - MAX_LISTED_REVIEW_ITEMS} more\n"
    summary += f"- Cost: ${stats.cost:.6f}\n"
    return summary


def format_verification_summary(
    issues: Sequence[VerificationIssue],
    self_correction: Optional[SelfCorrectionStats] = None
) -> str:
    """Render verification findings, and self-correction totals when present, as Markdown."""
    if not issues:
        summary = "### Verification Passed\nAll translations passed quality checks.\n"
    else:
        errors = [issue for issue in issues if issue.severity == SEVERITY_ERROR]
        warnings = [issue for issue in issues if issue.severity == SEVERITY_WARNING]

        summary = "### Verification Results\n\n"
        if errors:
            summary += f"**{len(errors)} Error(s):**\n"
            for issue in errors[:MAX_LISTED_ERRORS]:
                summary += _issue_line(issue)
            if len(errors) > MAX_LISTED_ERRORS:
                summary += f"- ... and {len(errors) - MAX_LISTED_ERRORS} more errors\n"
            summary += "\n"

        if warnings:
            summary += f"**{len(warnings)} Warning(s):**\n"
            for issue in warnings[:MAX_LISTED_WARNINGS]:
                summary += _issue_line(issue)
            if len(warnings) > MAX_LISTED_WARNINGS:
                summary += f"- ... and {len(warnings) - MAX_LISTED_WARNINGS} more warnings\n"

    if self_correction is not None:
        summary += "\n" + format_self_correction_summary(self_correction)
    return summary


def log_verification_results(report: RunReport) -> None:
    if not report.issues:
        logger.info("All verification checks passed")
        return
    logger.warning("Verification found %d error(s) and %d warning(s)", report.error_count, report.warning_count)
    for issue in report.errors[:5]:
        logger.warning("[%s] %s: %s", issue.language, issue.label, issue.message)


def log_self_correction_results(stats: SelfCorrectionStats) -> None:
    logger.info("Self-correction: %d translation(s) auto-corrected, %d need review, cost $%.6f",
                stats.corrected, stats.needs_review_count, stats.cost)
    for entry in stats.needs_review:
        for item in entry['items'][:3]:
            logger.warning("Needs review [%s] %s: %s", entry['language'], entry['file'], item.get('key', '?'))


def write_action_outputs(report: RunReport, target_languages: Sequence[str]) -> None:
    """
    Append run counters to the CI step output file, if the runner provides one.

    Raises:
        OutputFileError: If the output file cannot be appended to.
    """
    output_path = os.environ.get('GITHUB_OUTPUT')
    if not output_path:
        return
    self_correction = report.self_correction or SelfCorrectionStats()
    outputs = {
        'files-changed': len(report.written_files),
        'files-list': json.dumps(report.files_changed),
        'languages': ','.join(target_languages),
        'keys-translated': report.keys_translated,
        'keys-deleted': report.keys_deleted,
        'verification-errors': report.error_count,
        'verification-warnings': report.warning_count,
        'skipped-keys-count': report.keys_excluded,
        'self-correct-corrected': self_correction.corrected,
        'self-correct-needs-review': self_correction.needs_review_count,
        'self-correct-cost': f"{self_correction.cost:.6f}",
    }
    try:
        with open(output_path, 'a', encoding='utf-8') as f:
            for name, value in outputs.items():
                f.write(f"{name}={value}\n")
    except OSError as e:
        raise OutputFileError(f"Failed to write step outputs to {output_path}: {e}") from e


def write_report_file(report: RunReport, report_path: str) -> None:
    """Write the verification summary for the run, replacing any previous report."""
    report_dir = os.path.dirname(report_path)
    try:
        if report_dir:
            os.makedirs(report_dir, exist_ok=True)
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write("## Translation Run Report\n\n")
            f.write(f"- Files changed: {len(report.written_files)}\n")
            f.write(f"- Keys translated: {report.keys_translated}\n")
            f.write(f"- Keys deleted: {report.keys_deleted}\n")
            f.write(f"- Keys excluded: {report.keys_excluded}\n\n")
            f.write(format_verification_summary(report.issues, report.self_correction))
    except OSError as e:
        raise OutputFileError(f"Failed to write report {report_path}: {e}") from e
    logger.info("Verification report written to %s", report_path)
