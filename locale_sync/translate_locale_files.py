import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from locale_sync.app_config import AppConfig, load_app_config
from locale_sync.change_detector import detect_changed_keys
from locale_sync.exceptions import ConfigurationError, LocaleSyncError, SourceFileError
from locale_sync.locale_files import (
    FORMAT_YAML,
    SourceDocument,
    discover_source_files,
    effective_output_dir,
    parse_locale_text,
    read_source_file,
    resolve_output_path,
    serialize_content,
    write_text_file
)
from locale_sync.locale_tree import deep_merge, extract_subset, flatten, unflatten
from locale_sync.report import (
    RunReport,
    SelfCorrectionStats,
    format_verification_summary,
    log_self_correction_results,
    log_verification_results,
    write_action_outputs,
    write_report_file
)
from locale_sync.skip_rules import SkipRules
from locale_sync.translation_client import TranslationClient
from locale_sync.translation_validator import (
    KIND_OTHER,
    SEVERITY_WARNING,
    VerificationIssue,
    run_verification,
    unparseable_output_issue
)
from locale_sync.tree_merger import build_final_content, prune_deleted_keys
from locale_sync.vcs import build_pull_request_body, commit_changes, create_pull_request, get_previous_file_content

logger = logging.getLogger("locale_sync.translate_locale_files")


@dataclass
class TranslationResult:
    """What one source file produced in this run, before anything is written."""
    source: SourceDocument
    translated_content: Dict[str, Union[Dict[str, Any], str]] = field(default_factory=dict)
    deleted_paths: List[str] = field(default_factory=list)
    is_incremental: bool = False
    changed_key_count: int = 0
    excluded_key_count: int = 0
    self_correction: Optional[SelfCorrectionStats] = None

    @property
    def has_changes(self) -> bool:
        return bool(self.translated_content or self.deleted_paths)


@dataclass
class WrittenFile:
    """A target-language file written (or pruned) for a source file."""
    language: str
    path: str
    content: Union[Dict[str, Any], str]


def load_baseline(source: SourceDocument) -> Optional[Dict[str, Any]]:
    """
    Fetch and parse the previous revision of a source file.

    Returns:
        The previous tree, or None when there is no usable baseline. Both cases
        fall back to a full translation of the file.
    """
    previous_text = get_previous_file_content(source.path)
    if previous_text is None:
        logger.info("No previous version of '%s' found, performing full translation", source.path)
        return None

    try:
        previous_tree = parse_locale_text(previous_text, source.output_format)
        flatten(previous_tree)
    except (ValueError, SourceFileError) as e:
        logger.info("Could not parse previous version of '%s', falling back to full translation: %s",
                    source.path, e)
        return None
    return previous_tree


def _apply_exclusions(
    content: Dict[str, Any],
    skip_rules: SkipRules
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    translatable, excluded = skip_rules.split(flatten(content))
    return unflatten(translatable), excluded


def _translate_self_correcting(
    content: Dict[str, Any],
    source: SourceDocument,
    client: TranslationClient,
    source_language: str,
    target_languages: Sequence[str],
    max_retries: int
) -> Tuple[Dict[str, Dict[str, Any]], SelfCorrectionStats]:
    logger.info("Self-correcting mode enabled (max %d retries)", max_retries)
    translations = {}
    stats = SelfCorrectionStats()
    for language in target_languages:
        logger.info("Self-correcting translation to %s...", language)
        response = client.self_correct(content, source_language, language, max_retries)
        translations[language] = response.content
        stats.corrected += response.corrected
        stats.cost += response.cost
        if response.corrected:
            logger.info("%d translation(s) auto-corrected for %s", response.corrected, language)
        if response.needs_review:
            logger.warning("%d translation(s) need review for %s", len(response.needs_review), language)
            stats.needs_review.append({
                'file': os.path.basename(source.path),
                'language': language,
                'items': response.needs_review,
            })
    return translations, stats


def translate_file(
    source: SourceDocument,
    client: TranslationClient,
    source_language: str,
    target_languages: Sequence[str],
    incremental: bool,
    skip_rules: SkipRules,
    self_correct: bool = False,
    max_retries: int = 2
) -> TranslationResult:
    """
    Translate one source file, only its changed keys when a baseline exists.

    Args:
        source: The parsed source file.
        client: The translation service client.
        source_language: Language code of the source file.
        target_languages: Language codes to translate into.
        incremental: Whether to diff against the previous revision.
        skip_rules: Keys and path globs copied from the source verbatim.
        self_correct: Use the self-correcting endpoint, one call per language
            (JSON sources only).
        max_retries: Server-side correction attempts per language.

    Returns:
        A TranslationResult. ``has_changes`` is False when the file can be
        skipped for this run.

    Raises:
        TranslationAPIError: If the remote translation call fails.
    """
    result = TranslationResult(source=source)
    content = source.content

    if incremental and not source.is_tree_format:
        logger.info("Incremental mode is not available for %s files; translating '%s' in full",
                    source.output_format.upper(), source.path)
    elif incremental:
        previous_tree = load_baseline(source)
        if previous_tree is not None:
            changes = detect_changed_keys(previous_tree, source.tree)
            if changes.is_empty():
                logger.info("No changes detected in '%s', skipping translation", source.path)
                return result

            result.is_incremental = True
            result.deleted_paths = changes.deleted
            logger.info("Incremental mode: %d added, %d modified, %d deleted",
                        len(changes.added), len(changes.modified), len(changes.deleted))

            if not changes.paths_to_translate:
                logger.info("Only deletions in '%s', no translations needed", source.path)
                return result
            content = extract_subset(source.tree, changes.paths_to_translate)

    excluded: Dict[str, Any] = {}
    if source.is_tree_format:
        content, excluded = _apply_exclusions(content, skip_rules)
        result.excluded_key_count = len(excluded)
        result.changed_key_count = len(flatten(content))
        if excluded:
            logger.info("Copying %d excluded key(s) from the source without translation", len(excluded))

        if not result.changed_key_count:
            # Everything left is excluded; nothing to send.
            result.translated_content = {language: unflatten(excluded) for language in target_languages}
            return result

    logger.info("Translating %s to: %s",
                f"{result.changed_key_count} key(s)" if source.is_tree_format else f"'{source.path}'",
                ', '.join(target_languages))

    if self_correct and source.is_tree_format:
        translations, result.self_correction = _translate_self_correcting(
            content, source, client, source_language, target_languages, max_retries
        )
    else:
        if self_correct:
            logger.info("Self-correcting mode only applies to JSON; translating '%s' normally", source.path)
        response = client.translate(
            content,
            source_language,
            target_languages,
            source.output_format,
            skip_keys=skip_rules.skip_keys,
            skip_paths=skip_rules.skip_paths
        )
        translations = response.translations

    if source.is_tree_format:
        excluded_tree = unflatten(excluded)
        result.translated_content = {
            language: deep_merge(translated, excluded_tree) if excluded else translated
            for language, translated in translations.items()
        }
    else:
        result.translated_content = dict(response.translations)
        result.excluded_key_count = response.skipped_count
        result.changed_key_count = len(flatten(source.tree))

    return result


def _write(output_file: str, content: Union[Dict[str, Any], str], dry_run: bool) -> None:
    if dry_run:
        logger.info("[Dry Run] Would write translated content to '%s'.", output_file)
        return
    write_text_file(output_file, serialize_content(content))
    logger.info("Saved: %s", output_file)


def write_translated_files(
    result: TranslationResult,
    output_dir: str,
    use_language_folders: bool,
    dry_run: bool = False
) -> List[WrittenFile]:
    """
    Write each language's translation, merging into existing files in incremental mode.
    """
    written = []
    logger.info("Writing translated files to: %s", output_dir or '.')
    for language, incoming in result.translated_content.items():
        output_file = resolve_output_path(output_dir, result.source.path, language, use_language_folders)
        final_content = build_final_content(output_file, incoming, result.deleted_paths, result.is_incremental)
        _write(output_file, final_content, dry_run)
        written.append(WrittenFile(language=language, path=output_file, content=final_content))
    return written


def remove_deleted_keys_from_files(
    result: TranslationResult,
    target_languages: Sequence[str],
    output_dir: str,
    use_language_folders: bool,
    dry_run: bool = False
) -> List[WrittenFile]:
    """Prune deleted source paths from every existing target-language file."""
    written = []
    logger.info("Removing %d deleted key(s) from %d language file(s)",
                len(result.deleted_paths), len(target_languages))
    for language in target_languages:
        output_file = resolve_output_path(output_dir, result.source.path, language, use_language_folders)
        pruned = prune_deleted_keys(output_file, result.deleted_paths)
        if pruned is None:
            continue
        _write(output_file, pruned, dry_run)
        written.append(WrittenFile(language=language, path=output_file, content=pruned))
    return written


def verify_written_files(
    source: SourceDocument,
    written_files: Sequence[WrittenFile],
    client: Optional[TranslationClient] = None,
    source_language: str = 'en',
    verify_mode: str = 'quick'
) -> List[VerificationIssue]:
    """
    Check every written file of one source against the full current source tree.

    Remote verification runs only when ``client`` is given.
    """
    issues: List[VerificationIssue] = []
    for written in written_files:
        translated = written.content
        if isinstance(translated, str):
            try:
                translated = parse_locale_text(translated, FORMAT_YAML)
                flatten(translated)
            except (ValueError, SourceFileError) as e:
                issues.append(unparseable_output_issue(written.language, str(e)))
                continue

        issues.extend(run_verification(source.tree, translated, written.language))

        if client is not None:
            for remote_issue in client.verify(source.tree, translated, source_language, written.language, verify_mode):
                details = [item.get('detail', '') for item in remote_issue.get('issues', []) if isinstance(item, dict)]
                issues.append(VerificationIssue(
                    path=remote_issue.get('key'),
                    kind=KIND_OTHER,
                    severity=SEVERITY_WARNING,
                    message=', '.join(d for d in details if d) or 'Remote verification failed',
                    language=written.language
                ))
    return issues


def run_pipeline(config: AppConfig, client: Optional[TranslationClient] = None) -> RunReport:
    """
    Discover, diff, translate, merge and verify every configured source file.

    Files are processed one at a time. Any fatal error aborts the whole run.

    Returns:
        The run report with counters and ordered verification issues.
    """
    if client is None:
        client = TranslationClient(config.api_key, config.api_base_url, timeout=config.request_timeout)

    source_files, use_language_folders = discover_source_files(config.source_file, config.source_dir)
    logger.info("Found %d source file(s); target languages: %s",
                len(source_files), ', '.join(config.target_languages))
    if config.incremental:
        logger.info("Incremental mode: enabled")
    if config.self_correct:
        logger.info("Self-correcting mode: enabled (max %d retries)", config.max_retries)

    skip_rules = SkipRules(skip_keys=config.skip_keys, skip_paths=config.skip_paths)
    if skip_rules:
        logger.info("Skip keys: %s", ', '.join(skip_rules.skip_keys) or 'none')
        logger.info("Skip paths: %s", ', '.join(skip_rules.skip_paths) or 'none')

    report = RunReport(source_files=list(source_files))
    if config.self_correct:
        report.self_correction = SelfCorrectionStats()
    processed: List[Tuple[SourceDocument, List[WrittenFile]]] = []

    for file_path in tqdm(source_files, desc="Translating", unit="file"):
        logger.info("Processing: %s", file_path)
        source = read_source_file(file_path)
        result = translate_file(
            source,
            client,
            config.source_language,
            config.target_languages,
            config.incremental,
            skip_rules,
            self_correct=config.self_correct,
            max_retries=config.max_retries
        )
        if not result.has_changes:
            continue

        if result.self_correction is not None and report.self_correction is not None:
            report.self_correction.add(result.self_correction)

        report.keys_translated += result.changed_key_count
        report.keys_deleted += len(result.deleted_paths)
        report.keys_excluded += result.excluded_key_count

        output_dir = effective_output_dir(config.output_dir, file_path, config.source_dir)
        if result.translated_content:
            written = write_translated_files(result, output_dir, use_language_folders, config.dry_run)
        else:
            written = remove_deleted_keys_from_files(
                result, config.target_languages, output_dir, use_language_folders, config.dry_run
            )
        report.written_files.extend((w.language, w.path) for w in written)
        processed.append((source, written))

    if config.incremental:
        logger.info("Incremental summary: %d key(s) translated, %d key(s) deleted",
                    report.keys_translated, report.keys_deleted)
    logger.info("Processed %d file(s) to %d language(s); %d file(s) created/updated",
                len(source_files), len(config.target_languages), len(report.written_files))
    if report.self_correction is not None:
        log_self_correction_results(report.self_correction)

    if processed:
        logger.info("Running verification checks...")
        remote = client if config.verify else None
        for source, written in processed:
            report.issues.extend(verify_written_files(
                source, written, remote, config.source_language, config.verify_mode
            ))
        log_verification_results(report)

    return report


def publish_changes(config: AppConfig, report: RunReport) -> None:
    """Commit the written files, or open a pull request with them."""
    if not report.written_files:
        logger.info("No files were translated")
        return
    if config.dry_run:
        logger.info("[Dry Run] Would commit %d file(s).", len(report.written_files))
        return

    if config.create_pr:
        if not config.github_token:
            raise ConfigurationError("github_token is required when create_pr is true")
        body = build_pull_request_body(
            report.source_files,
            report.written_files,
            format_verification_summary(report.issues, report.self_correction)
        )
        create_pull_request(report.files_changed, config.branch_name, config.commit_message,
                            config.github_token, body)
    elif not commit_changes(report.files_changed, config.commit_message):
        logger.info("No changes were made to translations")


def main():
    """
    Main function to orchestrate one translation run.
    """
    try:
        config = load_app_config()
        report = run_pipeline(config)
        if config.dry_run:
            logger.info("[Dry Run] Skipping report file and step outputs.\n%s",
                        format_verification_summary(report.issues, report.self_correction))
        else:
            write_report_file(report, config.report_file_path)
            write_action_outputs(report, config.target_languages)
        publish_changes(config, report)
    except LocaleSyncError as exc:
        logger.error("Translation run failed: %s", exc)
        sys.exit(1)
    logger.info("Translation complete!")


if __name__ == "__main__":
    main()
