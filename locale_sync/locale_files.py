import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from locale_sync.exceptions import ConfigurationError, OutputFileError, SourceFileError
from locale_sync.locale_tree import flatten

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.json', '.yaml', '.yml')

FORMAT_JSON = 'json'
FORMAT_YAML = 'yaml'


@dataclass
class SourceDocument:
    """A source locale file as read from disk."""
    path: str
    output_format: str
    raw_text: str
    tree: Dict[str, Any]

    @property
    def is_tree_format(self) -> bool:
        """JSON sources are translated key by key; YAML is sent as plain text."""
        return self.output_format == FORMAT_JSON

    @property
    def content(self) -> Union[Dict[str, Any], str]:
        return self.tree if self.is_tree_format else self.raw_text


def detect_format(file_path: str) -> str:
    ext = os.path.splitext(file_path)[1].lower()
    if ext in ('.yaml', '.yml'):
        return FORMAT_YAML
    return FORMAT_JSON


def discover_source_files(source_file: Optional[str], source_dir: Optional[str]) -> Tuple[List[str], bool]:
    """
    Resolve which source files to translate.

    Args:
        source_file: One explicit source file, or None.
        source_dir: A directory whose supported files (non-recursive) are translated, or None.

    Returns:
        A tuple of the sorted source file paths and whether outputs go into
        per-language folders (directory mode).

    Raises:
        ConfigurationError: If neither or both inputs are set, or the directory
            holds no supported file.
    """
    if not source_file and not source_dir:
        raise ConfigurationError("Either source_file or source_dir must be specified")
    if source_file and source_dir:
        raise ConfigurationError("Specify either source_file or source_dir, not both")

    if source_file:
        return [source_file], False

    try:
        entries = sorted(os.listdir(source_dir))
    except OSError as e:
        raise ConfigurationError(f"Failed to read source directory '{source_dir}': {e}") from e

    files = []
    for name in entries:
        full_path = os.path.join(source_dir, name)
        if os.path.isfile(full_path) and os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
            files.append(full_path)

    if not files:
        raise ConfigurationError(
            f"No translatable files found in '{source_dir}'. "
            f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    return files, True


def parse_locale_text(text: str, output_format: str) -> Dict[str, Any]:
    """
    Parse locale file content into a tree.

    Raises:
        ValueError: If the content is not valid JSON/YAML or is not a mapping.
    """
    if output_format == FORMAT_JSON:
        parsed = json.loads(text)
    else:
        try:
            parsed = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}") from e
        if parsed is None:
            parsed = {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Top-level value must be a mapping, got {type(parsed).__name__}")
    return parsed


def read_source_file(file_path: str) -> SourceDocument:
    """
    Read and parse a source locale file.

    Raises:
        SourceFileError: If the file cannot be read, is not valid JSON/YAML, or
            contains a key with a literal dot.
    """
    output_format = detect_format(file_path)
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            raw_text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SourceFileError(f"Failed to read {file_path}: {e}") from e

    try:
        tree = parse_locale_text(raw_text, output_format)
    except ValueError as e:
        raise SourceFileError(f"Failed to parse {file_path}: {e}") from e

    # Surface dotted keys now rather than halfway through a merge.
    flatten(tree)
    return SourceDocument(path=file_path, output_format=output_format, raw_text=raw_text, tree=tree)


def read_existing_tree(file_path: str) -> Optional[Dict[str, Any]]:
    """
    Read a previously translated file for merging.

    Returns None when the file is missing or unusable; the caller then writes
    the incoming content as the whole file.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            tree = parse_locale_text(f.read(), detect_format(file_path))
        flatten(tree)
        return tree
    except FileNotFoundError:
        logger.info("No existing translation at '%s'.", file_path)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        logger.info("Existing translation at '%s' is unreadable (%s); it will be replaced.", file_path, e)
    except SourceFileError as e:
        logger.info("Existing translation at '%s' is unusable (%s); it will be replaced.", file_path, e)
    return None


def serialize_content(content: Union[Dict[str, Any], str]) -> str:
    """Render a tree as pretty-printed JSON; text content is returned unchanged."""
    if isinstance(content, str):
        return content
    return json.dumps(content, indent=2, ensure_ascii=False) + '\n'


def resolve_output_path(output_dir: str, source_file: str, language: str, use_language_folders: bool) -> str:
    """
    Compute where a language's translation of ``source_file`` lives.

    Directory mode: ``{output_dir}/{language}/{filename}``.
    Single-file mode: ``{output_dir}/{language}{ext}``.
    """
    filename = os.path.basename(source_file)
    if use_language_folders:
        return os.path.join(output_dir, language, filename)
    ext = os.path.splitext(filename)[1]
    return os.path.join(output_dir, f"{language}{ext}")


def effective_output_dir(output_dir: Optional[str], source_file: str, source_dir: Optional[str]) -> str:
    """An explicit output dir wins; otherwise the parent of the source dir, or the source file's folder."""
    if output_dir:
        return output_dir
    if source_dir:
        return os.path.dirname(os.path.normpath(source_dir))
    return os.path.dirname(source_file)


def write_text_file(file_path: str, content: str) -> None:
    """
    Write UTF-8 text, creating parent directories as needed.

    Raises:
        OutputFileError: If the file or its directory cannot be written.
    """
    directory = os.path.dirname(file_path)
    try:
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)
    except OSError as e:
        raise OutputFileError(f"Failed to write {file_path}: {e}") from e
