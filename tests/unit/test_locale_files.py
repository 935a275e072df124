import json
import os

import pytest

from locale_sync.exceptions import ConfigurationError, OutputFileError, SourceFileError, UnsupportedKeyError
from locale_sync.locale_files import (
    FORMAT_JSON,
    FORMAT_YAML,
    detect_format,
    discover_source_files,
    effective_output_dir,
    read_existing_tree,
    read_source_file,
    resolve_output_path,
    serialize_content,
    write_text_file
)


class TestDiscoverSourceFiles:
    def test_single_file_mode(self):
        assert discover_source_files('locales/en.json', None) == (['locales/en.json'], False)

    def test_requires_exactly_one_input(self):
        with pytest.raises(ConfigurationError):
            discover_source_files(None, None)
        with pytest.raises(ConfigurationError):
            discover_source_files('en.json', 'locales/en')

    def test_directory_mode_lists_supported_files_sorted(self, tmp_path):
        source_dir = tmp_path / 'en'
        source_dir.mkdir()
        for name in ('b.yml', 'a.json', 'notes.txt', 'c.yaml'):
            (source_dir / name).write_text('{}', encoding='utf-8')
        (source_dir / 'nested').mkdir()
        (source_dir / 'nested' / 'd.json').write_text('{}', encoding='utf-8')

        files, use_language_folders = discover_source_files(None, str(source_dir))

        assert use_language_folders is True
        assert [os.path.basename(f) for f in files] == ['a.json', 'b.yml', 'c.yaml']

    def test_directory_without_locale_files(self, tmp_path):
        (tmp_path / 'readme.md').write_text('hi', encoding='utf-8')
        with pytest.raises(ConfigurationError, match='No translatable files'):
            discover_source_files(None, str(tmp_path))

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigurationError, match='Failed to read source directory'):
            discover_source_files(None, str(tmp_path / 'missing'))


class TestReadSourceFile:
    def test_reads_json(self, tmp_path):
        path = tmp_path / 'en.json'
        path.write_text(json.dumps({'a': {'b': 'x'}}), encoding='utf-8')

        doc = read_source_file(str(path))

        assert doc.output_format == FORMAT_JSON
        assert doc.is_tree_format
        assert doc.content == {'a': {'b': 'x'}}

    def test_reads_yaml_as_text(self, tmp_path):
        path = tmp_path / 'en.yml'
        path.write_text('greeting: Hello\n', encoding='utf-8')

        doc = read_source_file(str(path))

        assert doc.output_format == FORMAT_YAML
        assert not doc.is_tree_format
        assert doc.content == 'greeting: Hello\n'
        assert doc.tree == {'greeting': 'Hello'}

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'en.json'
        path.write_text('{broken', encoding='utf-8')
        with pytest.raises(SourceFileError, match='Failed to parse'):
            read_source_file(str(path))

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / 'en.json'
        path.write_text('["a", "b"]', encoding='utf-8')
        with pytest.raises(SourceFileError, match='mapping'):
            read_source_file(str(path))

    def test_dotted_key_is_rejected(self, tmp_path):
        path = tmp_path / 'en.json'
        path.write_text(json.dumps({'a.b': 'x'}), encoding='utf-8')
        with pytest.raises(UnsupportedKeyError):
            read_source_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceFileError, match='Failed to read'):
            read_source_file(str(tmp_path / 'nope.json'))


class TestReadExistingTree:
    def test_missing_file_returns_none(self, tmp_path):
        assert read_existing_tree(str(tmp_path / 'es.json')) is None

    def test_unparseable_file_returns_none(self, tmp_path):
        path = tmp_path / 'es.json'
        path.write_text('not json', encoding='utf-8')
        assert read_existing_tree(str(path)) is None

    def test_valid_file(self, tmp_path):
        path = tmp_path / 'es.json'
        path.write_text('{"a": "uno"}', encoding='utf-8')
        assert read_existing_tree(str(path)) == {'a': 'uno'}


class TestOutputPaths:
    def test_single_file_mode(self):
        assert resolve_output_path('locales', 'locales/en.json', 'es', False) == os.path.join('locales', 'es.json')

    def test_directory_mode(self):
        assert resolve_output_path('locales', 'locales/en/common.json', 'fr', True) == \
            os.path.join('locales', 'fr', 'common.json')

    def test_effective_output_dir(self):
        assert effective_output_dir('out', 'locales/en.json', None) == 'out'
        assert effective_output_dir(None, 'locales/en.json', None) == 'locales'
        assert effective_output_dir(None, 'locales/en/common.json', 'locales/en/') == 'locales'

    def test_detect_format(self):
        assert detect_format('a.JSON') == FORMAT_JSON
        assert detect_format('a.yml') == FORMAT_YAML
        assert detect_format('a.yaml') == FORMAT_YAML


class TestSerializeAndWrite:
    def test_json_is_pretty_printed_and_keeps_unicode(self):
        assert serialize_content({'a': 'café'}) == '{\n  "a": "café"\n}\n'

    def test_text_passes_through(self):
        assert serialize_content('a: b\n') == 'a: b\n'

    def test_write_creates_directories(self, tmp_path):
        target = tmp_path / 'deep' / 'es' / 'common.json'
        write_text_file(str(target), '{}\n')
        assert target.read_text(encoding='utf-8') == '{}\n'

    def test_write_over_a_directory_fails(self, tmp_path):
        target = tmp_path / 'es.json'
        target.mkdir()
        with pytest.raises(OutputFileError) as exc_info:
            write_text_file(str(target), '{}\n')
        assert str(target) in str(exc_info.value)
