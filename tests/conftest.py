from unittest.mock import MagicMock, patch

import pytest

from locale_sync.app_config import AppConfig
from locale_sync.translation_client import SelfCorrectResponse, TranslationResponse


def fake_translate_tree(tree, language):
    """Stand-in translation that keeps placeholders and marks every string with the language."""
    if isinstance(tree, dict):
        return {key: fake_translate_tree(value, language) for key, value in tree.items()}
    if isinstance(tree, str):
        return f"{tree} [{language}]"
    return tree


@pytest.fixture
def translation_client():
    """A TranslationClient double that answers translate() and self_correct() from fake_translate_tree."""
    client = MagicMock()

    def translate(content, source_language, target_languages, output_format, skip_keys=(), skip_paths=()):
        if isinstance(content, str):
            translations = {language: content for language in target_languages}
        else:
            translations = {language: fake_translate_tree(content, language) for language in target_languages}
        return TranslationResponse(translations=translations)

    client.translate.side_effect = translate
    client.self_correct.side_effect = lambda content, source_language, target_language, max_retries=2: \
        SelfCorrectResponse(content=fake_translate_tree(content, target_language))
    client.verify.return_value = []
    return client


@pytest.fixture
def make_config(tmp_path):
    """Factory for AppConfig objects rooted in the test's tmp_path."""
    def _make(**overrides):
        values = dict(
            project_root=str(tmp_path),
            source_file=None,
            source_dir=None,
            output_dir=None,
            report_file_path=str(tmp_path / 'logs' / 'report.md'),
            api_key='test-key',
            api_base_url='https://api.example.com',
            request_timeout=5,
            source_language='en',
            target_languages=['es', 'fr'],
            incremental=True,
            dry_run=False,
        )
        values.update(overrides)
        return AppConfig(**values)
    return _make


@pytest.fixture
def previous_revision():
    """Patch git history lookups. Set ``.return_value`` to the previous file text (None = no history)."""
    with patch('locale_sync.translate_locale_files.get_previous_file_content') as mock_previous:
        mock_previous.return_value = None
        yield mock_previous

