"""HTTP client for the remote translation and verification service."""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import jsonschema
import requests

from locale_sync.exceptions import TranslationAPIError
from locale_sync.locale_files import FORMAT_JSON
from locale_sync.locale_tree import flatten

logger = logging.getLogger(__name__)

TRANSLATE_ENDPOINT = '/api/translate'
VERIFY_ENDPOINT = '/api/verify/batch'
SELF_CORRECT_ENDPOINT = '/api/self-correct/json'

# Optional metadata the service may send next to the per-language payload.
RESPONSE_METADATA_FIELDS = (
    'warnings',
    'savedKeys',
    'keysSavedCount',
    'namespaces',
    'namespaceFiles',
    'namespaceFileNames',
    'skipped',
)

TRANSLATION_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "warnings": {"type": "array"},
        "keysSavedCount": {"type": "integer"},
        "skipped": {
            "type": "object",
            "properties": {
                "count": {"type": "integer", "minimum": 0},
                "keys": {"type": "array", "items": {"type": "string"}}
            }
        }
    }
}

SELF_CORRECT_RESPONSE_SCHEMA = {
    "type": "object",
    "required": ["content"],
    "properties": {
        "content": {"type": ["object", "string"]},
        "summary": {
            "type": "object",
            "properties": {
                "corrected": {"type": "integer", "minimum": 0},
                "needsReview": {"type": "integer", "minimum": 0}
            }
        },
        "needsReview": {"type": "array"},
        "cost": {
            "type": "object",
            "properties": {
                "totalCost": {"type": "number", "minimum": 0}
            }
        }
    }
}

VERIFICATION_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "pass": {"type": "boolean"},
        "issues": {"type": "array"}
    }
}


@dataclass
class TranslationResponse:
    """The parsed result of one translate call."""
    translations: Dict[str, Union[Dict[str, Any], str]]
    skipped_count: int = 0
    skipped_keys: List[str] = field(default_factory=list)
    warnings: List[Any] = field(default_factory=list)


@dataclass
class SelfCorrectResponse:
    """The parsed result of one self-correcting translate call for a single language."""
    content: Dict[str, Any]
    corrected: int = 0
    needs_review: List[Dict[str, Any]] = field(default_factory=list)
    cost: float = 0.0


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get('error') or body.get('message') or response.reason or f"HTTP {response.status_code}"
    return response.reason or f"HTTP {response.status_code}"


def _decode_language_payload(language: str, value: Any, output_format: str) -> Union[Dict[str, Any], str]:
    if output_format != FORMAT_JSON:
        if not isinstance(value, str):
            raise TranslationAPIError(f"Expected text content for '{language}', got {type(value).__name__}")
        return value

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise TranslationAPIError(f"Translation for '{language}' is not valid JSON: {e}") from e
    if not isinstance(value, dict):
        raise TranslationAPIError(f"Translation for '{language}' must be an object, got {type(value).__name__}")
    return value


def parse_translation_response(
    payload: Any,
    target_languages: Sequence[str],
    output_format: str,
    metadata_fields: Sequence[str] = RESPONSE_METADATA_FIELDS
) -> TranslationResponse:
    """
    Validate a translate response and split it into translations and metadata.

    Only the requested language codes are read as translations. Known metadata
    fields are parsed into the result; anything else is ignored.

    Args:
        payload: The decoded JSON body.
        target_languages: The language codes that were requested.
        output_format: 'json' or 'yaml'.
        metadata_fields: Field names that belong to the metadata envelope.

    Raises:
        TranslationAPIError: If the body violates the contract or a requested
            language is missing.
    """
    try:
        jsonschema.validate(instance=payload, schema=TRANSLATION_RESPONSE_SCHEMA)
    except jsonschema.ValidationError as e:
        raise TranslationAPIError(f"Translation response failed schema validation: {e.message}") from e

    translations = {}
    for language in target_languages:
        if language not in payload:
            raise TranslationAPIError(f"Translation response is missing language '{language}'")
        translations[language] = _decode_language_payload(language, payload[language], output_format)

    unknown = [key for key in payload if key not in translations and key not in metadata_fields]
    if unknown:
        logger.debug("Ignoring unknown response fields: %s", ', '.join(unknown))

    skipped = (payload.get('skipped') or {}) if 'skipped' in metadata_fields else {}
    return TranslationResponse(
        translations=translations,
        skipped_count=skipped.get('count', 0),
        skipped_keys=list(skipped.get('keys', [])),
        warnings=list(payload.get('warnings', [])) if 'warnings' in metadata_fields else []
    )


def parse_self_correct_response(payload: Any, target_language: str) -> SelfCorrectResponse:
    """
    Validate a self-correct response for one language.

    Raises:
        TranslationAPIError: If the body violates the contract or the content
            is not a JSON object.
    """
    try:
        jsonschema.validate(instance=payload, schema=SELF_CORRECT_RESPONSE_SCHEMA)
    except jsonschema.ValidationError as e:
        raise TranslationAPIError(f"Self-correct response failed schema validation: {e.message}") from e

    content = _decode_language_payload(target_language, payload['content'], FORMAT_JSON)
    summary = payload.get('summary') or {}
    needs_review = [item for item in payload.get('needsReview', []) if isinstance(item, dict)]
    return SelfCorrectResponse(
        content=content,
        corrected=summary.get('corrected', 0),
        needs_review=needs_review,
        cost=float((payload.get('cost') or {}).get('totalCost', 0))
    )


class TranslationClient:
    """Calls the translation service over HTTP. One request per source file, no retries."""

    def __init__(self, api_key: str, base_url: str, timeout: float = 60):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'x-api-key': self.api_key,
        }

    def _post(self, endpoint: str, body: Dict[str, Any]) -> requests.Response:
        return requests.post(
            f"{self.base_url}{endpoint}",
            headers=self._headers(),
            json=body,
            timeout=self.timeout
        )

    def translate(
        self,
        content: Union[Dict[str, Any], str],
        source_language: str,
        target_languages: Sequence[str],
        output_format: str,
        skip_keys: Sequence[str] = (),
        skip_paths: Sequence[str] = ()
    ) -> TranslationResponse:
        """
        Translate ``content`` into every target language in a single request.

        Raises:
            TranslationAPIError: On network failure, a non-success status or an
                invalid response body.
        """
        body = {
            'inputMethod': 'text',
            'text': json.dumps(content, ensure_ascii=False) if output_format == FORMAT_JSON else content,
            'sourceLanguage': source_language,
            'targetLanguages': list(target_languages),
            'outputFormat': output_format,
            'preservePlaceholders': True,
            'saveKeys': True,
            'skipKeys': list(skip_keys),
            'skipPaths': list(skip_paths),
        }

        payload = self._post_for_json(TRANSLATE_ENDPOINT, body, 'Translation')
        return parse_translation_response(payload, target_languages, output_format)

    def _post_for_json(self, endpoint: str, body: Dict[str, Any], label: str) -> Any:
        try:
            response = self._post(endpoint, body)
        except requests.RequestException as e:
            raise TranslationAPIError(f"{label} request failed: {e}") from e

        if not response.ok:
            raise TranslationAPIError(
                f"{label} API error: {_error_message(response)}",
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise TranslationAPIError(f"{label} API returned a non-JSON body: {e}") from e

    def self_correct(
        self,
        content: Dict[str, Any],
        source_language: str,
        target_language: str,
        max_retries: int = 2
    ) -> SelfCorrectResponse:
        """
        Translate ``content`` into one language, letting the service re-check and
        fix its own output up to ``max_retries`` times before answering.

        Raises:
            TranslationAPIError: On network failure, a non-success status or an
                invalid response body.
        """
        body = {
            'content': content,
            'sourceLang': source_language,
            'targetLang': target_language,
            'options': {'maxRetries': max_retries},
        }
        payload = self._post_for_json(SELF_CORRECT_ENDPOINT, body, 'Self-correcting')
        return parse_self_correct_response(payload, target_language)

    def verify(
        self,
        source_tree: Dict[str, Any],
        translated_tree: Dict[str, Any],
        source_language: str,
        target_language: str,
        mode: str = 'quick'
    ) -> List[Dict[str, Any]]:
        """
        Ask the service to review translated strings.

        This check is advisory: any failure is logged and treated as "no issues".

        Returns:
            The issues reported by the service, one dict per flagged key.
        """
        source_flat = flatten(source_tree)
        translated_flat = flatten(translated_tree)
        pairs = [
            {'key': key, 'sourceText': value, 'translatedText': translated_flat[key]}
            for key, value in source_flat.items()
            if isinstance(value, str) and isinstance(translated_flat.get(key), str) and translated_flat[key]
        ]
        if not pairs:
            return []

        logger.info("Running remote verification (%s mode) on %d translation(s) for %s...",
                    mode, len(pairs), target_language)
        body = {
            'translations': pairs,
            'sourceLang': source_language,
            'targetLang': target_language,
            'options': {'mode': mode},
        }

        try:
            response = self._post(VERIFY_ENDPOINT, body)
            if not response.ok:
                logger.warning("Remote verification API error: %s", _error_message(response))
                return []
            result = response.json()
            jsonschema.validate(instance=result, schema=VERIFICATION_RESPONSE_SCHEMA)
        except (requests.RequestException, ValueError, jsonschema.ValidationError) as e:
            logger.warning("Remote verification failed: %s", e)
            return []

        if result.get('pass', True):
            logger.info("Remote verification passed for %s", target_language)
            return []
        issues = [issue for issue in result.get('issues', []) if isinstance(issue, dict)]
        logger.warning("Remote verification found %d issue(s) in %s", len(issues), target_language)
        return issues
