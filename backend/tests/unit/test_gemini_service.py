"""
Unit tests for the Gemini language model wrapper.

The genai client is a MagicMock; prompts are not sent anywhere.
"""

import json

import pytest
from unittest.mock import MagicMock

from clepfinder.config.settings import Settings
from clepfinder.infrastructure.ai.gemini_service import GeminiService, parse_json_array
from clepfinder.infrastructure.exceptions import (
    AIServiceError,
    ConfigurationError,
    RateLimitError,
)


def make_settings(**overrides):
    values = {"google_api_key": "test-key", "gemini_api_key": None, "_env_file": None}
    values.update(overrides)
    return Settings(**values)


def make_client(text=None, error=None):
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = MagicMock(text=text)
    return client


class TestParseJsonArray:

    def test_plain_array(self):
        assert parse_json_array('[{"exam": "Biology"}]') == [{"exam": "Biology"}]

    def test_array_inside_prose_and_fences(self):
        text = 'Sure!\n```json\n[{"exam": "Biology", "field": "credits", "value": 4}]\n```'
        assert parse_json_array(text)[0]["value"] == 4

    def test_object_rejected(self):
        with pytest.raises(ValueError):
            parse_json_array('{"exam": "Biology"}')

    def test_garbage_rejected(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_array("no json here")


class TestGeminiService:

    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            GeminiService(make_settings(google_api_key=None))

    @pytest.mark.asyncio
    async def test_extract_update_intent(self):
        client = make_client(text='[{"exam": "Biology", "field": "minScore", "value": 55}, "junk"]')
        service = GeminiService(make_settings(), client=client)

        items = await service.extract_update_intent("Set Biology minimum score to 55")

        assert items == [{"exam": "Biology", "field": "minScore", "value": 55}]
        prompt = client.models.generate_content.call_args.kwargs["contents"]
        assert "Set Biology minimum score to 55" in prompt

    @pytest.mark.asyncio
    async def test_unparseable_extraction(self):
        service = GeminiService(make_settings(), client=make_client(text="I am not sure."))

        with pytest.raises(AIServiceError):
            await service.extract_update_intent("do something")

    @pytest.mark.asyncio
    async def test_answer_question_includes_context(self):
        client = make_client(text="  Alpha University accepts Biology.  ")
        service = GeminiService(make_settings(), client=client)

        answer = await service.answer_question("Who takes Biology?", "DIGEST-MARKER")

        assert answer == "Alpha University accepts Biology."
        prompt = client.models.generate_content.call_args.kwargs["contents"]
        assert "DIGEST-MARKER" in prompt
        assert "Who takes Biology?" in prompt

    @pytest.mark.asyncio
    async def test_rate_limit_mapped(self):
        service = GeminiService(
            make_settings(),
            client=make_client(error=Exception("429 RESOURCE_EXHAUSTED: quota exceeded")),
        )
        with pytest.raises(RateLimitError):
            await service.answer_question("q", "ctx")

    @pytest.mark.asyncio
    async def test_other_errors_mapped(self):
        service = GeminiService(make_settings(), client=make_client(error=Exception("boom")))
        with pytest.raises(AIServiceError) as exc_info:
            await service.answer_question("q", "ctx")
        assert exc_info.value.details["operation"] == "answer_question"

    @pytest.mark.asyncio
    async def test_empty_response(self):
        service = GeminiService(make_settings(), client=make_client(text=""))
        with pytest.raises(AIServiceError):
            await service.answer_question("q", "ctx")
