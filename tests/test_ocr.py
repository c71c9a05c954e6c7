"""Tests for receipt OCR backends (mocked API calls)."""

import json
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from freshtrack.config import load_config
from freshtrack.ocr import (
    ReceiptOCRBackend,
    create_backend,
    parse_lines_response,
    strip_code_fences,
)
from freshtrack.ocr.claude import ClaudeOCRBackend
from freshtrack.ocr.gemini import GeminiOCRBackend


@pytest.fixture
def receipt_image(tmp_path):
    img = tmp_path / "receipt.jpg"
    img.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")
    return img


class TestCreateBackend:
    def test_create_claude_backend(self):
        backend = create_backend(load_config())
        assert isinstance(backend, ClaudeOCRBackend)
        assert isinstance(backend, ReceiptOCRBackend)

    def test_create_gemini_backend(self):
        config = load_config()
        config.ocr.backend = "gemini"
        assert isinstance(create_backend(config), GeminiOCRBackend)

    def test_create_unknown_backend(self):
        config = load_config()
        config.ocr.backend = "tesseract"
        with pytest.raises(ValueError, match="Unknown OCR backend"):
            create_backend(config)


class TestParseLinesResponse:
    def test_json_array(self):
        text = json.dumps(["2x Bnna $1.99", "  ", "TOTAL $1.99"])
        assert parse_lines_response(text) == ["2x Bnna $1.99", "TOTAL $1.99"]

    def test_markdown_fences(self):
        text = '```json\n["Milk 3.49", "Eggs 2.99"]\n```'
        assert parse_lines_response(text) == ["Milk 3.49", "Eggs 2.99"]

    def test_object_with_lines(self):
        assert parse_lines_response('{"lines": ["Milk", 42, "Bread"]}') == [
            "Milk", "Bread",
        ]

    def test_plain_text(self):
        assert parse_lines_response("Milk 3.49\n\n  Bread  \n") == ["Milk 3.49", "Bread"]

    def test_empty(self):
        assert parse_lines_response("") == []
        assert parse_lines_response(None) == []


def test_strip_code_fences_leaves_plain_text():
    assert strip_code_fences("  Milk\nBread ") == "Milk\nBread"


class TestClaudeOCRBackend:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        backend = ClaudeOCRBackend(api_key="")
        with pytest.raises(ValueError, match="API key"):
            await backend.extract_lines(["/tmp/receipt.jpg"])

    @pytest.mark.asyncio
    async def test_extract_lines_mocked(self, receipt_image):
        mock_response = MagicMock()
        mock_response.content = [
            MagicMock(text=json.dumps(["2x Bnna $1.99", "TOTAL $1.99"]))
        ]

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        mock_anthropic = MagicMock()
        mock_anthropic.AsyncAnthropic.return_value = mock_client

        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            backend = ClaudeOCRBackend(api_key="test-key", model="test-model")
            lines = await backend.extract_lines([str(receipt_image)])

        assert lines == ["2x Bnna $1.99", "TOTAL $1.99"]
        mock_anthropic.AsyncAnthropic.assert_called_once_with(api_key="test-key")
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        content = kwargs["messages"][0]["content"]
        assert content[0]["type"] == "image"
        assert content[0]["source"]["media_type"] == "image/jpeg"
        assert content[-1]["type"] == "text"

    @pytest.mark.asyncio
    async def test_missing_sdk(self, receipt_image):
        with patch.dict(sys.modules, {"anthropic": None}):
            backend = ClaudeOCRBackend(api_key="test-key")
            with pytest.raises(ImportError, match="pip install anthropic"):
                await backend.extract_lines([str(receipt_image)])


class TestGeminiOCRBackend:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        backend = GeminiOCRBackend(api_key="")
        with pytest.raises(ValueError, match="API key"):
            await backend.extract_lines(["/tmp/receipt.jpg"])

    @pytest.mark.asyncio
    async def test_extract_lines_mocked(self, receipt_image):
        mock_response = MagicMock()
        mock_response.text = "Milk 3.49\nEggs 2.99\n"

        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(return_value=mock_response)

        mock_genai = MagicMock()
        mock_genai.GenerativeModel.return_value = mock_model
        mock_google = MagicMock()
        mock_google.generativeai = mock_genai

        with patch.dict(
            sys.modules,
            {"google": mock_google, "google.generativeai": mock_genai},
        ):
            backend = GeminiOCRBackend(api_key="test-key")
            lines = await backend.extract_lines([str(receipt_image)])

        assert lines == ["Milk 3.49", "Eggs 2.99"]
        mock_genai.configure.assert_called_once_with(api_key="test-key")
        parts = mock_model.generate_content_async.call_args.args[0]
        assert parts[0]["mime_type"] == "image/jpeg"
        assert parts[0]["data"] == receipt_image.read_bytes()
