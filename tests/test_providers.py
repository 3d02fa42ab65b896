"""Tests for analysis providers with stubbed backends."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest import mock

import pytest
import requests
from anthropic import AnthropicError
from openai import OpenAIError

from vulncheck.ai_agent.providers import (
    ClaudeProvider,
    HttpAnalysisProvider,
    OpenAIProvider,
    get_provider,
)
from vulncheck.errors import AnalysisError

VULN = {"line": 3, "severity": "High", "description": "SQL injection", "remediation": "Bind parameters"}


def _settings(**overrides) -> SimpleNamespace:
    values = {
        "AI_PROVIDER": "openai",
        "AI_MAX_TOKENS": 1000,
        "OPENAI_API_KEY": "sk-test",
        "OPENAI_MODEL": "gpt-4o",
        "ANTHROPIC_API_KEY": "sk-ant-test",
        "ANTHROPIC_MODEL": "claude-3-5-sonnet-20241022",
        "ANALYSIS_FUNCTION_URL": "https://functions.example.com/analyze-file",
        "ANALYSIS_FUNCTION_KEY": "anon",
        "ANALYSIS_FUNCTION_TIMEOUT": 30.0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _openai_response(text: str | None, tokens: int = 42):
    choice = SimpleNamespace(message=SimpleNamespace(content=text))
    return SimpleNamespace(choices=[choice], usage=SimpleNamespace(total_tokens=tokens))


def _claude_response(*texts: str):
    blocks = [SimpleNamespace(type="text", text=t) for t in texts]
    return SimpleNamespace(content=blocks, usage=SimpleNamespace(input_tokens=10, output_tokens=5))


def _http_response(status: int, body) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return response


# --- response parsing ---

def test_parse_accepts_fenced_json():
    provider = OpenAIProvider(api_key="sk-test")
    text = "```json\n" + json.dumps({"vulnerabilities": [VULN]}) + "\n```"
    assert provider.parse_vulnerabilities(text, "a.py") == [VULN]


def test_parse_drops_non_object_entries():
    provider = OpenAIProvider(api_key="sk-test")
    payload = {"vulnerabilities": [VULN, "noise", 3]}
    assert provider.parse_vulnerabilities(payload, "a.py") == [VULN]


def test_parse_missing_list_is_empty():
    provider = OpenAIProvider(api_key="sk-test")
    assert provider.parse_vulnerabilities("{}", "a.py") == []


@pytest.mark.parametrize("content", ["", "not json", "[1, 2]", '{"vulnerabilities": "many"}'])
def test_parse_rejects_unusable_output(content):
    provider = OpenAIProvider(api_key="sk-test")
    with pytest.raises(AnalysisError) as exc_info:
        provider.parse_vulnerabilities(content, "a.py")
    assert exc_info.value.file_path == "a.py"


def test_prompt_numbers_lines():
    provider = OpenAIProvider(api_key="sk-test")
    prompt = provider._build_scan_prompt("first\nsecond\n", "src/app.py")
    assert "File: src/app.py" in prompt
    assert "1: first\n2: second" in prompt


# --- OpenAI ---

def test_openai_analyze_file():
    provider = OpenAIProvider(api_key="sk-test", model="gpt-4o", max_tokens=500)
    provider.client = mock.Mock()
    provider.client.chat.completions.create = mock.AsyncMock(
        return_value=_openai_response(json.dumps({"vulnerabilities": [VULN]}))
    )

    result = asyncio.run(provider("query = f'{x}'\n", "db.py"))

    assert result == [VULN]
    assert provider.get_total_tokens() == 42
    params = provider.client.chat.completions.create.await_args.kwargs
    assert params["max_tokens"] == 500
    assert params["response_format"] == {"type": "json_object"}


def test_openai_reasoning_models_use_completion_tokens():
    params = OpenAIProvider(api_key="sk-test", model="o3-mini", max_tokens=700)._build_params("p")
    assert params["max_completion_tokens"] == 700
    assert "temperature" not in params


def test_openai_error_becomes_analysis_error():
    provider = OpenAIProvider(api_key="sk-test")
    provider.client = mock.Mock()
    provider.client.chat.completions.create = mock.AsyncMock(side_effect=OpenAIError("quota exceeded"))

    with pytest.raises(AnalysisError) as exc_info:
        asyncio.run(provider.analyze_file("x", "a.py"))
    assert "quota exceeded" in str(exc_info.value)


# --- Claude ---

def test_claude_analyze_file_joins_text_blocks():
    provider = ClaudeProvider(api_key="sk-ant-test")
    provider.client = mock.Mock()
    body = json.dumps({"vulnerabilities": [VULN]})
    provider.client.messages.create = mock.AsyncMock(return_value=_claude_response(body[:10], body[10:]))

    assert asyncio.run(provider.analyze_file("x", "a.py")) == [VULN]
    assert provider.get_total_tokens() == 15


def test_claude_error_becomes_analysis_error():
    provider = ClaudeProvider(api_key="sk-ant-test")
    provider.client = mock.Mock()
    provider.client.messages.create = mock.AsyncMock(side_effect=AnthropicError("overloaded"))

    with pytest.raises(AnalysisError):
        asyncio.run(provider.analyze_file("x", "a.py"))


# --- hosted function ---

def _http_provider(*responses, side_effect=None) -> HttpAnalysisProvider:
    session = requests.Session()
    session.post = mock.Mock(side_effect=side_effect or list(responses))
    return HttpAnalysisProvider("https://functions.example.com/analyze-file", api_key="anon", session=session)


def test_http_provider_posts_file():
    provider = _http_provider(_http_response(200, {"vulnerabilities": [VULN]}))

    assert asyncio.run(provider.analyze_file("code", "src/app.py")) == [VULN]

    args, kwargs = provider.session.post.call_args
    assert args[0] == "https://functions.example.com/analyze-file"
    assert kwargs["json"] == {"fileContent": "code", "filePath": "src/app.py"}
    assert provider.session.headers["Authorization"] == "Bearer anon"


@pytest.mark.parametrize("response", [
    _http_response(500, {"error": "boom"}),
    _http_response(200, {"error": "model unavailable"}),
    _http_response(200, b"<html>"),
])
def test_http_provider_failures(response):
    provider = _http_provider(response)
    with pytest.raises(AnalysisError):
        asyncio.run(provider.analyze_file("code", "a.py"))


def test_http_provider_connection_error():
    provider = _http_provider(side_effect=requests.ConnectionError("refused"))
    with pytest.raises(AnalysisError) as exc_info:
        asyncio.run(provider.analyze_file("code", "a.py"))
    assert "refused" in str(exc_info.value)


def test_http_provider_requires_url():
    with pytest.raises(ValueError):
        HttpAnalysisProvider("")


# --- selection ---

@pytest.mark.parametrize("name,cls", [
    ("openai", OpenAIProvider),
    ("claude", ClaudeProvider),
    ("Anthropic", ClaudeProvider),
    ("http", HttpAnalysisProvider),
])
def test_get_provider(name, cls):
    provider = get_provider(_settings(AI_PROVIDER=name))
    assert isinstance(provider, cls)


def test_get_provider_passes_model_settings():
    provider = get_provider(_settings(OPENAI_MODEL="gpt-4o-mini", AI_MAX_TOKENS=123))
    assert provider.model == "gpt-4o-mini"
    assert provider.max_tokens == 123


def test_get_provider_unknown():
    with pytest.raises(ValueError):
        get_provider(_settings(AI_PROVIDER="bard"))
