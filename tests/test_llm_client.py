import asyncio
import json

import httpx
import pytest

from dyslexia_api.llm_client import LLMClient, LLMError, build_llm_client
from dyslexia_api.settings import settings


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


class Recorder:
    """MockTransport handler answering per host and keeping every request."""

    def __init__(self, **responses):
        self.responses = responses
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        respond = self.responses[request.url.host]
        return respond(request) if callable(respond) else respond

    def bodies(self, host=None):
        return [json.loads(r.content) for r in self.requests if host is None or r.url.host == host]


def call(recorder, method, *args, **client_kwargs):
    async def scenario():
        client = LLMClient(
            "sk-test",
            base_url="https://llm.test/v1/",
            model="test-model",
            timeout=5,
            transport=httpx.MockTransport(recorder),
            **client_kwargs,
        )
        try:
            return await getattr(client, method)(*args)
        finally:
            await client.aclose()

    return asyncio.run(scenario())


@pytest.fixture
def secondary(monkeypatch):
    monkeypatch.setattr(settings, "llm_fallback_api_key", "sk-backup")
    monkeypatch.setattr(settings, "llm_fallback_base_url", "https://backup.test/api/v1")
    monkeypatch.setattr(settings, "llm_fallback_model", "backup-model")


def test_generate_json_payload():
    recorder = Recorder(**{"llm.test": completion('{"correctAnswer": "BOLA"}')})

    text = call(recorder, "generate_json", "buat soal")

    assert text == '{"correctAnswer": "BOLA"}'
    [request] = recorder.requests
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = recorder.bodies()[0]
    assert body["model"] == "test-model"
    assert body["messages"] == [{"role": "user", "content": "buat soal"}]
    assert body["temperature"] == 0.3
    assert body["response_format"] == {"type": "json_object"}


def test_chat_payload():
    recorder = Recorder(**{"llm.test": completion("Halo juga!")})
    messages = [{"role": "system", "content": "ramah"}, {"role": "user", "content": "Halo"}]

    assert call(recorder, "chat", messages) == "Halo juga!"

    body = recorder.bodies()[0]
    assert body["messages"] == messages
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 2048
    assert "response_format" not in body


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>bad gateway</html>"),
        httpx.Response(200, json={"error": "quota"}),
        httpx.Response(200, json={"choices": []}),
        completion(""),
        httpx.Response(503, json={"error": "overloaded"}),
    ],
    ids=["not-json", "no-choices", "empty-choices", "empty-content", "http-error"],
)
def test_unusable_response_raises(response):
    with pytest.raises(LLMError):
        call(Recorder(**{"llm.test": response}), "generate_json", "soal")


def test_secondary_endpoint_used_after_primary_failure(secondary):
    recorder = Recorder(**{"llm.test": httpx.Response(500), "backup.test": completion("dari cadangan")})

    assert call(recorder, "chat", [{"role": "user", "content": "Halo"}]) == "dari cadangan"

    assert [r.url.host for r in recorder.requests] == ["llm.test", "backup.test"]
    backup = recorder.requests[1]
    assert str(backup.url) == "https://backup.test/api/v1/chat/completions"
    assert backup.headers["Authorization"] == "Bearer sk-backup"
    assert recorder.bodies("backup.test")[0]["model"] == "backup-model"


def test_secondary_failure_is_wrapped(secondary):
    recorder = Recorder(**{"llm.test": httpx.Response(500), "backup.test": httpx.Response(429)})

    with pytest.raises(LLMError) as exc:
        call(recorder, "generate_json", "soal")

    assert "secondary endpoint also failed" in str(exc.value)
    assert [r.url.host for r in recorder.requests] == ["llm.test", "backup.test"]


def test_missing_key_disables_client():
    with pytest.raises(ValueError):
        LLMClient("")
    assert build_llm_client() is None
