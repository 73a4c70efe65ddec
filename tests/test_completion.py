import json
from types import SimpleNamespace

import groq
import httpx
import pytest
from groq import Groq

from sqlpg.completion import (
    ERROR_TEXT,
    NO_RESPONSE_TEXT,
    CompletionClient,
    CompletionResult,
    Failure,
    fetch_credential,
)
from sqlpg.config import Settings

GATEWAY = "https://gateway.test"


def sdk_stub(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def reply(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def settings():
    return Settings(base_url=GATEWAY, model="gpt-4o-mini", max_tokens=2000, temperature=0.2)


def test_sends_model_limits_and_single_user_message(settings):
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return reply("  overview text \n")

    client = CompletionClient("tok", settings, client=sdk_stub(create))
    result = client.complete("summarize this")

    assert result == CompletionResult.success("overview text")
    assert calls == [
        {
            "model": "gpt-4o-mini",
            "messages": [{"role": "user", "content": "summarize this"}],
            "max_tokens": 2000,
            "temperature": 0.2,
        }
    ]


def test_success_carries_no_failure():
    result = CompletionResult.success("SELECT 1;")
    assert result.ok
    assert result.failure is None
    assert CompletionResult.failed(Failure.EMPTY).text == NO_RESPONSE_TEXT


def test_transport_failure_returns_error_text(settings):
    def create(**kwargs):
        raise groq.APIConnectionError(request=httpx.Request("POST", GATEWAY))

    result = CompletionClient("tok", settings, client=sdk_stub(create)).complete("x")

    assert not result.ok
    assert result.failure is Failure.TRANSPORT
    assert result.text == ERROR_TEXT


def test_timeout_is_a_transport_failure(settings):
    def create(**kwargs):
        raise groq.APITimeoutError(request=httpx.Request("POST", GATEWAY))

    result = CompletionClient("tok", settings, client=sdk_stub(create)).complete("x")
    assert result.failure is Failure.TRANSPORT


@pytest.mark.parametrize("response", [reply(""), reply(None), reply("   "), SimpleNamespace(choices=[])])
def test_empty_response(settings, response):
    result = CompletionClient("tok", settings, client=sdk_stub(lambda **kw: response)).complete("x")
    assert result.failure is Failure.EMPTY
    assert result.text == NO_RESPONSE_TEXT


def test_unexpected_shape_is_malformed(settings):
    result = CompletionClient("tok", settings, client=sdk_stub(lambda **kw: object())).complete("x")
    assert result.failure is Failure.MALFORMED
    assert result.text == ERROR_TEXT


def test_parse_error_inside_sdk_is_malformed(settings):
    def create(**kwargs):
        raise json.JSONDecodeError("Expecting value", "<html>", 0)

    result = CompletionClient("tok", settings, client=sdk_stub(create)).complete("x")
    assert result.failure is Failure.MALFORMED


def wire_client(settings, handler, credential):
    sdk = Groq(
        api_key=credential or "",
        base_url=GATEWAY,
        max_retries=0,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    return CompletionClient(credential, settings, client=sdk)


def test_wire_format_against_gateway(settings):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-1",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o-mini",
                "choices": [
                    {
                        "index": 0,
                        "finish_reason": "stop",
                        "message": {"role": "assistant", "content": "CREATE TABLE t ();"},
                    }
                ],
            },
        )

    result = wire_client(settings, handler, "tok-123").complete("convert")

    assert result.ok and result.text == "CREATE TABLE t ();"
    assert seen["url"] == f"{GATEWAY}/openai/v1/chat/completions"
    assert seen["auth"] == "Bearer tok-123"
    assert seen["body"]["model"] == "gpt-4o-mini"
    assert seen["body"]["messages"] == [{"role": "user", "content": "convert"}]
    assert seen["body"]["max_tokens"] == 2000
    assert seen["body"]["temperature"] == 0.2


def test_missing_credential_is_rejected_by_service(settings):
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "unauthorized"}})

    client = wire_client(settings, handler, None)
    result = client.complete("x")

    assert not client.has_credential
    assert result.failure is Failure.REJECTED
    assert result.detail == "HTTP 401"
    assert result.text == ERROR_TEXT


def token_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_fetch_credential_reads_token():
    def handler(request):
        assert request.method == "GET"
        return httpx.Response(200, json={"token": "abc"})

    assert fetch_credential(f"{GATEWAY}/token", client=token_client(handler)) == "abc"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={}),
        httpx.Response(200, json={"token": ""}),
        httpx.Response(200, text="<html>login</html>"),
        httpx.Response(200, json=["token"]),
        httpx.Response(401, json={"token": "stale"}),
    ],
)
def test_fetch_credential_degrades_to_none(response):
    assert fetch_credential(f"{GATEWAY}/token", client=token_client(lambda r: response)) is None


def test_fetch_credential_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert fetch_credential(f"{GATEWAY}/token", client=token_client(handler)) is None
