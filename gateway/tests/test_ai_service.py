# gateway/tests/test_ai_service.py
# AIService retries, circuit breaker and JSON parsing against a fake OpenAI client.

import types

import pytest

from gateway.services.ai_service import AIService, AIServiceError


def _fake_client(replies):
    """Object graph like client.chat.completions.create(...); replies may be str or Exception."""
    calls = {"n": 0}

    def _create(*args, **kwargs):
        reply = replies[min(calls["n"], len(replies) - 1)]
        calls["n"] += 1
        if isinstance(reply, Exception):
            raise reply
        if kwargs.get("stream"):
            return iter(
                types.SimpleNamespace(choices=[types.SimpleNamespace(delta=types.SimpleNamespace(content=t))])
                for t in reply
            )
        msg = types.SimpleNamespace(content=reply)
        return types.SimpleNamespace(choices=[types.SimpleNamespace(message=msg)], usage=None)

    client = types.SimpleNamespace(chat=types.SimpleNamespace(completions=types.SimpleNamespace(create=_create)))
    return client, calls


def _service(replies, **kwargs):
    client, calls = _fake_client(replies)
    return AIService(client=client, sleep=lambda _s: None, **kwargs), calls


def test_complete_returns_stripped_text():
    svc, _ = _service(["  hello  "])
    assert svc.complete([{"role": "user", "content": "hi"}]) == "hello"


def test_complete_retries_then_succeeds():
    svc, calls = _service([ConnectionError("reset"), "ok"])
    assert svc.complete([]) == "ok"
    assert calls["n"] == 2


def test_complete_raises_after_retries():
    svc, calls = _service([ConnectionError("down")], max_retries=1, breaker_threshold=10)
    with pytest.raises(AIServiceError, match="down"):
        svc.complete([])
    assert calls["n"] == 2


def test_breaker_opens_and_fails_fast():
    svc, calls = _service([ConnectionError("down")], max_retries=2, breaker_threshold=3)
    with pytest.raises(AIServiceError):
        svc.complete([])
    assert svc.breaker_open
    with pytest.raises(AIServiceError, match="circuit open"):
        svc.complete([])
    assert calls["n"] == 3


def test_complete_json_tolerates_code_fences():
    svc, _ = _service(['```json\n{"weeks": []}\n```'])
    assert svc.complete_json([]) == {"weeks": []}


def test_complete_json_rejects_prose():
    svc, _ = _service(["Sure! Here is your plan."])
    with pytest.raises(AIServiceError, match="not valid JSON"):
        svc.complete_json([])


def test_stream_yields_tokens():
    svc, _ = _service([["Hel", None, "lo"]])
    assert list(svc.stream([])) == ["Hel", "lo"]


def test_stream_failure_mid_iteration_counts_toward_breaker():
    def _broken():
        yield "Hel"
        raise ConnectionError("connection reset")

    svc, _ = _service([_broken()], breaker_threshold=1)
    tokens = []
    with pytest.raises(AIServiceError, match="interrupted"):
        for token in svc.stream([]):
            tokens.append(token)
    assert tokens == ["Hel"]
    assert svc.breaker_open
