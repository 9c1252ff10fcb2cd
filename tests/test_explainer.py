import pytest
import requests

from comchan.core.spikes import SpikeDetector
from comchan.remote.explainer import (
    API_KEY_ENV,
    ExplanationError,
    SpikeExplainer,
    build_prompt,
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("no JSON")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def _detector_with_spike() -> SpikeDetector:
    detector = SpikeDetector(z_threshold=1.9)
    for t, value in enumerate([1.0, 2.0, 3.0, 4.0, 100.0]):
        detector.add_point("Channel 0", t, value)
    return detector


def _reply(content):
    return FakeResponse(body={"choices": [{"message": {"content": content}}]})


def test_prompt_contains_spikes_and_recent_data() -> None:
    prompt = build_prompt(_detector_with_spike())
    assert "- Sensor 'Channel 0' spiked at t=4.0" in prompt
    assert "--- Channel 0 (5 points) ---" in prompt
    assert "t=0.0: 1.0000" in prompt


def test_explain_posts_chat_request() -> None:
    session = FakeSession(_reply("Loose wire at t=4.0."))
    explainer = SpikeExplainer("sk-test", model="m", timeout_s=5, session=session)

    assert explainer.explain(_detector_with_spike()) == "Loose wire at t=4.0."
    assert session.headers["Authorization"] == "Bearer sk-test"
    (url, payload, timeout), = session.calls
    assert url.endswith("/chat/completions")
    assert payload["model"] == "m"
    assert [m["role"] for m in payload["messages"]] == ["system", "user"]
    assert timeout == 5


def test_http_error_raises() -> None:
    session = FakeSession(FakeResponse(status_code=401, text="bad key"))
    explainer = SpikeExplainer("sk-test", session=session)
    with pytest.raises(ExplanationError, match="401"):
        explainer.complete("hi")


def test_network_error_raises() -> None:
    session = FakeSession(error=requests.ConnectionError("offline"))
    explainer = SpikeExplainer("sk-test", session=session)
    with pytest.raises(ExplanationError):
        explainer.complete("hi")


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(body=None),
        FakeResponse(body={"choices": []}),
        FakeResponse(body={"choices": [{"message": {}}]}),
        _reply(None),
    ],
)
def test_malformed_response_raises(response) -> None:
    explainer = SpikeExplainer("sk-test", session=FakeSession(response))
    with pytest.raises(ExplanationError):
        explainer.complete("hi")


def test_from_env(monkeypatch) -> None:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    assert SpikeExplainer.from_env() is None
    monkeypatch.setenv(API_KEY_ENV, "sk-env")
    explainer = SpikeExplainer.from_env(session=FakeSession())
    assert explainer is not None
    assert explainer.session.headers["Authorization"] == "Bearer sk-env"


def test_empty_key_rejected() -> None:
    with pytest.raises(ValueError):
        SpikeExplainer("")
