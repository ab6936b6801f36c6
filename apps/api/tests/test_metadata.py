from types import SimpleNamespace

from fastapi.testclient import TestClient

from app.main import app
from app.services.metadata import DEFAULT_DESCRIPTION, suggest_metadata

client = TestClient(app)


class FakeOpenAI:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        msg = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=msg)])


def test_fallback_without_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert suggest_metadata("holiday.mp4") == {"title": "holiday.mp4", "description": DEFAULT_DESCRIPTION}


def test_fallback_when_model_call_fails():
    fake = FakeOpenAI(error=RuntimeError("rate limited"))
    assert suggest_metadata("holiday.mp4", client=fake) == {
        "title": "holiday.mp4",
        "description": DEFAULT_DESCRIPTION,
    }


def test_fallback_when_model_returns_garbage():
    fake = FakeOpenAI(content="Sure! Here is a great title for you.")
    assert suggest_metadata("a.mov", client=fake) == {"title": "a.mov", "description": DEFAULT_DESCRIPTION}


def test_suggestion_parses_fenced_json():
    content = '```json\n{"title": "Best Holiday Ever", "description": "Sun and sea.", "tags": ["travel"], "hashtags": ["#beach"]}\n```'
    fake = FakeOpenAI(content=content)

    out = suggest_metadata("holiday.mp4", client=fake)

    assert out == {
        "title": "Best Holiday Ever",
        "description": "Sun and sea.",
        "tags": ["travel"],
        "hashtags": ["beach"],
    }
    assert "holiday.mp4" in fake.requests[0]["messages"][1]["content"]


def test_long_titles_are_clipped():
    fake = FakeOpenAI(content='{"title": "%s", "description": "d"}' % ("x" * 150))
    assert len(suggest_metadata("f.mp4", client=fake)["title"]) == 100


def test_suggest_endpoint_never_fails(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    r = client.get("/api/metadata/suggest", params={"filename": "clip.mp4"})
    assert r.status_code == 200
    assert r.json() == {"title": "clip.mp4", "description": DEFAULT_DESCRIPTION, "tags": [], "hashtags": []}
