"""Shared fixtures for unit and API tests."""
import re
from typing import Dict, List, Optional

import pytest

from docqa import config
from docqa.files import ExpiringFileManager
from docqa.main import create_app
from docqa.rag.cache import AnswerCache
from docqa.state import ServiceState

EMBED_DIM = 32


def embed_words(text: str) -> List[float]:
    """Deterministic bag-of-words vector: one bucket per word checksum."""
    vector = [0.0] * EMBED_DIM
    for word in re.findall(r"[a-z]+", text.lower()):
        vector[sum(map(ord, word)) % EMBED_DIM] += 1.0
    return vector


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLM:
    """Stands in for LLMClient; records every call."""

    def __init__(self):
        self.embed_calls: List[List[str]] = []
        self.chat_calls: List[List[Dict[str, str]]] = []
        self.fail_embeddings = False
        self.fail_embeddings_after: Optional[int] = None
        self.fail_chat = False
        self.answer_prefix = "Answer"

    async def embeddings(self, texts: List[str], model: str = None) -> List[List[float]]:
        self.embed_calls.append(list(texts))
        if self.fail_embeddings or (
            self.fail_embeddings_after is not None
            and len(self.embed_calls) > self.fail_embeddings_after
        ):
            raise RuntimeError("embedding service unavailable")
        return [embed_words(t) for t in texts]

    async def embed(self, text: str, model: str = None) -> List[float]:
        return (await self.embeddings([text]))[0]

    async def chat(self, messages, model: str = None, **kwargs) -> str:
        self.chat_calls.append(messages)
        if self.fail_chat:
            raise RuntimeError("completion service unavailable")
        return f"{self.answer_prefix} #{len(self.chat_calls)}"


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def data_dirs(tmp_path, monkeypatch):
    """Point uploads and exports at a per-test directory."""
    upload_dir = tmp_path / "uploads"
    export_dir = tmp_path / "exports"
    upload_dir.mkdir()
    export_dir.mkdir()
    monkeypatch.setattr(config, "UPLOAD_DIR", upload_dir)
    monkeypatch.setattr(config, "EXPORT_DIR", export_dir)
    return upload_dir, export_dir


@pytest.fixture
def state(fake_llm, clock) -> ServiceState:
    return ServiceState.create(
        llm=fake_llm,
        cache=AnswerCache(ttl_seconds=1800, clock=clock),
        files=ExpiringFileManager(retention_seconds=1800, clock=clock),
    )


@pytest.fixture
def app(state):
    return create_app(state)


@pytest.fixture
def client(app):
    return app.test_client()
