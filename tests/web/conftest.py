"""Shared fixtures for web API tests."""

import httpx
import pytest
from fastapi.testclient import TestClient

from settings.config_models import RapportConfig
from transcription import TranscriptionClient

TRANSCRIPT = "um so I had lunch with Ana and Bo"
NARRATIVE = "Had lunch with Ana and Bo."


@pytest.fixture
def config(tmp_path):
    return RapportConfig.from_dict(
        {
            "paths": {"db_path": str(tmp_path / "rapport.db"), "log_file": str(tmp_path / "r.log")},
            "retry": {"max_attempts": 1, "min_wait": 0, "llm_max_wait": 0},
        }
    )


@pytest.fixture
def provider(make_provider, reply_json):
    return make_provider(
        normalize=reply_json(NARRATIVE, people=["Ana", "Bo"], tags=["lunch"]),
        people="Ana, Bo",
        tags="lunch",
        summary="Lunch with Ana and Bo",
    )


@pytest.fixture
def asr_handler():
    """Replace .response to script the transcription endpoint."""

    class Handler:
        response = httpx.Response(200, json={"text": TRANSCRIPT})

        def __call__(self, request):
            return self.response

    return Handler()


@pytest.fixture
def client(config, provider, asr_handler):
    from web.app import app
    from web.deps import get_config, get_llm_provider, get_transcriber

    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_llm_provider] = lambda: provider
    app.dependency_overrides[get_transcriber] = lambda: TranscriptionClient(
        api_key="step-key", transport=httpx.MockTransport(asr_handler)
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(owner):
    return {"X-Owner-Id": owner}


@pytest.fixture
def auth_headers_b(other_owner):
    """Second owner for isolation tests."""
    return {"X-Owner-Id": other_owner}
