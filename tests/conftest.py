"""Shared test fixtures for rapport."""

import json
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

OWNER = "owner-1"
OTHER_OWNER = "owner-2"


class ScriptedProvider:
    """Fake LLMProvider answering by task, so concurrent calls stay deterministic.

    Each reply is a string, or an exception instance to raise.
    """

    provider_name = "scripted"

    def __init__(self, normalize=None, people="none", tags="", summary=""):
        self.replies = {
            "normalize": normalize,
            "people": people,
            "tags": tags,
            "summary": summary,
        }
        self.calls: list[dict] = []

    @staticmethod
    def _task(system: str) -> str:
        if "tidy up spoken notes" in system:
            return "normalize"
        if "extract the names" in system:
            return "people"
        if "event tags" in system:
            return "tags"
        if "Summarize" in system:
            return "summary"
        raise AssertionError(f"unexpected prompt: {system[:60]}")

    def generate(self, messages, system=None, max_tokens=2000, temperature=None):
        system_text = system or next(
            (m["content"] for m in messages if m.get("role") == "system"), ""
        )
        task = self._task(system_text)
        self.calls.append({"task": task, "messages": messages, "temperature": temperature})
        reply = self.replies[task]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def tasks(self) -> list[str]:
        return [c["task"] for c in self.calls]


def normalized_reply(text: str, people=(), tags=()) -> str:
    return json.dumps({"organizedText": text, "people": list(people), "tags": list(tags)})


@pytest.fixture
def make_provider():
    return ScriptedProvider


@pytest.fixture
def reply_json():
    return normalized_reply


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def other_owner():
    return OTHER_OWNER


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "rapport.db"


@pytest.fixture
def record_store(db_path):
    from capture.store import RecordStore

    return RecordStore(db_path)


@pytest.fixture
def contact_store(db_path):
    from contacts.store import ContactStore

    return ContactStore(db_path)


@pytest.fixture
def tag_store(db_path):
    from contacts.tags import TagStore

    return TagStore(db_path)
