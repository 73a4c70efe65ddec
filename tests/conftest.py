"""
Pytest fixtures shared across the test modules

The completion client is replaced by a fake that records prompts, so no test
talks to the LLM gateway.
"""

import pytest

from sqlpg.app import create_app
from sqlpg.completion import CompletionResult, Failure
from sqlpg.config import Settings
from sqlpg.controller import AssistantController
from sqlpg.session import SessionState


class FakeCompletionClient:
    """Returns queued results (or a default reply) and remembers every prompt"""

    has_credential = True

    def __init__(self, reply="OK"):
        self.reply = reply
        self.prompts = []
        self.queue = []
        self.on_call = None

    def push(self, result):
        if isinstance(result, str):
            result = CompletionResult.success(result)
        self.queue.append(result)

    def fail(self, failure=Failure.TRANSPORT):
        self.queue.append(CompletionResult.failed(failure))

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.on_call is not None:
            self.on_call(prompt)
        if self.queue:
            return self.queue.pop(0)
        return CompletionResult.success(self.reply)


@pytest.fixture
def sample_sql(tmp_path):
    path = tmp_path / "sample.sql"
    path.write_text("CREATE TABLE employees (id INT PRIMARY KEY);\n", encoding="utf-8")
    return path


@pytest.fixture
def settings(sample_sql):
    return Settings(sample_path=sample_sql, secret_key="test-secret", open_browser=False)


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def state():
    return SessionState()


@pytest.fixture
def controller(state, fake_client, settings):
    return AssistantController(state, fake_client, settings)


@pytest.fixture
def app(settings, fake_client):
    app = create_app(settings, completion_client=fake_client)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
