"""
HTTP API tests
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider
from cmdai.server import create_app


@pytest.fixture
def client_for(make_services, repo_context):
    def _client(providers=None, **overrides):
        services = make_services(providers, **overrides)
        return TestClient(create_app(services, context_factory=lambda: repo_context)), services

    return _client


def test_health(client_for):
    client, _ = client_for()
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_resolve_with_patterns(client_for):
    client, _ = client_for()
    response = client.post("/resolve", json={"tool": "git", "query": "check status"})
    assert response.status_code == 200
    assert response.json() == {
        "command": "git status",
        "description": "Show the working tree status",
        "requires_confirmation": True,
        "context": "(Pattern-based) (AI unavailable, using patterns)",
    }


def test_resolve_with_provider(client_for):
    client, _ = client_for([FakeProvider("ollama", reply="kubectl get pods -A", model_name="m")])
    response = client.post("/resolve", json={"tool": "kubectl", "query": "list all pods"})
    body = response.json()
    assert body["command"] == "kubectl get pods -A"
    assert body["context"] == "Generated by m"


def test_resolve_not_found(client_for):
    client, _ = client_for()
    response = client.post("/resolve", json={"tool": "git", "query": "asdkjasd"})
    assert response.status_code == 404
    assert response.json()["detail"] == "No command found for 'asdkjasd' with git"


@pytest.mark.parametrize(
    "body",
    [{"tool": "git"}, {"tool": "git", "query": "   "}, {"tool": "", "query": "status"}, {"tool": 3, "query": "x"}],
)
def test_resolve_rejects_blank_fields(client_for, body):
    client, _ = client_for()
    assert client.post("/resolve", json=body).status_code == 400


def test_feedback_is_recorded(client_for):
    client, services = client_for()
    response = client.post(
        "/feedback",
        json={"tool": "git", "query": "check status", "command": "git status", "accepted": True, "successful": True},
    )
    assert response.json() == {"status": "recorded"}
    entry = services.learning.entries()[0]
    assert entry.command == "git status"
    assert entry.confidence_score == 1.0


def test_feedback_requires_command(client_for):
    client, services = client_for()
    response = client.post("/feedback", json={"tool": "git", "query": "check status"})
    assert response.status_code == 400
    assert len(services.learning) == 0


@pytest.mark.parametrize("flags", [{"accepted": "false"}, {"successful": 1}, {"accepted": None}])
def test_feedback_flags_must_be_booleans(client_for, flags):
    client, services = client_for()
    body = {"tool": "git", "query": "check status", "command": "git status", **flags}
    response = client.post("/feedback", json=body)
    assert response.status_code == 400
    assert len(services.learning) == 0


def test_feedback_flags_default_to_false(client_for):
    client, services = client_for()
    client.post("/feedback", json={"tool": "git", "query": "check status", "command": "git status"})
    entry = services.learning.entries()[0]
    assert not entry.was_accepted
    assert entry.confidence_score == 0.3
