import pytest

from qa_demo.app import create_app, get_controller
from qa_demo.config import QAConfig
from qa_demo.messages import Answer, Complete, Failure, Loading, QARequest, Ready

CONTEXT = "The capital of France is Paris."


@pytest.fixture
def make_app(fake_workers):
    apps = []

    def build(**config_kwargs):
        app = create_app(QAConfig(**config_kwargs), worker_factory=fake_workers)
        app.config["TESTING"] = True
        apps.append(app)
        return app, fake_workers.created[-1]

    yield build
    for app in apps:
        get_controller(app).unmount()


def test_index_shows_loading_until_ready(make_app):
    app, worker = make_app()
    client = app.test_client()
    worker.emit(Loading(40))
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"<button id=\"submit\" disabled>Loading...</button>" in resp.data
    assert b"40%" in resp.data

    worker.emit(Ready())
    resp = client.get("/")
    assert b"<button id=\"submit\" >Get Answer</button>" in resp.data


def test_state_endpoint(make_app):
    app, worker = make_app()
    client = app.test_client()
    assert client.get("/api/state").get_json()["ready"] is False
    worker.emit(Ready())
    state = client.get("/api/state").get_json()
    assert state["ready"] is True
    assert state["progress"] is None
    assert client.get("/healthz").get_json() == {"ready": True}


def test_answer_requires_both_fields(make_app):
    app, worker = make_app()
    worker.emit(Ready())
    resp = app.test_client().post("/api/answer", json={"question": "  ", "context": CONTEXT})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please enter both passage and question."
    assert worker.posted == []


def test_answer_rejected_before_ready(make_app):
    app, worker = make_app()
    resp = app.test_client().post("/api/answer", json={"question": "Where?", "context": CONTEXT})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "Model is not ready yet."


def test_answer_submits_request(make_app):
    app, worker = make_app()
    worker.emit(Ready())
    client = app.test_client()
    resp = client.post("/api/answer", json={"question": " Where? ", "context": CONTEXT})
    assert resp.status_code == 202
    assert resp.get_json()["busy"] is True
    assert worker.posted == [QARequest("Where?", CONTEXT)]

    worker.emit(Complete(Answer("Paris", 0.9234)))
    body = client.get("/").data
    assert b"Paris" in body
    assert b"0.92" in body


def test_error_is_rendered(make_app):
    app, worker = make_app()
    worker.emit(Failure.from_text("Failed to load model"))
    body = app.test_client().get("/").data
    assert b"Failed to load model" in body


def test_single_flight_conflict(make_app):
    app, worker = make_app(single_flight=True)
    worker.emit(Ready())
    client = app.test_client()
    payload = {"question": "Where?", "context": CONTEXT}
    assert client.post("/api/answer", json=payload).status_code == 202
    resp = client.post("/api/answer", json=payload)
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "A request is already in progress."


def test_non_object_body_is_treated_as_empty(make_app):
    app, worker = make_app()
    worker.emit(Ready())
    resp = app.test_client().post("/api/answer", json=["Where?", CONTEXT])
    assert resp.status_code == 400


def test_max_content_length_from_config(make_app):
    app, _ = make_app(max_content_length=1024)
    assert app.config["MAX_CONTENT_LENGTH"] == 1024


@pytest.mark.parametrize("payload", [
    {"question": 5, "context": CONTEXT},
    {"question": "Where?", "context": ["not", "text"]},
])
def test_non_string_field_is_rejected(make_app, payload):
    app, worker = make_app()
    worker.emit(Ready())
    resp = app.test_client().post("/api/answer", json=payload)
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("Invalid message:")
    assert worker.posted == []


def test_page_shows_rejected_submit_in_error_block(make_app):
    app, _ = make_app()
    body = app.test_client().get("/").data
    assert b"rejection = body.error;" in body
    assert b'$("error-text").textContent = body.error;' in body
