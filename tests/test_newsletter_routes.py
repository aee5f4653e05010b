"""
Newsletter Proxy Tests

The Listmonk client is real; its HTTP traffic goes through an
``httpx.MockTransport`` that records every request.
"""

import base64
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from site_assistant_server.main import create_app
from site_assistant_server.api.dependencies import get_listmonk_client
from site_assistant_server.newsletter.listmonk import ListmonkClient, extract_nonce

LISTMONK = "https://lists.example.com"
LIST_ID = "6f1c9c1e-0000-4000-8000-000000000001"


class Recorder:
    """Mock Listmonk: answers by path and remembers requests."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self.routes[request.url.path]
        if isinstance(result, Exception):
            raise result
        return result

    def paths(self):
        return [r.url.path for r in self.requests]


def make_client(recorder, username="admin", api_key="secret"):
    app = create_app()
    listmonk = ListmonkClient(
        username=username,
        api_key=api_key,
        transport=httpx.MockTransport(recorder),
    )
    app.dependency_overrides[get_listmonk_client] = lambda: listmonk
    return TestClient(app)


def subscription(**overrides):
    body = {"email": "reader@example.com", "listId": LIST_ID, "baseUrl": LISTMONK}
    body.update(overrides)
    return body


# ---------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------

def test_subscribe_success():
    recorder = Recorder({"/api/public/subscription": httpx.Response(200, json={"data": True})})

    resp = make_client(recorder).post("/email-list", json=subscription())

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Successfully subscribed! Please check your email to confirm.",
    }
    sent = json.loads(recorder.requests[0].content)
    assert sent == {"email": "reader@example.com", "list_uuids": [LIST_ID]}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_welcome_email_sent_with_basic_auth():
    recorder = Recorder({
        "/api/public/subscription": httpx.Response(200, json={"data": True}),
        "/api/tx": httpx.Response(200, json={"data": True}),
    })

    resp = make_client(recorder).post("/email-list", json=subscription(templateId="4"))

    assert resp.status_code == 200
    assert recorder.paths() == ["/api/public/subscription", "/api/tx"]
    tx = recorder.requests[1]
    assert tx.headers["Authorization"] == "Basic " + base64.b64encode(b"admin:secret").decode()
    assert json.loads(tx.content) == {
        "subscriber_emails": ["reader@example.com"],
        "template_id": 4,
        "data": {},
        "subscriber_mode": "fallback",
    }


def test_welcome_email_failure_does_not_fail_subscription():
    recorder = Recorder({
        "/api/public/subscription": httpx.Response(200, json={"data": True}),
        "/api/tx": httpx.Response(500, text="template missing"),
    })

    resp = make_client(recorder).post("/email-list", json=subscription(templateId=4))

    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_no_welcome_email_without_credentials():
    recorder = Recorder({"/api/public/subscription": httpx.Response(200, json={"data": True})})

    make_client(recorder, username="", api_key="").post(
        "/email-list", json=subscription(templateId=4)
    )

    assert recorder.paths() == ["/api/public/subscription"]


def test_honeypot_fakes_success_without_calling_listmonk():
    recorder = Recorder({})

    resp = make_client(recorder).post("/email-list", json=subscription(website="spam"))

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert recorder.requests == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"email": None},
        {"email": 42},
        {"listId": 7},
        {"templateId": "welcome"},
        {"templateId": 0},
        {"templateId": True},
        {"listId": ""},
        {"baseUrl": "ftp://lists.example.com"},
    ],
)
def test_invalid_subscription_rejected(overrides):
    recorder = Recorder({})

    resp = make_client(recorder).post("/email-list", json=subscription(**overrides))

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert recorder.requests == []


def test_unparseable_body_uses_subscription_shape():
    recorder = Recorder({})

    resp = make_client(recorder).post(
        "/email-list", content="not json", headers={"Content-Type": "application/json"}
    )

    assert resp.status_code == 400
    assert set(resp.json()) == {"success", "message"}
    assert resp.json()["success"] is False
    assert recorder.requests == []


def test_honeypot_checked_before_field_types():
    recorder = Recorder({})

    resp = make_client(recorder).post(
        "/email-list", json=subscription(email=42, templateId="welcome", website="spam")
    )

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert recorder.requests == []


def test_upstream_rejection_passes_status_through():
    recorder = Recorder({"/api/public/subscription": httpx.Response(422, json={"message": "bad"})})

    resp = make_client(recorder).post("/email-list", json=subscription())

    assert resp.status_code == 422
    assert resp.json() == {"success": False, "message": "Subscription failed. Please try again."}


def test_transport_error_is_500():
    recorder = Recorder({"/api/public/subscription": httpx.ConnectError("refused")})

    resp = make_client(recorder).post("/email-list", json=subscription())

    assert resp.status_code == 500
    assert resp.json()["success"] is False


# ---------------------------------------------------------------------
# Nonce
# ---------------------------------------------------------------------

FORM_HTML = '<form><input type="hidden" name="nonce" value="abc123"></form>'


def test_nonce_fetched_from_form():
    recorder = Recorder({"/subscription/form": httpx.Response(200, text=FORM_HTML)})

    resp = make_client(recorder).get("/email-list", params={"baseUrl": LISTMONK})

    assert resp.status_code == 200
    assert resp.json() == {"nonce": "abc123"}


@pytest.mark.parametrize(
    "upstream",
    [
        httpx.Response(500, text="error"),
        httpx.Response(200, text=""),
        httpx.Response(200, text="<form></form>"),
    ],
)
def test_nonce_missing_returns_null(upstream):
    recorder = Recorder({"/subscription/form": upstream})

    resp = make_client(recorder).get("/email-list", params={"baseUrl": LISTMONK})

    assert resp.status_code == 200
    assert resp.json() == {"nonce": None}


def test_nonce_transport_error_is_500():
    recorder = Recorder({"/subscription/form": httpx.ConnectError("refused")})

    resp = make_client(recorder).get("/email-list", params={"baseUrl": LISTMONK})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch nonce"}


def test_nonce_requires_base_url():
    resp = make_client(Recorder({})).get("/email-list")

    assert resp.status_code == 400
    assert resp.json() == {"error": "baseUrl parameter is required"}


@pytest.mark.parametrize(
    "html",
    [
        '<input name="nonce" value="n1">',
        '<INPUT type="hidden" NAME="nonce" id="x" VALUE="n1">',
        "<input name='nonce' value='n1'>",
    ],
)
def test_extract_nonce_layouts(html):
    assert extract_nonce(html) == "n1"
