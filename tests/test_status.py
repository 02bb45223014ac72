"""Tests for `POST /status`: lookup signing and success/failure redirects."""

import hashlib

import httpx
import pytest


SUCCESS_URL = "https://shop.example.com/success"
FAILURE_URL = "https://shop.example.com/failure"


def test_success_flag_redirects_to_success_url(client, gateway):
    gateway.respond(json={"success": True, "code": "PAYMENT_SUCCESS"})
    resp = client.post("/status", params={"id": "MT42"}, follow_redirects=False)

    assert resp.status_code == 302
    assert resp.headers["location"] == SUCCESS_URL


def test_status_request_is_signed(client, gateway):
    gateway.respond(json={"success": True})
    client.post("/status", params={"id": "MT42"}, follow_redirects=False)

    request = gateway.requests[-1]
    assert request.method == "GET"
    assert str(request.url) == "https://api-preprod.phonepe.com/apis/pg-sandbox/pg/v1/status/M/MT42"
    expected = hashlib.sha256(b"/pg/v1/status/M/MT42S").hexdigest() + "###1"
    assert request.headers["X-VERIFY"] == expected
    assert request.headers["X-MERCHANT-ID"] == "M"


@pytest.mark.parametrize(
    "body",
    [
        {"success": False, "code": "PAYMENT_ERROR"},
        {"success": "true", "code": "PAYMENT_SUCCESS"},
        {"code": "PAYMENT_PENDING"},
    ],
)
def test_anything_but_true_redirects_to_failure_url(client, gateway, body):
    gateway.respond(json=body)
    resp = client.post("/status", params={"id": "MT42"}, follow_redirects=False)
    assert resp.headers["location"] == FAILURE_URL


def test_transaction_id_from_gateway_form_post(client, gateway):
    """Callback scheme: the gateway posts the id as a form field."""

    gateway.respond(json={"success": True})
    resp = client.post(
        "/status",
        data={"code": "PAYMENT_SUCCESS", "merchantId": "M", "transactionId": "MT77"},
        follow_redirects=False,
    )
    assert resp.headers["location"] == SUCCESS_URL
    assert str(gateway.requests[-1].url).endswith("/pg/v1/status/M/MT77")


def test_transaction_id_from_json_body(client, gateway):
    gateway.respond(json={"success": True})
    client.post("/status", json={"transactionId": "MT88"}, follow_redirects=False)
    assert str(gateway.requests[-1].url).endswith("/pg/v1/status/M/MT88")


def test_query_id_wins_over_body(client, gateway):
    gateway.respond(json={"success": True})
    client.post("/status", params={"id": "MTQ"}, data={"transactionId": "MTB"}, follow_redirects=False)
    assert str(gateway.requests[-1].url).endswith("/MTQ")


@pytest.mark.parametrize("params", [{}, {"id": ""}, {"id": "../../pay"}])
def test_missing_or_malformed_id_redirects_without_lookup(client, gateway, params):
    resp = client.post("/status", params=params, follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == FAILURE_URL
    assert gateway.requests == []


@pytest.mark.parametrize(
    "exc",
    [httpx.ConnectError("connection refused"), httpx.ReadTimeout("timed out")],
)
def test_network_failure_redirects_to_failure_url(client, gateway, exc):
    gateway.fail(exc)
    resp = client.post("/status", params={"id": "MT42"}, follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == FAILURE_URL


def test_unparseable_gateway_body_redirects_to_failure_url(client, gateway):
    gateway.respond(200, text="not json")
    resp = client.post("/status", params={"id": "MT42"}, follow_redirects=False)
    assert resp.headers["location"] == FAILURE_URL


def test_gateway_http_error_redirects_to_failure_url(client, gateway):
    gateway.respond(401, json={"success": True, "code": "UNAUTHORIZED"})
    resp = client.post("/status", params={"id": "MT42"}, follow_redirects=False)
    assert resp.headers["location"] == FAILURE_URL
