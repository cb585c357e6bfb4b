"""Integration tests for POST /transaction."""

from infrastructure.upstream.protocol import ForwardedResponse, UpstreamConnectionError

RAW_KEY = "kazadi-sk-test0123456789abcdefWXYZ"

UNAUTHORIZED = {"error": "Invalid API credentials", "code": "unauthorized"}


def _issue_and_reveal(client) -> dict:
    client.post(
        "/keys",
        json={"ownerId": "U1", "label": "CI key", "clientSecret": "abc123"},
    )
    return client.post("/keys/reveal", json={"keyId": "key_001"}).json()


def _headers(api_key=RAW_KEY, secret="abc123", **extra) -> dict:
    headers = {"x-api-key": api_key, "x-client-secret": secret}
    headers.update(extra)
    return headers


class TestTransactionProxy:
    def test_full_lifecycle(self, client, repo, upstream):
        revealed = _issue_and_reveal(client)

        resp = client.post(
            "/transaction",
            json={"amount": 1000, "currency": "CAD"},
            headers=_headers(revealed["apiKey"], revealed["secret"]),
        )
        assert resp.status_code == 200
        assert resp.json() == {"status": "approved"}
        assert repo.docs["key_001"].request_count == 1

        client.post("/keys/key_001/revoke", params={"ownerId": "U1"})
        resp = client.post("/transaction", json={}, headers=_headers())
        assert resp.status_code == 401
        assert len(upstream.calls_named("forward_transaction")) == 1
        assert repo.docs["key_001"].request_count == 1

    def test_wrong_secret(self, client, upstream):
        _issue_and_reveal(client)
        resp = client.post("/transaction", json={}, headers=_headers(secret="abc124"))
        assert resp.status_code == 401
        assert resp.json() == UNAUTHORIZED
        assert upstream.calls_named("forward_transaction") == []

    def test_missing_headers(self, client):
        resp = client.post("/transaction", json={})
        assert resp.status_code == 401
        assert resp.json() == UNAUTHORIZED

    def test_unknown_key(self, client):
        resp = client.post("/transaction", json={}, headers=_headers(api_key="kazadi-sk-zzz"))
        assert resp.json() == UNAUTHORIZED

    def test_expired_key(self, client, repo, clock):
        _issue_and_reveal(client)
        clock.advance(hours=1, seconds=1)
        resp = client.post("/transaction", json={}, headers=_headers())
        assert resp.status_code == 401
        assert repo.docs["key_001"].status == "expired"

    def test_lookup_failure_fails_closed(self, client, repo):
        _issue_and_reveal(client)
        repo.fail_lookup = True
        resp = client.post("/transaction", json={}, headers=_headers())
        assert resp.status_code == 401

    def test_upstream_error_relayed_verbatim(self, client, upstream):
        _issue_and_reveal(client)
        upstream.forward_result = ForwardedResponse(
            status=402, content_type="text/plain", body=b"card declined"
        )
        resp = client.post("/transaction", json={"amount": 1}, headers=_headers())
        assert resp.status_code == 402
        assert resp.text == "card declined"
        assert resp.headers["content-type"] == "text/plain"

    def test_upstream_content_type_parameters_kept(self, client, upstream):
        _issue_and_reveal(client)
        upstream.forward_result = ForwardedResponse(
            status=200, content_type="application/json; charset=iso-8859-1", body=b"{}"
        )
        resp = client.post("/transaction", json={}, headers=_headers())
        assert resp.headers["content-type"] == "application/json; charset=iso-8859-1"

    def test_correlation_headers_passed_through(self, client, upstream):
        _issue_and_reveal(client)
        client.post(
            "/transaction",
            content=b'{"amount":5}',
            headers=_headers(**{"x-request-id": "req-1", "x-idempotency-key": "idem-1"}),
        )
        (_, body, request_id, idem), = upstream.calls_named("forward_transaction")
        assert body == b'{"amount":5}'
        assert request_id == "req-1"
        assert idem == "idem-1"

    def test_upstream_unreachable_is_generic_500(self, client, upstream):
        _issue_and_reveal(client)
        upstream.forward_error = UpstreamConnectionError("SecurePay API unreachable")
        resp = client.post("/transaction", json={}, headers=_headers())
        assert resp.status_code == 500
        assert resp.json() == {
            "error": "An internal server error occurred.",
            "code": "internal_error",
        }

    def test_usage_failure_does_not_affect_response(self, client, repo):
        _issue_and_reveal(client)
        repo.fail_usage = True
        resp = client.post("/transaction", json={}, headers=_headers())
        assert resp.status_code == 200
        assert repo.usage_calls == ["key_001"]
