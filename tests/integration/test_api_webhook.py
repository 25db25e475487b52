"""API tests for the inbound webhook endpoint."""

import hashlib
import hmac

from eventgate.config import settings

BODY = b'{"type": "subscription.updated",  "data": {"plan": "pro"}}'


def _signature(body: bytes) -> str:
    return hmac.new(settings.WEBHOOK_SECRET_KEY.encode(), body, hashlib.sha256).hexdigest()


class TestWebhook:
    async def test_valid_signature(self, test_client):
        resp = await test_client.post(
            "/api/webhook",
            content=BODY,
            headers={"X-Hub-Signature": _signature(BODY), "Content-Type": "application/json"},
        )
        assert resp.status_code == 202
        assert resp.json() == {"message": "Webhook accepted"}

    async def test_invalid_signature(self, test_client):
        resp = await test_client.post(
            "/api/webhook",
            content=BODY,
            headers={"X-Hub-Signature": "00" * 32},
        )
        assert resp.status_code == 403

    async def test_missing_signature(self, test_client):
        resp = await test_client.post("/api/webhook", content=BODY)
        assert resp.status_code == 403

    async def test_signature_over_reencoded_body_rejected(self, test_client):
        reencoded = b'{"type":"subscription.updated","data":{"plan":"pro"}}'
        resp = await test_client.post(
            "/api/webhook",
            content=BODY,
            headers={"X-Hub-Signature": _signature(reencoded)},
        )
        assert resp.status_code == 403

    async def test_signed_non_json_body(self, test_client):
        body = b"plain text"
        resp = await test_client.post(
            "/api/webhook", content=body, headers={"X-Hub-Signature": _signature(body)}
        )
        assert resp.status_code == 400
