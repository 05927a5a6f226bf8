"""HTTP contract of POST /api/service/upload and GET /health."""
from __future__ import annotations

import json

INI_BODY = b"[General]\nfov=90\nsensitivity=1.5\n"


def _ini(name: str = "cfg.ini", data: bytes = INI_BODY):
    return {"file": (name, data, "text/plain")}


def test_upload_is_acknowledged_before_delivery(make_client, upstream):
    with make_client() as client:
        r = client.post("/api/service/upload", files=_ini(), data={"content": "Test config upload"})
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["message"] == "Config queued for upload"
        assert "queueTime" in body

    (call,) = upstream.webhook_calls
    assert call.kind == "multipart"
    assert call.content == "Test config upload"
    assert call.file == ("cfg.ini", INI_BODY)


def test_file_then_text_are_delivered_in_order(make_client, upstream):
    with make_client() as client:
        a = client.post("/api/service/upload", files=_ini())
        b = client.post("/api/service/upload", data={"content": "hello"})
        assert a.status_code == b.status_code == 200

    first, second = upstream.webhook_calls
    assert first.kind == "multipart"
    assert first.content == "📁 New config uploaded: cfg.ini"
    assert second.kind == "json"
    assert second.content == "hello"


def test_many_uploads_keep_submission_order(make_client, upstream):
    with make_client() as client:
        for i in range(10):
            assert client.post("/api/service/upload", data={"content": f"msg {i}"}).status_code == 200

    assert [c.content for c in upstream.webhook_calls] == [f"msg {i}" for i in range(10)]


def test_text_upload_with_embed_uses_json_embeds(make_client, upstream):
    embed = {"title": "Config Upload Test", "description": "Testing", "color": 15252473}
    with make_client() as client:
        r = client.post(
            "/api/service/upload",
            data={"content": "with embed", "embeds": json.dumps([embed])},
        )
        assert r.status_code == 200

    (call,) = upstream.webhook_calls
    assert call.kind == "json"
    assert call.embeds == [embed]


def test_missing_webhook_is_a_server_error_and_nothing_is_queued(make_client, upstream):
    with make_client(CLOUD_WEBHOOK=None) as client:
        r = client.post("/api/service/upload", files=_ini("a.txt"))
        assert r.status_code == 500
        assert r.json() == {"error": "Webhook not configured"}
        assert client.get("/health").json()["queue"]["enqueued"] == 0

    assert upstream.webhook_calls == []
    assert upstream.store_calls() == []


def test_overlong_content_is_rejected(client, upstream):
    r = client.post("/api/service/upload", data={"content": "x" * 3000})
    assert r.status_code == 400
    assert r.json() == {"error": "Content too long"}


def test_wrong_extension_is_rejected(client):
    r = client.post("/api/service/upload", files=_ini("notes.txt"))
    assert r.status_code == 400
    assert r.json() == {"error": "Only .ini files are allowed"}


def test_oversized_file_is_rejected_before_any_outbound_call(make_client, upstream):
    with make_client() as client:
        r = client.post("/api/service/upload", files=_ini(data=b"a" * (1024 * 1024 + 1)))
        assert r.status_code == 400
        assert r.json() == {"error": "File too large"}

    assert upstream.webhook_calls == []
    assert upstream.store_calls() == []


def test_multiple_embeds_are_rejected(client):
    r = client.post(
        "/api/service/upload",
        data={"content": "x", "embeds": json.dumps([{"title": "a"}, {"title": "b"}])},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid embeds format"}


def test_stored_upload_forwards_metadata(make_client, upstream):
    with make_client() as client:
        r = client.post(
            "/api/service/upload",
            files=_ini(),
            data={"name": "My cfg", "author": "tester", "tags": "aim,legit"},
        )
        assert r.status_code == 200

    (form,) = upstream.stored_forms
    assert form["name"] == (None, b"My cfg")
    assert form["author"] == (None, b"tester")
    assert form["tags"] == (None, b"aim,legit")
    assert len(upstream.webhook_calls) == 1


def test_storage_down_still_relays_to_discord(make_client, upstream):
    upstream.storage_up = False
    with make_client() as client:
        r = client.post("/api/service/upload", files=_ini())
        assert r.status_code == 200

    # startup probe only; no store attempt while known down
    assert upstream.storage_calls == [("GET", "/health")]
    assert len(upstream.webhook_calls) == 1


def test_storage_disabled_skips_storage_entirely(make_client, upstream):
    with make_client(STORAGE_ENABLED=False) as client:
        assert client.post("/api/service/upload", files=_ini()).status_code == 200
        assert client.get("/health").json()["storage"] is None

    assert upstream.storage_calls == []
    assert len(upstream.webhook_calls) == 1


def test_required_storage_rejects_upload_while_down(make_client, upstream):
    upstream.storage_up = False
    with make_client(STORAGE_REQUIRED=True) as client:
        r = client.post("/api/service/upload", files=_ini())
        assert r.status_code == 503
        assert r.json() == {"error": "Storage API unavailable"}

    assert upstream.webhook_calls == []


def test_webhook_rejection_does_not_affect_acknowledgement(make_client, upstream):
    upstream.webhook_status = 400
    upstream.webhook_body = '{"message": "Cannot send an empty message"}'
    with make_client() as client:
        assert client.post("/api/service/upload", data={"content": "one"}).status_code == 200
        assert client.post("/api/service/upload", data={"content": "two"}).status_code == 200

    assert [c.content for c in upstream.webhook_calls] == ["one", "two"]


def test_health_reports_queue_and_storage(make_client, upstream):
    with make_client() as client:
        client.post("/api/service/upload", data={"content": "hi"})
        body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["queue"]["enqueued"] == 1
    assert body["storage"]["available"] is True
    assert body["storage"]["baseUrl"] == "http://storage.test"


def test_plain_text_storage_health_does_not_block_startup(make_client, upstream):
    upstream.health_text = "OK"
    with make_client() as client:
        assert client.get("/health").json()["storage"]["available"] is True
        assert client.post("/api/service/upload", files=_ini()).status_code == 200

    assert len(upstream.webhook_calls) == 1


def test_non_json_store_reply_falls_back_to_discord_only(make_client, upstream):
    upstream.store_text = "stored"
    with make_client() as client:
        r = client.post("/api/service/upload", files=_ini())
        assert r.status_code == 200
        assert r.json()["message"] == "Config queued for upload"

    assert len(upstream.store_calls()) == 1
    (call,) = upstream.webhook_calls
    assert call.file == ("cfg.ini", INI_BODY)
