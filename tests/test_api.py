"""
HTTP surface: transfer lifecycle, uploads, events, downloads.
"""
import json
from datetime import timedelta
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from api.events.controllers.events_controller import stream_events
from api.transfers.dto.transfer import FileMeta
from api.transfers.repositories.expiring_store import ExpiringTransferStore
from api.transfers.repositories.transfer_store import MemoryTransferStore
from config import PDF_MIME, XLSX_MIME
from dependencies import build_services
from errors import StorageError
from main import create_app


def upload(client, transfer_id, name, data, mimetype=PDF_MIME):
    return client.post(f"/upload/{transfer_id}", files={"file": (name, data, mimetype)})


def create(client) -> str:
    response = client.post("/transfers")
    assert response.status_code == 201
    return response.json()["transferId"]


def sse_events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestTransferLifecycle:

    def test_create_returns_id_and_ttl(self, client):
        response = client.post("/transfers")

        assert response.status_code == 201
        body = response.json()
        assert body["transferId"]
        assert body["expiresInSec"] == 1800

    def test_phone_session(self, client):
        transfer_id = create(client)

        assert upload(client, transfer_id, "a.pdf", b"%" * 10240).status_code == 204
        assert upload(client, transfer_id, "b.xlsx", b"x" * 20480, XLSX_MIME).status_code == 204
        assert client.post(f"/complete/{transfer_id}").status_code == 204

        response = client.get(f"/transfer/{transfer_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["transferId"] == transfer_id
        assert body["status"] == "closed"
        assert [(f["name"], f["size"], f["mimetype"]) for f in body["files"]] == [
            ("a.pdf", 10240, PDF_MIME),
            ("b.xlsx", 20480, XLSX_MIME),
        ]
        assert all("uploadedAt" in f for f in body["files"])

    def test_get_unknown_is_404(self, client):
        assert client.get("/transfer/unknown").status_code == 404

    def test_malformed_id_is_422(self, client):
        assert client.get(f"/transfer/{'a' * 129}").status_code == 422

    @pytest.mark.parametrize("method,path", [
        ("post", "/complete/unknown"),
        ("post", "/cancel/unknown"),
        ("delete", "/delete-all/unknown"),
    ])
    def test_actions_on_unknown_are_404(self, client, method, path):
        assert getattr(client, method)(path).status_code == 404

    def test_second_terminal_transition_is_409(self, client):
        transfer_id = create(client)
        assert client.post(f"/cancel/{transfer_id}").status_code == 204

        assert client.post(f"/complete/{transfer_id}").status_code == 409
        assert client.post(f"/cancel/{transfer_id}").status_code == 409
        assert client.get(f"/transfer/{transfer_id}").json()["status"] == "cancelled"

    def test_delete_all_clears_files(self, client):
        transfer_id = create(client)
        upload(client, transfer_id, "a.pdf", b"%PDF")

        assert client.delete(f"/delete-all/{transfer_id}").status_code == 204

        body = client.get(f"/transfer/{transfer_id}").json()
        assert body["files"] == []
        assert body["status"] == "open"
        assert client.get(f"/files/{transfer_id}/a.pdf").status_code == 404

    def test_files_endpoint_creates_unknown_transfer(self, client):
        response = client.get("/transfers/desktop-first/files")

        assert response.status_code == 200
        assert response.json()["status"] == "open"
        assert response.json()["files"] == []
        assert client.get("/transfer/desktop-first").status_code == 200


class TestUpload:

    def test_upload_to_closed_transfer_is_410(self, client):
        transfer_id = create(client)
        client.post(f"/complete/{transfer_id}")

        assert upload(client, transfer_id, "late.pdf", b"%PDF").status_code == 410
        assert client.get(f"/transfer/{transfer_id}").json()["files"] == []

    def test_upload_to_unknown_transfer_is_410(self, client):
        assert upload(client, "never-created", "a.pdf", b"%PDF").status_code == 410
        assert client.get("/transfer/never-created").status_code == 404

    def test_missing_file_is_400(self, client):
        transfer_id = create(client)
        response = client.post(f"/upload/{transfer_id}", data={"note": "nothing"})
        assert response.status_code == 400

    def test_disallowed_type_is_415(self, client):
        transfer_id = create(client)
        assert upload(client, transfer_id, "a.png", b"\x89PNG", "image/png").status_code == 415
        assert client.get(f"/transfer/{transfer_id}").json()["files"] == []

    def test_oversized_file_is_413(self, settings):
        settings.max_file_size = 1024
        with TestClient(create_app(settings)) as client:
            transfer_id = create(client)
            assert upload(client, transfer_id, "big.pdf", b"%" * 2048).status_code == 413
            assert client.get(f"/transfer/{transfer_id}").json()["files"] == []

    def test_lenient_upload_creates_transfer(self, settings):
        settings.lenient_uploads = True
        with TestClient(create_app(settings)) as client:
            assert upload(client, "phone-first", "a.pdf", b"%PDF").status_code == 204
            body = client.get("/transfer/phone-first").json()
            assert [f["name"] for f in body["files"]] == ["a.pdf"]

    def test_download_returns_bytes(self, client):
        transfer_id = create(client)
        upload(client, transfer_id, "a.pdf", b"%PDF-1.4 body")

        response = client.get(f"/files/{transfer_id}/a.pdf")

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 body"
        assert response.headers["content-type"] == PDF_MIME
        assert client.get(f"/files/{transfer_id}/other.pdf").status_code == 404

    def test_download_non_latin_filename(self, client):
        transfer_id = create(client)
        assert upload(client, transfer_id, "报告.pdf", b"%PDF-1.4").status_code == 204

        response = client.get(f"/files/{transfer_id}/报告.pdf")

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4"
        assert "filename*=utf-8''" in response.headers["content-disposition"]
        assert quote("报告.pdf") in response.headers["content-disposition"]


class TestEvents:

    def test_finished_transfer_streams_snapshot_then_ends(self, client):
        transfer_id = create(client)
        client.post(f"/complete/{transfer_id}")

        response = client.get(f"/events/{transfer_id}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert sse_events(response.text) == [{"type": "status", "status": "closed"}]

    def test_unknown_transfer_stream_is_empty(self, client):
        response = client.get("/events/unknown")

        assert response.status_code == 200
        assert sse_events(response.text) == []

    async def test_open_stream_heartbeats_then_follows_session(self, settings):
        settings.sse_heartbeat = 0.05
        services = build_services(settings)
        try:
            transfer_id = await services.sessions.create()
            response = await stream_events(transfer_id, services)
            frames = response.body_iterator

            assert sse_events(await anext(frames)) == [{"type": "status", "status": "open"}]
            assert await anext(frames) == ": keep-alive\n\n"

            await services.registry.add_file(
                transfer_id, FileMeta(name="a.pdf", size=10240, mimetype=PDF_MIME)
            )
            await services.sessions.complete(transfer_id)
            rest = [frame async for frame in frames if not frame.startswith(":")]

            events = sse_events("".join(rest))
            assert [e["type"] for e in events] == ["file", "status", "closed"]
            assert events[0]["file"]["name"] == "a.pdf"
            assert events[1]["status"] == "closed"
            assert services.broadcaster.subscriber_count(transfer_id) == 0
        finally:
            await services.close()


class TestExpiry:

    def test_transfer_disappears_after_ttl(self, settings, clock):
        store = ExpiringTransferStore(MemoryTransferStore(clock=clock), ttl=timedelta(minutes=30))
        with TestClient(create_app(settings, store=store)) as client:
            transfer_id = create(client)
            assert client.get(f"/transfer/{transfer_id}").status_code == 200

            clock.advance(minutes=31)

            assert client.get(f"/transfer/{transfer_id}").status_code == 404
            assert upload(client, transfer_id, "a.pdf", b"%PDF").status_code == 410


class FailingStore(MemoryTransferStore):
    async def get(self, transfer_id):
        raise StorageError("backend unavailable")


class TestStorageFailure:

    def test_storage_error_is_500(self, settings):
        with TestClient(create_app(settings, store=FailingStore())) as client:
            response = client.get("/transfer/anything")

        assert response.status_code == 500
        assert response.json()["error"] == "storage_failure"
