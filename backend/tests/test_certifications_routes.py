from __future__ import annotations

from fastapi.testclient import TestClient

from app.models.certification import Certification
from app.services.object_store import S3ObjectStore

UPLOAD_URL = "/api/v1/upload-certificates"
PNG = b"\x89PNG\r\n\x1a\nfake-png"
JPG = b"\xff\xd8\xff\xe0fake-jpg"


def _upload(client, *files, data=None, params=None):
    return client.post(
        UPLOAD_URL,
        files=[("files", f) for f in files],
        data=data or {},
        params=params or {},
    )


def _fail_records_for(app, monkeypatch, original_name: str):
    repo = app.state.certification_service.coordinator.repository
    real_create = repo.create

    def create(certification):
        if certification.original_name == original_name:
            raise RuntimeError("simulated database failure")
        return real_create(certification)

    monkeypatch.setattr(repo, "create", create)


def test_mixed_batch_returns_207_and_cleans_up(app, client, upload_dir, monkeypatch):
    _fail_records_for(app, monkeypatch, "broken.jpg")

    res = _upload(
        client,
        ("aws.png", PNG, "image/png"),
        ("virus.exe", b"MZ", "application/octet-stream"),
        ("broken.jpg", JPG, "image/jpeg"),
    )

    assert res.status_code == 207
    body = res.json()
    assert body["message"] == "Files upload completed"
    assert body["status"] == "partial"
    assert (body["total"], body["successful"], body["failed"]) == (3, 1, 2)

    [stored] = body["files"]
    assert stored["original_name"] == "aws.png"
    assert stored["title"] == "aws.png"
    assert stored["issuer"] == "N/A"
    assert stored["file_url"] == f"http://testserver/certifications/{stored['file_name']}"

    errors = {e["original"]: e["error"] for e in body["errors"]}
    assert errors["virus.exe"] == "invalid file type: only JPG, JPEG, PNG, and WEBP images are allowed"
    assert "simulated database failure" in errors["broken.jpg"]

    # Only the successful upload is left on disk.
    assert sorted(p.name for p in upload_dir.iterdir()) == [stored["file_name"]]
    assert (upload_dir / stored["file_name"]).read_bytes() == PNG


def test_all_valid_returns_200(client, upload_dir):
    res = _upload(
        client,
        ("one.png", PNG, "image/png"),
        ("two.webp", b"RIFFfake-webp", "image/webp"),
        data={"issuer": "Coursera", "issue_date": "01/02/2024", "title": "Deep Learning"},
        params={"workers": 2},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "success"
    assert body["successful"] == 2
    assert body["errors"] == []
    for f in body["files"]:
        assert f["issuer"] == "Coursera"
        assert f["title"] == "Deep Learning"
        assert f["issue_date"] == "2024-02-01"
    assert len(list(upload_dir.iterdir())) == 2


def test_all_invalid_returns_500(client, upload_dir):
    res = _upload(client, ("a.gif", b"GIF89a", "image/gif"), ("b.pdf", b"%PDF", "application/pdf"))

    assert res.status_code == 500
    body = res.json()
    assert body["status"] == "failed"
    assert body["successful"] == 0
    assert body["files"] == []
    assert len(body["errors"]) == 2
    assert list(upload_dir.iterdir()) == []


def test_no_files_is_400(client):
    res = client.post(UPLOAD_URL, data={"title": "Nothing attached"})
    assert res.status_code == 400
    assert res.json() == {"error": "VALIDATION_ERROR", "message": "No files uploaded"}


def test_worker_hint_out_of_range_is_422(client):
    res = _upload(client, ("a.png", PNG, "image/png"), params={"workers": 21})
    assert res.status_code == 422


def test_upload_requires_authentication(anon_client, upload_dir):
    res = _upload(anon_client, ("a.png", PNG, "image/png"))
    assert res.status_code == 401
    assert res.json()["message"] == "Authentication required"
    assert list(upload_dir.iterdir()) == []


def test_upload_with_real_session_cookie(anon_client, login):
    assert login().status_code == 200
    res = _upload(anon_client, ("a.png", PNG, "image/png"))
    assert res.status_code == 200


def test_list_and_get_are_public_and_idempotent(client, anon_client):
    _upload(
        client,
        ("old.png", PNG, "image/png"),
        data={"issue_date": "2020-05-01"},
    )
    _upload(
        client,
        ("new.png", PNG, "image/png"),
        data={"issue_date": "2023-05-01"},
    )

    first = anon_client.get(UPLOAD_URL)
    second = anon_client.get(UPLOAD_URL)
    assert first.status_code == 200
    assert first.json() == second.json()
    assert [c["original_name"] for c in first.json()] == ["new.png", "old.png"]

    cert_id = first.json()[0]["id"]
    one = anon_client.get(f"{UPLOAD_URL}/{cert_id}")
    assert one.status_code == 200
    assert one.json() == anon_client.get(f"{UPLOAD_URL}/{cert_id}").json()
    assert one.json()["mime_type"] == "image/png"
    assert one.json()["file_size"] == len(PNG)


def test_get_missing_certification_is_404(anon_client):
    res = anon_client.get(f"{UPLOAD_URL}/4242")
    assert res.status_code == 404
    assert res.json()["error"] == "NOT_FOUND"


def test_patch_updates_metadata(client):
    created = _upload(client, ("a.png", PNG, "image/png"), data={"expiry_date": "2030-01-01"}).json()["files"][0]

    res = client.patch(
        f"{UPLOAD_URL}/{created['id']}",
        json={"title": "Renamed", "issue_date": "15-03-2024", "expiry_date": ""},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "Renamed"
    assert body["issue_date"] == "2024-03-15"
    assert body["expiry_date"] is None


def test_patch_rejects_bad_dates(client):
    created = _upload(client, ("a.png", PNG, "image/png")).json()["files"][0]

    bad = client.patch(f"{UPLOAD_URL}/{created['id']}", json={"issue_date": "someday"})
    assert bad.status_code == 400
    assert "unable to parse date" in bad.json()["message"]

    cleared = client.patch(f"{UPLOAD_URL}/{created['id']}", json={"issue_date": ""})
    assert cleared.status_code == 400


def test_patch_validates_credential_url(client):
    created = _upload(client, ("a.png", PNG, "image/png")).json()["files"][0]
    url = f"{UPLOAD_URL}/{created['id']}"

    assert client.patch(url, json={"credential_url": "http://exa mple.com/<script>"}).status_code == 422

    res = client.patch(url, json={"credential_url": "https://verify.example.com/ABC-123"})
    assert res.status_code == 200
    assert res.json()["credential_url"] == "https://verify.example.com/ABC-123"

    assert client.patch(url, json={"credential_url": ""}).json()["credential_url"] is None


def test_patch_missing_is_404(client):
    res = client.patch(f"{UPLOAD_URL}/999", json={"title": "x"})
    assert res.status_code == 404


def test_delete_removes_file_and_hides_record(client, db_session, upload_dir):
    created = _upload(client, ("a.png", PNG, "image/png")).json()["files"][0]
    assert (upload_dir / created["file_name"]).exists()

    res = client.delete(f"{UPLOAD_URL}/{created['id']}")
    assert res.status_code == 200
    assert res.json()["message"] == "Certification deleted successfully"

    assert not (upload_dir / created["file_name"]).exists()
    assert client.get(f"{UPLOAD_URL}/{created['id']}").status_code == 404
    assert client.get(UPLOAD_URL).json() == []

    # Tombstoned, not removed.
    row = db_session.query(Certification).filter(Certification.id == created["id"]).one()
    assert row.deleted_at is not None

    assert client.delete(f"{UPLOAD_URL}/{created['id']}").status_code == 404


def test_stored_file_is_served(client, anon_client):
    created = _upload(client, ("a.png", PNG, "image/png")).json()["files"][0]

    res = anon_client.get(f"/certifications/{created['file_name']}")
    assert res.status_code == 200
    assert res.content == PNG


def test_missing_stored_file_is_404(anon_client):
    res = anon_client.get("/certifications/does-not-exist.png")
    assert res.status_code == 404


def test_s3_store_redirects_to_presigned_url(database, db_session, fake_s3):
    import app.main as main

    s3_app = main.create_app(database=database, object_store=S3ObjectStore(fake_s3, "certs-bucket", "certifications"))

    with TestClient(s3_app, follow_redirects=False) as c:
        res = c.get("/certifications/123-abc.png")

    assert res.status_code in {302, 307}
    assert res.headers["location"].startswith("https://example.invalid/presigned/get_object")
    assert "key=certifications/123-abc.png" in res.headers["location"]


def test_delete_succeeds_when_file_removal_fails(app, client, db_session, upload_dir, monkeypatch, caplog):
    created = _upload(client, ("a.png", PNG, "image/png")).json()["files"][0]

    def read_only(name):
        raise PermissionError("read-only fs")

    monkeypatch.setattr(app.state.certification_service.store, "delete", read_only)

    res = client.delete(f"{UPLOAD_URL}/{created['id']}")

    assert res.status_code == 200
    assert res.json()["message"] == "Certification deleted successfully"
    assert client.get(f"{UPLOAD_URL}/{created['id']}").status_code == 404

    row = db_session.query(Certification).filter(Certification.id == created["id"]).one()
    assert row.deleted_at is not None
    # The file stays behind; only a warning is logged.
    assert (upload_dir / created["file_name"]).exists()
    assert any("Failed to delete stored file" in r.getMessage() for r in caplog.records)


def test_part_without_filename_counts_as_failure(client, upload_dir):
    boundary = "portfolio-boundary"
    body = (
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="files"; filename=""\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
        "\r\n"
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="files"; filename="a.png"\r\n'
        "Content-Type: image/png\r\n\r\n"
        "png-bytes\r\n"
        f"--{boundary}--\r\n"
    ).encode()

    res = client.post(
        UPLOAD_URL,
        content=body,
        headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
    )

    assert res.status_code == 207
    data = res.json()
    assert (data["total"], data["successful"], data["failed"]) == (2, 1, 1)
    assert data["errors"] == [
        {"original": "", "error": "invalid file type: only JPG, JPEG, PNG, and WEBP images are allowed"}
    ]
    assert len(list(upload_dir.iterdir())) == 1
