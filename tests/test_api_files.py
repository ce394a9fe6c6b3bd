"""
Tests for the Cloud Storage endpoints (in-memory bucket).

The test settings cap uploads at 1024 bytes and 2 files per request.
"""

import json

API = "/api/v1"
STORAGE = f"{API}/storage"


def _upload(client, path: str, content: bytes = b"hello", **form) -> dict:
    response = client.post(
        f"{STORAGE}/upload",
        files={"file": (path.rsplit("/", 1)[-1], content, "text/plain")},
        data={"path": path, **form},
    )
    assert response.status_code == 201
    return response.json()["data"]


class TestUpload:
    """Tests for POST /storage/upload and /storage/upload-multiple."""

    def test_upload_generates_path(self, client) -> None:
        response = client.post(
            f"{STORAGE}/upload", files={"file": ("hello.txt", b"hello", "text/plain")}
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"].startswith("uploads/")
        assert data["name"].endswith("_hello.txt")
        assert data["originalName"] == "hello.txt"
        assert data["size"] == 5
        assert data["contentType"] == "text/plain"
        assert data["downloadUrl"]

    def test_upload_to_explicit_path_with_metadata(self, client) -> None:
        _upload(client, "docs/readme.txt", metadata=json.dumps({"owner": "ada"}))

        info = client.get(f"{STORAGE}/files/docs/readme.txt/info").json()["data"]
        assert info["customMetadata"]["owner"] == "ada"
        assert info["customMetadata"]["originalName"] == "readme.txt"

    def test_too_large_is_413(self, client) -> None:
        response = client.post(
            f"{STORAGE}/upload", files={"file": ("big.bin", b"x" * 2048, "application/octet-stream")}
        )

        assert response.status_code == 413
        error = response.json()["error"]
        assert error["code"] == "file-upload-error"
        assert error["message"] == "File too large"

    def test_no_file_is_400(self, client) -> None:
        response = client.post(f"{STORAGE}/upload", data={"path": "docs/a.txt"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "file-upload-error"
        assert error["message"] == "No file uploaded"

    def test_invalid_metadata_is_invalid_json(self, client) -> None:
        response = client.post(
            f"{STORAGE}/upload",
            files={"file": ("a.txt", b"a", "text/plain")},
            data={"metadata": "{owner"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid-json"

    def test_upload_multiple(self, client) -> None:
        response = client.post(
            f"{STORAGE}/upload-multiple",
            files=[
                ("files", ("a.txt", b"a", "text/plain")),
                ("files", ("b.txt", b"bb", "text/plain")),
            ],
            data={"directory": "batch"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["count"] == 2
        assert all(f["name"].startswith("batch/") for f in data["files"])
        assert sorted(f["size"] for f in data["files"]) == [1, 2]

    def test_too_many_files_is_413(self, client) -> None:
        response = client.post(
            f"{STORAGE}/upload-multiple",
            files=[("files", (f"{i}.txt", b"x", "text/plain")) for i in range(3)],
        )

        assert response.status_code == 413
        assert response.json()["error"]["message"] == "Too many files"

    def test_rejected_upload_stores_nothing(self, client) -> None:
        client.post(
            f"{STORAGE}/upload-multiple",
            files=[
                ("files", ("small.txt", b"x", "text/plain")),
                ("files", ("big.txt", b"x" * 2048, "text/plain")),
            ],
        )
        assert client.get(f"{STORAGE}/files").json()["data"]["count"] == 0


class TestFiles:
    def test_list_files_by_directory(self, client) -> None:
        _upload(client, "docs/a.txt")
        _upload(client, "docs/b.txt")
        _upload(client, "img/c.txt")

        data = client.get(f"{STORAGE}/files", params={"directory": "docs/"}).json()["data"]
        assert data["count"] == 2
        assert [f["name"] for f in data["files"]] == ["docs/a.txt", "docs/b.txt"]

    def test_info_includes_short_lived_url(self, client) -> None:
        _upload(client, "docs/a.txt")
        data = client.get(f"{STORAGE}/files/docs/a.txt/info").json()["data"]

        assert data["name"] == "docs/a.txt"
        assert data["size"] == 5
        assert data["md5Hash"]
        assert "expires=900" in data["downloadUrl"]

    def test_download_url(self, client) -> None:
        _upload(client, "docs/a.txt")
        response = client.get(
            f"{STORAGE}/files/docs/a.txt/download", params={"expires": 60}
        )

        data = response.json()["data"]
        assert data["filePath"] == "docs/a.txt"
        assert data["expiresIn"] == "60 seconds"
        assert "expires=60" in data["downloadUrl"]

    def test_missing_file_is_404(self, client) -> None:
        response = client.get(f"{STORAGE}/files/nope.txt/info")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "file-not-found"
        assert error["message"] == "File not found"

    def test_delete_file(self, client) -> None:
        _upload(client, "docs/a.txt")
        response = client.delete(f"{STORAGE}/files/docs/a.txt")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == "docs/a.txt"
        assert client.get(f"{STORAGE}/files/docs/a.txt/info").status_code == 404

    def test_delete_missing_file(self, client) -> None:
        response = client.delete(f"{STORAGE}/files/ghost.txt")
        assert response.status_code == 404
