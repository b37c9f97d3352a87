"""Project document tests — multipart upload, listing, limits.

Learn: The test app stores uploads under pytest's tmp_path with a 1 KiB
limit (see conftest.test_settings), so the size check is cheap to hit.
"""

from pathlib import Path

import pytest


@pytest.fixture()
async def setup(client, make_user):
    a = await make_user("owner@example.com")
    b = await make_user("member@example.com")
    c = await make_user("stranger@example.com")
    r = await client.post(
        "/api/projects",
        json={"name": "Paperwork", "memberEmails": [b["email"]]},
        headers=a["headers"],
    )
    return {"a": a, "b": b, "c": c, "project_id": r.json()["id"]}


def _files(*names, size=16):
    return [("files", (name, b"x" * size, "text/plain")) for name in names]


@pytest.mark.asyncio
async def test_member_uploads_and_owner_lists(client, setup, test_settings):
    url = f"/api/projects/{setup['project_id']}/documents"

    r = await client.post(url, files=_files("brief.txt", "notes.md"), headers=setup["b"]["headers"])
    assert r.status_code == 201, r.text
    docs = r.json()
    assert [d["name"] for d in docs] == ["brief.txt", "notes.md"]
    assert docs[0]["sizeBytes"] == 16
    assert docs[0]["uploadedBy"] == setup["b"]["id"]
    assert docs[0]["contentType"] == "text/plain"
    assert "filePath" not in docs[0]

    r = await client.get(url, headers=setup["a"]["headers"])
    assert r.status_code == 200
    assert sorted(d["name"] for d in r.json()) == ["brief.txt", "notes.md"]

    stored = sorted(p.suffix for p in Path(test_settings.upload_dir).iterdir())
    assert stored == [".md", ".txt"]


@pytest.mark.asyncio
async def test_stranger_cannot_upload_or_list(client, setup):
    url = f"/api/projects/{setup['project_id']}/documents"
    r = await client.post(url, files=_files("evil.txt"), headers=setup["c"]["headers"])
    assert r.status_code == 403
    r = await client.get(url, headers=setup["c"]["headers"])
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_oversized_upload(client, setup):
    url = f"/api/projects/{setup['project_id']}/documents"
    r = await client.post(url, files=_files("big.bin", size=2048), headers=setup["a"]["headers"])
    assert r.status_code == 413
    assert r.json()["error"] == "payload_too_large"

    r = await client.get(url, headers=setup["a"]["headers"])
    assert r.json() == []


@pytest.mark.asyncio
async def test_failed_batch_leaves_no_files(client, setup, test_settings):
    url = f"/api/projects/{setup['project_id']}/documents"
    files = _files("ok.txt") + _files("big.txt", size=4096)

    r = await client.post(url, files=files, headers=setup["a"]["headers"])
    assert r.status_code == 413

    r = await client.get(url, headers=setup["a"]["headers"])
    assert r.json() == []
    upload_dir = Path(test_settings.upload_dir)
    assert not upload_dir.exists() or list(upload_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_upload_requires_files(client, setup):
    url = f"/api/projects/{setup['project_id']}/documents"
    r = await client.post(url, headers=setup["a"]["headers"])
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_delete_project_removes_stored_files(client, setup, test_settings):
    pid = setup["project_id"]
    await client.post(
        f"/api/projects/{pid}/documents", files=_files("a.txt"), headers=setup["a"]["headers"]
    )
    upload_dir = Path(test_settings.upload_dir)
    assert len(list(upload_dir.iterdir())) == 1

    r = await client.delete(f"/api/projects/{pid}", headers=setup["a"]["headers"])
    assert r.status_code == 200
    assert list(upload_dir.iterdir()) == []
