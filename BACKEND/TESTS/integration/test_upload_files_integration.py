# Руководство к файлу (TESTS/integration/test_upload_files_integration.py)
# Назначение:
# - Интеграционные тесты загрузки через веб-форму и публичной отдачи файлов,
#   а также системных эндпоинтов (/config, /health, /bing, /favicon.ico).

from __future__ import annotations

import httpx
import pytest

from BACKEND.DATABASE.CACHE_MANAGER.files import basename_of


pytestmark = pytest.mark.asyncio

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def _upload(http_client, name="cat.png", data=PNG, ctype="image/png", **form):
    return await http_client.post("/upload", files={"file": (name, data, ctype)}, data=form)


async def test_upload_page_renders(http_client):
    r = await http_client.get("/")
    assert r.status_code == 200
    assert "<form" in r.text


async def test_upload_and_serve_from_object_store(http_client, fake_s3):
    r = await _upload(http_client)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == 1
    assert body["url"].startswith("https://img.example.com/")
    key = basename_of(body["url"])
    assert key in fake_s3.objects

    r = await http_client.get(f"/{key}")
    assert r.status_code == 200
    assert r.content == PNG
    assert r.headers["content-type"] == "image/png"
    assert r.headers["cache-control"] == "public, max-age=31536000"
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["content-disposition"].startswith("inline")


async def test_upload_to_chat_store_and_serve(http_client, fake_tg, fake_s3):
    r = await _upload(http_client, name="notes.zip", data=b"PK\x03\x04zip", ctype="application/zip", storage_type="telegram")
    assert r.status_code == 200
    key = basename_of(r.json()["url"])
    assert fake_s3.objects == {}
    assert "sendDocument" in fake_tg.methods()

    r = await http_client.get(f"/{key}")
    assert r.status_code == 200
    assert r.content == b"PK\x03\x04zip"
    assert r.headers["content-type"] == "application/zip"
    assert r.headers["content-disposition"].startswith("attachment")


async def test_served_content_is_cached(http_client, fake_s3):
    key = basename_of((await _upload(http_client)).json()["url"])
    assert (await http_client.get(f"/{key}")).status_code == 200
    gets_before = len([c for c in fake_s3.calls if c.startswith("get:")])
    assert (await http_client.get(f"/{key}")).status_code == 200
    gets_after = len([c for c in fake_s3.calls if c.startswith("get:")])
    assert gets_after == gets_before


async def test_alias_paths_share_one_cache_entry(http_client, ctx):
    url = (await _upload(http_client)).json()["url"]
    assert (await http_client.get(f"/{basename_of(url)}")).status_code == 200
    assert (await http_client.get("/cat.png")).status_code == 200
    assert len(ctx.file_cache) == 1
    assert "cat.png" not in ctx.file_cache


async def test_deleted_file_is_not_served_from_cache(http_client):
    url = (await _upload(http_client)).json()["url"]
    key = basename_of(url)
    assert (await http_client.get(f"/{key}")).status_code == 200

    assert (await http_client.post("/delete", json={"id": url})).status_code == 200
    assert (await http_client.get(f"/{key}")).status_code == 404


async def test_deleted_file_is_not_served_by_original_name(http_client):
    url = (await _upload(http_client, name="cat.png")).json()["url"]
    r = await http_client.get("/cat.png")
    assert r.status_code == 200
    assert r.content == PNG

    assert (await http_client.post("/delete", json={"id": url})).status_code == 200
    assert (await http_client.get("/cat.png")).status_code == 404


async def test_renamed_file_moves_to_new_path(http_client):
    url = (await _upload(http_client, name="dog.png")).json()["url"]
    old_key = basename_of(url)
    assert (await http_client.get(f"/{old_key}")).status_code == 200
    assert (await http_client.get("/dog.png")).status_code == 200

    r = await http_client.post("/update-suffix", json={"url": url, "suffix": "puppy"})
    assert r.status_code == 200
    assert r.json()["newUrl"] == "https://img.example.com/puppy.png"

    assert (await http_client.get(f"/{old_key}")).status_code == 404
    assert (await http_client.get("/dog.png")).status_code == 404
    r = await http_client.get("/puppy.png")
    assert r.status_code == 200
    assert r.content == PNG


async def test_renamed_chat_store_file_moves_to_new_path(http_client, fake_tg):
    r = await _upload(http_client, name="notes.zip", data=b"PK\x03\x04zip", ctype="application/zip", storage_type="telegram")
    url = r.json()["url"]
    old_key = basename_of(url)
    assert (await http_client.get(f"/{old_key}")).status_code == 200

    r = await http_client.post("/update-suffix", json={"url": url, "suffix": "archive"})
    assert r.status_code == 200
    assert (await http_client.get(f"/{old_key}")).status_code == 404
    r = await http_client.get("/archive.zip")
    assert r.status_code == 200
    assert r.content == b"PK\x03\x04zip"


async def test_file_cache_is_bounded_from_settings(ctx, settings):
    assert ctx.file_cache.max_entries == settings.file_cache_max_entries


async def test_oversized_upload_is_rejected_before_storage(http_client, ctx, fake_s3):
    ctx.settings.max_size_mb = 1
    r = await _upload(http_client, data=b"x" * (1024 * 1024 + 10))
    assert r.status_code == 400
    assert r.json()["status"] == 0
    assert fake_s3.objects == {}


async def test_empty_upload_is_rejected(http_client):
    r = await _upload(http_client, data=b"")
    assert r.status_code == 400
    assert r.json()["status"] == 0


async def test_upload_without_file_field_is_422(http_client):
    r = await http_client.post("/upload", data={"category": "1"})
    assert r.status_code == 422


async def test_object_store_failure_is_502(http_client, fake_s3, monkeypatch):
    from botocore.exceptions import ClientError

    def broken_put(**kwargs):
        raise ClientError({"Error": {"Code": "InternalError", "Message": "down"}}, "PutObject")

    monkeypatch.setattr(fake_s3, "put_object", broken_put)
    r = await _upload(http_client)
    assert r.status_code == 502
    assert r.json()["status"] == 0


async def test_unknown_path_is_404(http_client):
    r = await http_client.get("/nothing-here.png")
    assert r.status_code == 404
    assert r.json()["status"] == 0


async def test_system_endpoints(http_client, fake_tg):
    assert (await http_client.get("/favicon.ico")).status_code == 204
    assert (await http_client.get("/config")).json() == {"maxSizeMB": 20}
    health = (await http_client.get("/health")).json()
    assert health["status"] == "ok"

    calls = {"n": 0}

    def bing() -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(200, json={"images": [{"url": "/th?id=OHR.A.jpg"}, {"url": "/th?id=OHR.B.jpg"}]})

    fake_tg.other_routes["cn.bing.com/HPImageArchive.aspx"] = bing
    r = await http_client.get("/bing")
    assert r.status_code == 200
    assert r.json() == {
        "status": True,
        "message": "ok",
        "data": [{"url": "https://cn.bing.com/th?id=OHR.A.jpg"}, {"url": "https://cn.bing.com/th?id=OHR.B.jpg"}],
    }
    await http_client.get("/bing")
    assert calls["n"] == 1


async def test_bing_failure_is_502(http_client):
    r = await http_client.get("/bing")
    assert r.status_code == 502
