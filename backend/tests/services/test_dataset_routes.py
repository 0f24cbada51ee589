"""Dataset Routes — upload, catalogue filters, download gate, delete/delist.

Tests cover:
    - Seller upload stores the blob, bumps total_datasets; buyers cannot upload
    - Row write failure after the blob was stored: blob removed, counter untouched
    - Unknown mime type / empty file rejected with nothing stored
    - Listing: available only, category / format / search filters, "All Categories"
    - Download: stranger 403, owner and completed purchaser 200 with original name
      and mime type, downloads counter +1 per download, missing blob 404 FILE_MISSING
    - Delete: never-purchased dataset removed with its blob; purchased one delisted
      and still downloadable by its purchaser
"""

from decimal import Decimal

from datanest.core.errors import DatabaseError
from datanest.repositories.users import SqlUserRepository

CSV = b"city,temp\nLisbon,21\nOslo,4\n"


async def _buy(client, headers, dataset_id):
    await client.post(
        "/api/v1/payments/intents", headers=headers, json={"dataset_id": dataset_id},
    )
    purchases = (await client.get("/api/v1/users/me/purchases", headers=headers)).json()
    ref = purchases[0]["external_payment_ref"]
    resp = await client.post(
        "/api/v1/payments/confirm", headers=headers, json={"payment_intent_id": ref},
    )
    assert resp.status_code == 200, resp.text


# ─── upload ──────────────────────────────────────────────────────

async def test_upload_creates_dataset(client, seller, upload_dataset, blob_store):
    headers, _ = seller
    resp = await upload_dataset(headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["file_name"] == "temps.csv"
    assert body["mime_type"] == "text/csv"
    assert body["file_size"] == len(CSV)
    assert body["tags"] == ["weather", "europe"]
    assert Decimal(body["price"]) == Decimal("10.00")
    assert body["downloads"] == 0
    assert body["is_available"] is True
    assert "file_path" not in body
    assert len(list(blob_store.root.iterdir())) == 1

    me = (await client.get("/api/v1/users/me", headers=headers)).json()
    assert me["total_datasets"] == 1


async def test_failed_row_write_removes_stored_file(
    client, seller, upload_dataset, blob_store, monkeypatch,
):
    headers, _ = seller

    async def broken_counter(self, user_id):
        raise DatabaseError("disk I/O error", "update")

    monkeypatch.setattr(SqlUserRepository, "increment_total_datasets", broken_counter)
    resp = await upload_dataset(headers)

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "DATABASE_ERROR"
    assert not any(blob_store.root.iterdir())
    me = (await client.get("/api/v1/users/me", headers=headers)).json()
    assert me["total_datasets"] == 0
    assert (await client.get("/api/v1/datasets")).json() == []


async def test_buyer_cannot_upload(buyer, upload_dataset):
    headers, _ = buyer
    resp = await upload_dataset(headers)
    assert resp.status_code == 403


async def test_invalid_mime_type_rejected(seller, upload_dataset, blob_store):
    headers, _ = seller
    resp = await upload_dataset(headers, mime_type="application/x-msdownload")

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert not blob_store.root.exists() or not any(blob_store.root.iterdir())


async def test_empty_file_rejected(seller, upload_dataset):
    headers, _ = seller
    resp = await upload_dataset(headers, content=b"")
    assert resp.status_code == 400


async def test_negative_price_rejected(seller, upload_dataset):
    headers, _ = seller
    resp = await upload_dataset(headers, price="-1")
    assert resp.status_code == 400


async def test_malformed_tags_rejected(seller, upload_dataset):
    headers, _ = seller
    resp = await upload_dataset(headers, tags="weather,europe")
    assert resp.status_code == 400


# ─── catalogue ───────────────────────────────────────────────────

async def test_listing_filters(client, seller, upload_dataset):
    headers, _ = seller
    await upload_dataset(headers, title="Rainfall", category="Climate")
    await upload_dataset(
        headers, title="Stock ticks", category="Finance",
        file_format="JSON", tags='["markets"]',
    )

    everything = (await client.get("/api/v1/datasets")).json()
    assert [d["title"] for d in everything] == ["Stock ticks", "Rainfall"]
    assert everything[0]["seller"]["name"] == "Sam Seller"

    all_categories = await client.get(
        "/api/v1/datasets", params={"category": "All Categories"},
    )
    assert len(all_categories.json()) == 2

    climate = (await client.get("/api/v1/datasets", params={"category": "Climate"})).json()
    assert [d["title"] for d in climate] == ["Rainfall"]

    json_only = (await client.get("/api/v1/datasets", params={"format": "JSON"})).json()
    assert [d["title"] for d in json_only] == ["Stock ticks"]

    by_tag = (await client.get("/api/v1/datasets", params={"search": "MARKETS"})).json()
    assert [d["title"] for d in by_tag] == ["Stock ticks"]

    by_description = (await client.get("/api/v1/datasets", params={"search": "capitals"})).json()
    assert len(by_description) == 2


async def test_get_dataset_detail_and_404(client, dataset):
    resp = await client.get(f"/api/v1/datasets/{dataset['id']}")
    assert resp.status_code == 200
    assert resp.json()["seller"]["email"] == "seller@example.com"

    missing = await client.get("/api/v1/datasets/00000000-0000-0000-0000-000000000001")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


# ─── download ────────────────────────────────────────────────────

async def test_stranger_cannot_download(client, buyer, dataset):
    headers, _ = buyer
    resp = await client.get(f"/api/v1/datasets/{dataset['id']}/download", headers=headers)

    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Access denied. Purchase required."
    detail = (await client.get(f"/api/v1/datasets/{dataset['id']}")).json()
    assert detail["downloads"] == 0


async def test_purchaser_downloads_original_file(client, buyer, dataset):
    headers, _ = buyer
    await _buy(client, headers, dataset["id"])

    resp = await client.get(f"/api/v1/datasets/{dataset['id']}/download", headers=headers)

    assert resp.status_code == 200
    assert resp.content == CSV
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'filename="temps.csv"' in resp.headers["content-disposition"]
    assert resp.headers["content-disposition"].startswith("attachment")


async def test_downloads_counter_increments_per_download(client, seller, dataset):
    headers, _ = seller
    for _ in range(2):
        resp = await client.get(
            f"/api/v1/datasets/{dataset['id']}/download", headers=headers,
        )
        assert resp.status_code == 200

    detail = (await client.get(f"/api/v1/datasets/{dataset['id']}")).json()
    assert detail["downloads"] == 2


async def test_pending_purchase_does_not_grant_download(client, buyer, dataset):
    headers, _ = buyer
    await client.post(
        "/api/v1/payments/intents", headers=headers, json={"dataset_id": dataset["id"]},
    )

    resp = await client.get(f"/api/v1/datasets/{dataset['id']}/download", headers=headers)

    assert resp.status_code == 403


async def test_missing_blob_is_404_and_not_counted(client, seller, dataset, blob_store):
    headers, _ = seller
    for stored in blob_store.root.iterdir():
        stored.unlink()

    resp = await client.get(f"/api/v1/datasets/{dataset['id']}/download", headers=headers)

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "FILE_MISSING"
    detail = (await client.get(f"/api/v1/datasets/{dataset['id']}")).json()
    assert detail["downloads"] == 0


# ─── delete ──────────────────────────────────────────────────────

async def test_delete_unpurchased_dataset_removes_blob(client, seller, dataset, blob_store):
    headers, _ = seller

    resp = await client.delete(f"/api/v1/datasets/{dataset['id']}", headers=headers)

    assert resp.status_code == 200
    assert resp.json() == {"id": dataset["id"], "deleted": True, "delisted": False}
    assert not any(blob_store.root.iterdir())
    assert (await client.get(f"/api/v1/datasets/{dataset['id']}")).status_code == 404


async def test_delete_purchased_dataset_delists(client, seller, buyer, dataset):
    seller_headers, _ = seller
    buyer_headers, _ = buyer
    await _buy(client, buyer_headers, dataset["id"])

    resp = await client.delete(f"/api/v1/datasets/{dataset['id']}", headers=seller_headers)

    assert resp.json()["delisted"] is True
    assert (await client.get("/api/v1/datasets")).json() == []
    download = await client.get(
        f"/api/v1/datasets/{dataset['id']}/download", headers=buyer_headers,
    )
    assert download.status_code == 200
    mine = (await client.get("/api/v1/users/me/datasets", headers=seller_headers)).json()
    assert mine[0]["is_available"] is False


async def test_only_owner_can_delete(client, register_user, dataset):
    other_headers, _ = await register_user("rival@example.com", "seller")
    resp = await client.delete(f"/api/v1/datasets/{dataset['id']}", headers=other_headers)
    assert resp.status_code == 403
