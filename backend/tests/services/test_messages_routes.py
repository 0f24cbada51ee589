"""Message Routes — send, thread, inbox grouping, mark read."""


async def _send(client, headers, receiver_id, content, **extra):
    return await client.post(
        "/api/v1/messages",
        headers=headers,
        json={"receiver_id": receiver_id, "content": content, **extra},
    )


async def test_thread_is_oldest_first_in_both_directions(client, buyer, seller):
    buyer_headers, buyer_json = buyer
    seller_headers, seller_json = seller

    first = await _send(client, buyer_headers, seller_json["id"], "Is the data hourly?")
    await _send(client, seller_headers, buyer_json["id"], "Yes, hourly.")

    assert first.status_code == 201
    assert first.json()["is_read"] is False
    thread = (
        await client.get(f"/api/v1/messages/{seller_json['id']}", headers=buyer_headers)
    ).json()
    assert [m["content"] for m in thread] == ["Is the data hourly?", "Yes, hourly."]


async def test_conversations_latest_per_counterpart(client, buyer, seller, register_user):
    buyer_headers, _ = buyer
    _, seller_json = seller
    _, other_json = await register_user("other-seller@example.com", "seller", "Olga")

    await _send(client, buyer_headers, seller_json["id"], "first to sam")
    await _send(client, buyer_headers, other_json["id"], "only to olga")
    await _send(client, buyer_headers, seller_json["id"], "second to sam")

    inbox = (
        await client.get("/api/v1/messages/conversations", headers=buyer_headers)
    ).json()

    assert [c["last_message"]["content"] for c in inbox] == ["second to sam", "only to olga"]
    assert [c["other_user"]["name"] for c in inbox] == ["Sam Seller", "Olga"]


async def test_only_receiver_marks_read(client, buyer, seller):
    buyer_headers, _ = buyer
    seller_headers, seller_json = seller
    message = (await _send(client, buyer_headers, seller_json["id"], "hello")).json()
    url = f"/api/v1/messages/{message['id']}/read"

    by_sender = await client.put(url, headers=buyer_headers)
    by_receiver = await client.put(url, headers=seller_headers)

    assert by_sender.status_code == 403
    assert by_receiver.status_code == 200
    assert by_receiver.json()["is_read"] is True


async def test_message_to_self_rejected(client, buyer):
    headers, buyer_json = buyer
    resp = await _send(client, headers, buyer_json["id"], "note to self")
    assert resp.status_code == 400


async def test_message_to_unknown_user_is_404(client, buyer):
    headers, _ = buyer
    resp = await _send(client, headers, "00000000-0000-0000-0000-000000000001", "anyone?")
    assert resp.status_code == 404


async def test_message_may_reference_dataset(client, buyer, seller, dataset):
    headers, _ = buyer
    _, seller_json = seller
    resp = await _send(
        client, headers, seller_json["id"], "About this one", dataset_id=dataset["id"],
    )
    assert resp.status_code == 201
    assert resp.json()["dataset_id"] == dataset["id"]


async def test_blank_content_rejected(client, buyer, seller):
    headers, _ = buyer
    _, seller_json = seller
    resp = await _send(client, headers, seller_json["id"], "   ")
    assert resp.status_code == 400
