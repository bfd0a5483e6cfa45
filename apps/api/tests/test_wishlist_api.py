from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from models.match import Match
from models.wishlist_item import WishlistItem
from services.product_info import ProductInfo

from conftest import TEST_YEAR, login_as, seed_user


PRODUCT_URL = "https://www.amazon.com/dp/B000000000"
ENRICHED = ProductInfo(title="Cozy Socks", image_url="https://m.media-amazon.com/images/I/socks.jpg", price="12.99")


async def _pair(session_maker, giver_id, receiver_id):
    async with session_maker() as session:
        session.add(Match(giver_id=giver_id, receiver_id=receiver_id, year=TEST_YEAR))
        await session.commit()


@pytest.mark.asyncio
async def test_add_item_stores_enriched_product(santa_client):
    client, session_maker, recorder = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    headers = await login_as(session_maker, alice)

    fetch = AsyncMock(return_value=ENRICHED)
    with patch("services.wishlist.fetch_product_info", fetch):
        response = await client.post("/wishlist", json={"amazonUrl": f"  {PRODUCT_URL}  "}, headers=headers)

    assert response.status_code == 201
    item = response.json()
    assert item["userId"] == alice
    assert item["amazonUrl"] == PRODUCT_URL
    assert item["title"] == "Cozy Socks"
    assert item["imageUrl"] == ENRICHED.image_url
    assert item["price"] == "12.99"
    assert item["addedAt"]
    fetch.assert_awaited_once_with(PRODUCT_URL)
    # No Santa this year, so nobody is emailed.
    assert recorder.sent == []


@pytest.mark.asyncio
async def test_add_item_keeps_nulls_when_enrichment_fails(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    headers = await login_as(session_maker, alice)

    with patch("services.wishlist.fetch_product_info", AsyncMock(return_value=ProductInfo())):
        response = await client.post("/wishlist", json={"amazonUrl": PRODUCT_URL}, headers=headers)

    assert response.status_code == 201
    item = response.json()
    assert item["title"] is None
    assert item["imageUrl"] is None
    assert item["price"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body,message",
    [
        ({}, "Amazon URL required"),
        ({"amazonUrl": ""}, "Amazon URL required"),
        ({"amazonUrl": 42}, "Amazon URL required"),
        ({"amazonUrl": "not a url"}, "Invalid URL format"),
        ({"amazonUrl": "http://www.amazon.com/dp/B000000000"}, "URL must use HTTPS"),
        ({"amazonUrl": "https://www.ebay.com/itm/123"}, "Must be an Amazon.com URL"),
        ({"amazonUrl": "https://amazon.com.example.net/dp/B000000000"}, "Must be an Amazon.com URL"),
    ],
)
async def test_add_item_rejects_invalid_urls(santa_client, body, message):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    headers = await login_as(session_maker, alice)

    fetch = AsyncMock(return_value=ENRICHED)
    with patch("services.wishlist.fetch_product_info", fetch):
        response = await client.post("/wishlist", json=body, headers=headers)

    assert response.status_code == 400
    assert response.json() == {"error": message}
    fetch.assert_not_awaited()
    async with session_maker() as session:
        assert (await session.execute(select(func.count()).select_from(WishlistItem))).scalar_one() == 0


@pytest.mark.asyncio
async def test_own_wishlist_lists_newest_first(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    bob = await seed_user(session_maker, "bob@example.com", "Bob")
    headers = await login_as(session_maker, alice)

    with patch("services.wishlist.fetch_product_info", AsyncMock(return_value=ProductInfo())):
        for suffix in ("1", "2", "3"):
            await client.post("/wishlist", json={"amazonUrl": f"{PRODUCT_URL[:-1]}{suffix}"}, headers=headers)
    async with session_maker() as session:
        session.add(WishlistItem(user_id=bob, amazon_url=PRODUCT_URL))
        await session.commit()

    response = await client.get("/wishlist", headers=headers)
    assert response.status_code == 200
    urls = [item["amazonUrl"] for item in response.json()]
    assert urls == [f"{PRODUCT_URL[:-1]}{suffix}" for suffix in ("3", "2", "1")]


@pytest.mark.asyncio
async def test_adding_item_notifies_the_santa(santa_client):
    client, session_maker, recorder = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    bob = await seed_user(session_maker, "bob@example.com", "Bob")
    await _pair(session_maker, bob, alice)
    headers = await login_as(session_maker, alice)

    with patch("services.wishlist.fetch_product_info", AsyncMock(return_value=ENRICHED)):
        response = await client.post("/wishlist", json={"amazonUrl": PRODUCT_URL}, headers=headers)

    assert response.status_code == 201
    [note] = recorder.sent
    assert note.to == "bob@example.com"
    assert "Alice" in note.subject
    assert "Cozy Socks" in note.text


@pytest.mark.asyncio
async def test_recipient_wishlist_requires_assignment(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    headers = await login_as(session_maker, alice)

    response = await client.get("/wishlist/recipient", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"error": "No match assigned yet"}


@pytest.mark.asyncio
async def test_recipient_wishlist_shows_only_recipient_items(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    bob = await seed_user(session_maker, "bob@example.com", "Bob")
    carol = await seed_user(session_maker, "carol@example.com", "Carol")
    await _pair(session_maker, alice, bob)
    async with session_maker() as session:
        session.add_all(
            [
                WishlistItem(user_id=bob, amazon_url=PRODUCT_URL, title="Bob's Gift"),
                WishlistItem(user_id=carol, amazon_url=PRODUCT_URL, title="Carol's Gift"),
            ]
        )
        await session.commit()
    headers = await login_as(session_maker, alice)

    response = await client.get("/wishlist/recipient", headers=headers)
    assert response.status_code == 200
    payload = response.json()
    assert payload["recipient"] == {"name": "Bob"}
    assert [item["title"] for item in payload["items"]] == ["Bob's Gift"]


@pytest.mark.asyncio
async def test_delete_item_enforces_ownership(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    bob = await seed_user(session_maker, "bob@example.com", "Bob")
    async with session_maker() as session:
        mine = WishlistItem(user_id=alice, amazon_url=PRODUCT_URL)
        theirs = WishlistItem(user_id=bob, amazon_url=PRODUCT_URL)
        session.add_all([mine, theirs])
        await session.commit()
        mine_id, theirs_id = mine.id, theirs.id
    headers = await login_as(session_maker, alice)

    forbidden = await client.delete(f"/wishlist/{theirs_id}", headers=headers)
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Cannot delete another user's item"}

    missing = await client.delete("/wishlist/9999", headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {"error": "Item not found"}

    for bad in ("abc", "0"):
        invalid = await client.delete(f"/wishlist/{bad}", headers=headers)
        assert invalid.status_code == 400
        assert invalid.json() == {"error": "Invalid item ID"}

    ok = await client.delete(f"/wishlist/{mine_id}", headers=headers)
    assert ok.status_code == 200
    assert ok.json() == {"success": True}

    async with session_maker() as session:
        remaining = (await session.execute(select(WishlistItem.id))).scalars().all()
    assert remaining == [theirs_id]


@pytest.mark.asyncio
async def test_wishlist_routes_require_session(santa_client):
    client, _, _ = santa_client
    assert (await client.get("/wishlist")).status_code == 401
    assert (await client.post("/wishlist", json={"amazonUrl": PRODUCT_URL})).status_code == 401
    assert (await client.get("/wishlist/recipient")).status_code == 401
    assert (await client.delete("/wishlist/1")).status_code == 401
