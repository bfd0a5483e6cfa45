import pytest

from models.match import Match

from conftest import TEST_YEAR, login_as, seed_user


@pytest.mark.asyncio
async def test_match_requires_session(santa_client):
    client, _, _ = santa_client
    response = await client.get("/match")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_match_without_assignment_is_404(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    headers = await login_as(session_maker, alice)

    response = await client.get("/match", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"error": "No match assigned yet"}


@pytest.mark.asyncio
async def test_first_reveal_is_reported_once(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    bob = await seed_user(session_maker, "bob@example.com", "Bob")
    async with session_maker() as session:
        session.add_all(
            [
                Match(giver_id=alice, receiver_id=bob, year=TEST_YEAR),
                Match(giver_id=bob, receiver_id=alice, year=TEST_YEAR),
            ]
        )
        await session.commit()
    headers = await login_as(session_maker, alice)

    first = await client.get("/match", headers=headers)
    assert first.status_code == 200
    assert first.json() == {
        "firstTime": True,
        "recipient": {"id": bob, "name": "Bob", "email": "bob@example.com"},
    }

    second = await client.get("/match", headers=headers)
    assert second.json()["firstTime"] is False
    assert second.json()["recipient"]["id"] == bob

    me = await client.get("/auth/me", headers=headers)
    assert me.json()["user"]["hasSeenReveal"] is True


@pytest.mark.asyncio
async def test_match_only_considers_current_year(santa_client):
    client, session_maker, _ = santa_client
    alice = await seed_user(session_maker, "alice@example.com", "Alice")
    bob = await seed_user(session_maker, "bob@example.com", "Bob")
    async with session_maker() as session:
        session.add(Match(giver_id=alice, receiver_id=bob, year=TEST_YEAR + 1))
        await session.commit()
    headers = await login_as(session_maker, alice)

    response = await client.get("/match", headers=headers)
    assert response.status_code == 404
