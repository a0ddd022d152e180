"""
ClimbTime Backend - User Discovery and Profile Tests
======================================================
"""

from uuid import uuid4

import pytest


class TestUserSearch:

    @pytest.mark.asyncio
    async def test_search_by_name_or_email(self, client, make_user, auth_headers, follow):
        viewer = await make_user("Viewer")
        adam = await make_user("Adam Ondra", email="adam@example.com")
        await make_user("Janja Garnbret", email="janja@example.com")
        await follow(viewer, adam)

        by_name = await client.get("/api/users/search", params={"query": "ondra"}, headers=auth_headers(viewer))
        assert by_name.status_code == 200
        assert by_name.json() == [
            {"id": str(adam.id), "name": "Adam Ondra", "image": None, "isFollowing": True}
        ]

        by_email = await client.get("/api/users/search", params={"query": "JANJA@"}, headers=auth_headers(viewer))
        assert [u["name"] for u in by_email.json()] == ["Janja Garnbret"]
        assert by_email.json()[0]["isFollowing"] is False

    @pytest.mark.asyncio
    async def test_blank_query_returns_nothing(self, client, make_user, auth_headers):
        viewer = await make_user()
        await make_user()
        response = await client.get("/api/users/search", params={"query": "  "}, headers=auth_headers(viewer))
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_search_caps_results(self, client, make_user, auth_headers):
        viewer = await make_user("Viewer")
        for i in range(12):
            await make_user(f"Boulderer {i:02d}")
        response = await client.get("/api/users/search", params={"query": "boulderer"}, headers=auth_headers(viewer))
        assert len(response.json()) == 10

    @pytest.mark.asyncio
    async def test_search_requires_session(self, client):
        response = await client.get("/api/users/search", params={"query": "a"})
        assert response.status_code == 401


class TestSuggestions:

    @pytest.mark.asyncio
    async def test_suggested_excludes_self_and_followed(self, client, make_user, auth_headers, follow):
        viewer = await make_user("Viewer")
        followed = await make_user("Followed")
        popular = await make_user("Popular")
        quiet = await make_user("Quiet")
        await follow(viewer, followed)
        await follow(followed, popular)
        await follow(quiet, popular)

        response = await client.get("/api/users/suggested", headers=auth_headers(viewer))
        names = [u["name"] for u in response.json()]

        assert names[0] == "Popular"
        assert response.json()[0]["followerCount"] == 2
        assert set(names) == {"Popular", "Quiet"}

    @pytest.mark.asyncio
    async def test_suggested_limit(self, client, make_user, auth_headers):
        viewer = await make_user()
        for _ in range(8):
            await make_user()
        response = await client.get("/api/users/suggested", headers=auth_headers(viewer))
        assert len(response.json()) == 6


class TestFollowerSearch:

    @pytest.mark.asyncio
    async def test_followers_and_mutuals(self, client, make_user, auth_headers, follow):
        me = await make_user("Me")
        mutual = await make_user("Mutual Friend")
        fan = await make_user("Fan")
        idol = await make_user("Idol")
        await follow(me, mutual)
        await follow(mutual, me)
        await follow(fan, me)
        await follow(me, idol)

        followers = await client.get("/api/users/followers/search", params={"query": ""}, headers=auth_headers(me))
        assert {u["name"] for u in followers.json()} == {"Mutual Friend", "Fan"}

        filtered = await client.get("/api/users/followers/search", params={"query": "fan"}, headers=auth_headers(me))
        assert [u["name"] for u in filtered.json()] == ["Fan"]

        mutuals = await client.get("/api/users/mutual-followers/search", headers=auth_headers(me))
        assert [u["name"] for u in mutuals.json()] == ["Mutual Friend"]
        assert mutuals.json()[0]["isFollowing"] is True


class TestProfiles:

    @pytest.mark.asyncio
    async def test_public_profile_counts(self, client, make_user, auth_headers, follow):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        await follow(bob, alice)
        await client.post("/api/posts", json={"content": "hi"}, headers=auth_headers(alice))

        response = await client.get(f"/api/users/{alice.id}", headers=auth_headers(bob))
        assert response.status_code == 200
        body = response.json()
        assert body["counts"] == {"posts": 1, "followers": 1, "following": 0}
        assert body["isFollowing"] is True
        assert body["isCurrentUser"] is False
        assert body["email"] is None

    @pytest.mark.asyncio
    async def test_own_profile_includes_email(self, client, make_user, auth_headers):
        alice = await make_user(email="alice@example.com")
        response = await client.get(f"/api/users/{alice.id}", headers=auth_headers(alice))
        assert response.json()["isCurrentUser"] is True
        assert response.json()["email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_anonymous_profile(self, client, make_user):
        alice = await make_user()
        response = await client.get(f"/api/users/{alice.id}")
        assert response.status_code == 200
        assert response.json()["isFollowing"] is False

    @pytest.mark.asyncio
    async def test_unknown_profile(self, client):
        response = await client.get(f"/api/users/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"
