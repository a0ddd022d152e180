"""
ClimbTime Backend - Follow Graph Tests
========================================

What:  Follow/unfollow rules, the follow check, and the mutual-follow helpers
       that gate messaging.
"""

from uuid import uuid4

import pytest

from climbtime.exceptions import NotFoundError, ValidationError
from climbtime.services.follow_service import follow_service


class TestFollowService:

    @pytest.mark.asyncio
    async def test_follow_then_unfollow(self, db_session, new_user):
        alice = await new_user()
        bob = await new_user()

        followed = await follow_service.set_following(db_session, alice.id, bob.id, "follow")
        assert followed.message == "Successfully followed user"
        assert await follow_service.is_following(db_session, alice.id, bob.id)
        assert not await follow_service.is_following(db_session, bob.id, alice.id)

        unfollowed = await follow_service.set_following(db_session, alice.id, bob.id, "unfollow")
        assert unfollowed.message == "Successfully unfollowed user"
        assert unfollowed.is_following is False

    @pytest.mark.asyncio
    async def test_repeated_actions_are_idempotent(self, db_session, new_user):
        alice = await new_user()
        bob = await new_user()

        not_following = await follow_service.set_following(db_session, alice.id, bob.id, "unfollow")
        assert not_following.message == "Not following this user"

        await follow_service.set_following(db_session, alice.id, bob.id, "follow")
        again = await follow_service.set_following(db_session, alice.id, bob.id, "follow")
        assert again.message == "Already following this user"
        assert again.is_following is True
        assert await follow_service.follower_ids(db_session, bob.id) == {alice.id}

    @pytest.mark.asyncio
    async def test_invalid_requests(self, db_session, new_user):
        alice = await new_user()

        with pytest.raises(ValidationError, match="You cannot follow yourself"):
            await follow_service.set_following(db_session, alice.id, alice.id, "follow")
        with pytest.raises(ValidationError, match="Invalid action"):
            await follow_service.set_following(db_session, alice.id, uuid4(), "block")
        with pytest.raises(NotFoundError):
            await follow_service.set_following(db_session, alice.id, uuid4(), "follow")

    @pytest.mark.asyncio
    async def test_mutual_followers(self, db_session, new_user):
        alice = await new_user()
        bob = await new_user()
        carol = await new_user()
        dave = await new_user()

        # alice <-> bob mutual; carol follows alice only; alice follows dave only
        await follow_service.set_following(db_session, alice.id, bob.id, "follow")
        await follow_service.set_following(db_session, bob.id, alice.id, "follow")
        await follow_service.set_following(db_session, carol.id, alice.id, "follow")
        await follow_service.set_following(db_session, alice.id, dave.id, "follow")

        assert await follow_service.mutual_follower_ids(db_session, alice.id) == {bob.id}
        assert await follow_service.is_mutual(db_session, alice.id, bob.id)
        assert await follow_service.is_mutual(db_session, bob.id, alice.id)
        assert not await follow_service.is_mutual(db_session, alice.id, carol.id)
        assert not await follow_service.is_mutual(db_session, alice.id, dave.id)
        assert await follow_service.follower_ids(db_session, alice.id) == {bob.id, carol.id}
        assert await follow_service.following_ids(db_session, alice.id) == {bob.id, dave.id}


class TestFollowEndpoints:

    @pytest.mark.asyncio
    async def test_follow_and_check(self, client, make_user, auth_headers):
        alice = await make_user()
        bob = await make_user()

        response = await client.post(
            "/api/follow",
            json={"targetUserId": str(bob.id), "action": "follow"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Successfully followed user", "isFollowing": True}

        check = await client.get(
            "/api/follow/check", params={"targetUserId": str(bob.id)}, headers=auth_headers(alice)
        )
        assert check.json() == {"isFollowing": True}

        reverse = await client.get(
            "/api/follow/check", params={"targetUserId": str(alice.id)}, headers=auth_headers(bob)
        )
        assert reverse.json() == {"isFollowing": False}

    @pytest.mark.asyncio
    async def test_check_without_session_is_false(self, client, make_user):
        bob = await make_user()
        response = await client.get("/api/follow/check", params={"targetUserId": str(bob.id)})
        assert response.status_code == 200
        assert response.json() == {"isFollowing": False}

    @pytest.mark.asyncio
    async def test_check_without_session_or_target_is_false(self, client):
        response = await client.get("/api/follow/check")
        assert response.status_code == 200
        assert response.json() == {"isFollowing": False}

    @pytest.mark.asyncio
    async def test_check_requires_target(self, client, make_user, auth_headers):
        alice = await make_user()
        response = await client.get("/api/follow/check", headers=auth_headers(alice))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["details"] == {"field": "targetUserId"}

    @pytest.mark.asyncio
    async def test_error_statuses(self, client, make_user, auth_headers):
        alice = await make_user()
        headers = auth_headers(alice)

        missing_target = await client.post("/api/follow", json={"action": "follow"}, headers=headers)
        bad_action = await client.post(
            "/api/follow", json={"targetUserId": str(uuid4()), "action": "block"}, headers=headers
        )
        self_follow = await client.post(
            "/api/follow", json={"targetUserId": str(alice.id), "action": "follow"}, headers=headers
        )
        unknown = await client.post(
            "/api/follow", json={"targetUserId": str(uuid4()), "action": "follow"}, headers=headers
        )
        anonymous = await client.post("/api/follow", json={"targetUserId": str(alice.id), "action": "follow"})

        assert missing_target.status_code == 400
        assert bad_action.status_code == 400
        assert bad_action.json()["message"] == "Invalid action"
        assert self_follow.status_code == 400
        assert unknown.status_code == 404
        assert anonymous.status_code == 401
