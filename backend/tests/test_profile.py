"""
ClimbTime Backend - Profile Editing and File Serving Tests
============================================================
"""

from pathlib import Path

import pytest

from climbtime.services.file_service import PUBLIC_PREFIX, file_service


class TestOwnProfile:

    @pytest.mark.asyncio
    async def test_get_own_profile(self, client, make_user, auth_headers):
        alice = await make_user("Alice", email="alice@example.com")
        response = await client.get("/api/profile", headers=auth_headers(alice))
        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "alice@example.com"
        assert body["isCurrentUser"] is True
        assert body["counts"] == {"posts": 0, "followers": 0, "following": 0}

    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        assert (await client.get("/api/profile")).status_code == 401
        assert (await client.put("/api/profile", data={"name": "x"})).status_code == 401


class TestProfileUpdate:

    @pytest.mark.asyncio
    async def test_update_text_fields(self, client, make_user, auth_headers):
        alice = await make_user("Alice")
        response = await client.put(
            "/api/profile",
            data={
                "name": "Alice Climbs",
                "bio": "Boulderer from Fontainebleau",
                "location": "Paris",
                "website": "https://alice.example.com",
            },
            headers=auth_headers(alice),
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert response.json()["message"] == "Profile updated successfully"
        assert user["name"] == "Alice Climbs"
        assert user["bio"] == "Boulderer from Fontainebleau"
        assert user["location"] == "Paris"
        assert user["website"] == "https://alice.example.com"

    @pytest.mark.asyncio
    async def test_empty_fields_leave_values_unchanged(self, client, make_user, auth_headers):
        alice = await make_user("Alice")
        await client.put("/api/profile", data={"bio": "Original bio"}, headers=auth_headers(alice))

        response = await client.put(
            "/api/profile", data={"name": "", "bio": "", "website": ""}, headers=auth_headers(alice)
        )
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Alice"
        assert response.json()["user"]["bio"] == "Original bio"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data, field",
        [
            ({"website": "not a url"}, "website"),
            ({"bio": "x" * 161}, "bio"),
            ({"location": "x" * 31}, "location"),
            ({"name": "x" * 51}, "name"),
        ],
    )
    async def test_invalid_fields(self, client, make_user, auth_headers, data, field):
        alice = await make_user()
        response = await client.put("/api/profile", data=data, headers=auth_headers(alice))
        assert response.status_code == 400
        assert response.json()["details"]["field"] == field

    @pytest.mark.asyncio
    async def test_invalid_website_message(self, client, make_user, auth_headers):
        alice = await make_user()
        response = await client.put("/api/profile", data={"website": "ftp://x"}, headers=auth_headers(alice))
        assert response.json()["message"] == "Please enter a valid URL"

    @pytest.mark.asyncio
    async def test_upload_profile_picture(self, client, make_user, auth_headers, sample_image_bytes):
        alice = await make_user()
        response = await client.put(
            "/api/profile",
            files={"profilePicture": ("me.jpg", sample_image_bytes, "image/jpeg")},
            headers=auth_headers(alice),
        )
        assert response.status_code == 200
        image_url = response.json()["user"]["image"]
        assert image_url.startswith(f"{PUBLIC_PREFIX}profile/")

        served = await client.get(image_url)
        assert served.status_code == 200
        assert served.content == sample_image_bytes

    @pytest.mark.asyncio
    async def test_data_url_wins_over_file(self, client, make_user, auth_headers, sample_image_bytes):
        alice = await make_user()
        data_url = "data:image/png;base64,iVBORw0KGgo="
        response = await client.put(
            "/api/profile",
            data={"bannerPictureDataUrl": data_url},
            files={"bannerPicture": ("banner.png", sample_image_bytes, "image/png")},
            headers=auth_headers(alice),
        )
        assert response.status_code == 200
        assert response.json()["user"]["bannerImage"] == data_url

    @pytest.mark.asyncio
    async def test_rejected_upload_is_400(self, client, make_user, auth_headers):
        alice = await make_user()
        response = await client.put(
            "/api/profile",
            files={"profilePicture": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
            headers=auth_headers(alice),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_upload_is_ignored(self, client, make_user, auth_headers):
        alice = await make_user()
        response = await client.put(
            "/api/profile",
            data={"name": "Still Alice"},
            files={"profilePicture": ("empty.jpg", b"", "image/jpeg")},
            headers=auth_headers(alice),
        )
        assert response.status_code == 200
        assert response.json()["user"]["image"] is None


class TestFileServing:

    @pytest.mark.asyncio
    async def test_missing_file_is_404(self, client):
        response = await client.get(f"{PUBLIC_PREFIX}profile/2024/01/01/missing.png")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_traversal_is_rejected(self, client):
        response = await client.get(f"{PUBLIC_PREFIX}..%2F..%2Fetc%2Fpasswd")
        assert response.status_code in (400, 404)

    def test_storage_root_comes_from_settings(self):
        assert Path(file_service.storage_root).is_dir()
