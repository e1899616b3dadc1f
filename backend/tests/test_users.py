"""
Tests for profile, privacy, preferences and personal library endpoints.
"""

import pytest
from pathlib import Path
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from throwback.config import settings
from throwback.models.user import User
from throwback.models.video import Video
from throwback.models.security import UserSession
from throwback.models.enums import AccountStatus
from conftest import TEST_PASSWORD

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.unit
class TestProfile:
    """Test the current user's profile."""

    def test_get_my_profile(self, client: TestClient, test_user: User, auth_headers: dict):
        """Test the profile of the authenticated user is returned."""
        response = client.get("/api/users/profile/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == test_user.email

    def test_update_profile_partial(self, client: TestClient, auth_headers: dict):
        """Test only the provided fields change."""
        response = client.put(
            "/api/users/profile",
            headers=auth_headers,
            json={"profession": "DJ", "city": "Lyon", "bio": "Vinyl collector"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["profession"] == "DJ"
        assert data["city"] == "Lyon"
        assert data["first_name"] == "Alice"

    def test_update_profile_rejects_future_birth_date(self, client: TestClient, auth_headers: dict):
        """Test birth dates in the future fail validation."""
        response = client.put(
            "/api/users/profile",
            headers=auth_headers,
            json={"birth_date": "2999-01-01"}
        )

        assert response.status_code == 422

    def test_profile_requires_auth(self, client: TestClient):
        """Test the profile cannot be read anonymously."""
        response = client.get("/api/users/profile/me")

        assert response.status_code in (401, 403)


@pytest.mark.unit
class TestProfilePhotos:
    """Test profile and cover uploads."""

    def test_upload_profile_photo(self, client: TestClient, auth_headers: dict):
        """Test an image is stored and linked to the profile."""
        response = client.post(
            "/api/users/profile/photo",
            headers=auth_headers,
            files={"file": ("avatar.png", PNG_BYTES, "image/png")}
        )

        assert response.status_code == 200
        photo = response.json()["profile_photo"]
        assert photo.startswith("/uploads/profile/")
        assert (Path(settings.UPLOAD_DIR) / photo[len("/uploads/"):]).exists()

    def test_upload_rejects_non_image(self, client: TestClient, auth_headers: dict):
        """Test only image content types are accepted."""
        response = client.post(
            "/api/users/profile/photo",
            headers=auth_headers,
            files={"file": ("notes.txt", b"hello", "text/plain")}
        )

        assert response.status_code == 400

    def test_replace_cover_removes_previous_file(self, client: TestClient, auth_headers: dict):
        """Test uploading a new cover deletes the old file."""
        first = client.post(
            "/api/users/profile/cover",
            headers=auth_headers,
            files={"file": ("cover.png", PNG_BYTES, "image/png")}
        ).json()["cover_photo"]

        second = client.post(
            "/api/users/profile/cover",
            headers=auth_headers,
            files={"file": ("cover2.png", PNG_BYTES, "image/png")}
        ).json()["cover_photo"]

        assert first != second
        assert not (Path(settings.UPLOAD_DIR) / first[len("/uploads/"):]).exists()

    def test_remove_missing_photo(self, client: TestClient, auth_headers: dict):
        """Test removing a photo that was never uploaded returns 404."""
        response = client.delete("/api/users/profile/photo", headers=auth_headers)

        assert response.status_code == 404

    def test_remove_photo(self, client: TestClient, auth_headers: dict):
        """Test an uploaded photo can be removed."""
        client.post(
            "/api/users/profile/photo",
            headers=auth_headers,
            files={"file": ("avatar.png", PNG_BYTES, "image/png")}
        )

        response = client.delete("/api/users/profile/photo", headers=auth_headers)

        assert response.status_code == 200
        assert client.get("/api/users/profile/me", headers=auth_headers).json()["profile_photo"] is None


@pytest.mark.unit
class TestPrivacyAndPreferences:
    """Test privacy settings and preferences."""

    def test_default_privacy(self, client: TestClient, auth_headers: dict):
        """Test new accounts start public."""
        response = client.get("/api/users/profile/privacy", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_private"] is False
        assert data["playlist_visibility"] == "public"

    def test_update_privacy(self, client: TestClient, auth_headers: dict):
        """Test privacy flags are updated."""
        response = client.put(
            "/api/users/profile/privacy",
            headers=auth_headers,
            json={"is_private": True, "activity_visibility": "friends"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_private"] is True
        assert data["activity_visibility"] == "friends"

    def test_preferences_created_on_first_read(self, client: TestClient, auth_headers: dict):
        """Test default preferences are returned."""
        response = client.get("/api/users/preferences", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["favorite_genres"] == []

    def test_update_preferences(self, client: TestClient, auth_headers: dict):
        """Test preferences are saved."""
        response = client.put(
            "/api/users/preferences",
            headers=auth_headers,
            json={"favorite_genres": ["Disco", "Funk"], "theme": "dark"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["favorite_genres"] == ["Disco", "Funk"]
        assert data["theme"] == "dark"


@pytest.mark.unit
class TestPublicProfile:
    """Test viewing other users."""

    def test_public_profile(self, client: TestClient, test_user: User, other_headers: dict):
        """Test a public profile exposes its details."""
        response = client.get(f"/api/users/{test_user.id}", headers=other_headers)

        assert response.status_code == 200
        assert response.json()["first_name"] == "Alice"
        assert "email" not in response.json()

    def test_private_profile_hides_details(
        self, client: TestClient, test_user: User, test_db: Session, other_headers: dict
    ):
        """Test private profiles only expose name and photos."""
        test_user.is_private = True
        test_user.profession = "Producer"
        test_db.commit()

        response = client.get(f"/api/users/{test_user.id}", headers=other_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_private"] is True
        assert "profession" not in data

    def test_private_profile_visible_to_owner(
        self, client: TestClient, test_user: User, test_db: Session, auth_headers: dict
    ):
        """Test owners still see their full private profile."""
        test_user.is_private = True
        test_user.profession = "Producer"
        test_db.commit()

        response = client.get(f"/api/users/{test_user.id}", headers=auth_headers)

        assert response.json()["profession"] == "Producer"

    def test_deleted_user_not_found(self, client: TestClient, make_user):
        """Test deleted accounts are hidden."""
        user = make_user("gone@example.com", account_status=AccountStatus.DELETED)

        response = client.get(f"/api/users/{user.id}")

        assert response.status_code == 404


@pytest.mark.unit
class TestAccountLifecycle:
    """Test disabling and deleting accounts."""

    def test_disable_account(self, client: TestClient, test_user: User, auth_headers: dict, test_db: Session):
        """Test disabling sets the account inactive."""
        response = client.put(
            "/api/users/profile/disable",
            headers=auth_headers,
            json={"password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        test_db.refresh(test_user)
        assert test_user.account_status == AccountStatus.INACTIVE.value

    def test_login_reactivates_disabled_account(self, client: TestClient, test_user: User, test_db: Session):
        """Test logging in again reactivates an inactive account."""
        test_user.account_status = AccountStatus.INACTIVE.value
        test_db.commit()

        response = client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        test_db.refresh(test_user)
        assert test_user.account_status == AccountStatus.ACTIVE.value

    def test_delete_account_wrong_password(self, client: TestClient, auth_headers: dict):
        """Test deletion requires the password."""
        response = client.request(
            "DELETE", "/api/users/profile",
            headers=auth_headers,
            json={"password": "NotMyPass123"}
        )

        assert response.status_code == 400

    def test_delete_account(self, client: TestClient, test_user: User, auth_headers: dict, test_db: Session):
        """Test deletion marks the account deleted and revokes sessions."""
        response = client.request(
            "DELETE", "/api/users/profile",
            headers=auth_headers,
            json={"password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        test_db.refresh(test_user)
        assert test_user.account_status == AccountStatus.DELETED.value
        assert test_db.query(UserSession).filter(UserSession.user_id == test_user.id).count() == 0


@pytest.mark.unit
@pytest.mark.content
class TestPersonalLibrary:
    """Test bookmarks, likes and history of the current user."""

    def test_bookmarks_list(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test bookmarked videos are listed."""
        client.post(f"/api/public/videos/{test_video.id}/bookmark", headers=auth_headers)

        response = client.get("/api/users/me/bookmarks", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["items"][0]["type"] == "VIDEO"
        assert data["items"][0]["video"]["title"] == "Thriller"

    def test_likes_list_filtered(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test likes can be filtered by entity type."""
        client.post(f"/api/public/videos/{test_video.id}/like", headers=auth_headers)

        response = client.get("/api/users/me/likes?entity_type=VIDEO", headers=auth_headers)
        assert response.json()["pagination"]["total"] == 1
        assert response.json()["items"][0]["action"] == "LIKE"

        response = client.get("/api/users/me/likes?entity_type=PLAYLIST", headers=auth_headers)
        assert response.json()["pagination"]["total"] == 0

    def test_history(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test the user's own actions are listed newest first."""
        client.get(f"/api/public/videos/{test_video.id}", headers=auth_headers)

        response = client.get("/api/users/me/history?action_type=VIDEO_VIEW", headers=auth_headers)

        assert response.status_code == 200
        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["entity_id"] == str(test_video.id)
