"""
Tests for video memories, replies and moderation.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from throwback.models.video import Video
from throwback.models.comment import Comment
from throwback.models.enums import CommentStatus


@pytest.fixture
def memory(client: TestClient, test_video: Video, auth_headers: dict) -> dict:
    response = client.post(
        f"/api/public/videos/{test_video.id}/memories",
        headers=auth_headers,
        json={"content": "Saw this premiere on MTV in 1983"}
    )
    return response.json()


@pytest.mark.unit
@pytest.mark.content
class TestMemoryPosting:
    """Test posting and listing memories."""

    def test_post_memory(self, client: TestClient, test_video: Video, auth_headers: dict, test_db: Session):
        """Test a memory is created and the video counter increments."""
        response = client.post(
            f"/api/public/videos/{test_video.id}/memories",
            headers=auth_headers,
            json={"content": "  My first dance at school  "}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["content"] == "My first dance at school"
        assert data["author"]["first_name"] == "Alice"
        assert data["reply_count"] == 0

        test_db.refresh(test_video)
        assert test_video.comment_count == 1

    def test_post_memory_too_long(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test memories are limited to 500 characters."""
        response = client.post(
            f"/api/public/videos/{test_video.id}/memories",
            headers=auth_headers,
            json={"content": "x" * 501}
        )

        assert response.status_code == 422

    def test_post_memory_blank(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test blank memories are rejected."""
        response = client.post(
            f"/api/public/videos/{test_video.id}/memories",
            headers=auth_headers,
            json={"content": "   "}
        )

        assert response.status_code == 422

    def test_post_memory_unknown_video(self, client: TestClient, auth_headers: dict):
        """Test posting on an unknown video returns 404."""
        response = client.post(
            "/api/public/videos/00000000-0000-0000-0000-000000000000/memories",
            headers=auth_headers,
            json={"content": "Hello"}
        )

        assert response.status_code == 404

    def test_list_memories_top_level_only(
        self, client: TestClient, test_video: Video, memory: dict, other_headers: dict
    ):
        """Test replies are not listed with top-level memories."""
        client.post(
            f"/api/memories/{memory['id']}/replies",
            headers=other_headers,
            json={"content": "Me too!"}
        )

        response = client.get(f"/api/public/videos/{test_video.id}/memories")

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["items"][0]["reply_count"] == 1

    def test_recent_memories(self, client: TestClient, memory: dict):
        """Test the latest memories across videos."""
        response = client.get("/api/public/memories/recent")

        assert response.status_code == 200
        assert response.json()[0]["id"] == memory["id"]


@pytest.mark.unit
@pytest.mark.content
class TestMemoryThreads:
    """Test replies and reactions."""

    def test_reply(self, client: TestClient, memory: dict, other_headers: dict):
        """Test replies are listed under their parent."""
        response = client.post(
            f"/api/memories/{memory['id']}/replies",
            headers=other_headers,
            json={"content": "Same here"}
        )
        assert response.status_code == 201
        assert response.json()["parent_id"] == memory["id"]

        replies = client.get(f"/api/memories/{memory['id']}/replies").json()
        assert replies["pagination"]["total"] == 1

    def test_nested_reply_rejected(self, client: TestClient, memory: dict, other_headers: dict):
        """Test a reply cannot itself be replied to."""
        reply = client.post(
            f"/api/memories/{memory['id']}/replies",
            headers=other_headers,
            json={"content": "Same here"}
        ).json()

        response = client.post(
            f"/api/memories/{reply['id']}/replies",
            headers=other_headers,
            json={"content": "Deeper"}
        )

        assert response.status_code == 400

    def test_like_memory(self, client: TestClient, memory: dict, other_headers: dict):
        """Test liking a memory toggles its counter."""
        response = client.post(f"/api/memories/{memory['id']}/like", headers=other_headers)
        assert response.json()["likes"] == 1

        response = client.post(f"/api/memories/{memory['id']}/dislike", headers=other_headers)
        assert response.json()["likes"] == 0
        assert response.json()["dislikes"] == 1


@pytest.mark.unit
@pytest.mark.content
class TestMemoryDeletion:
    """Test deleting memories."""

    def test_author_deletes(
        self, client: TestClient, memory: dict, auth_headers: dict, test_db: Session, test_video: Video
    ):
        """Test authors can delete their memories."""
        response = client.delete(f"/api/memories/{memory['id']}", headers=auth_headers)

        assert response.status_code == 200
        test_db.refresh(test_video)
        assert test_video.comment_count == 0
        assert client.get(f"/api/memories/{memory['id']}/replies").status_code == 404

    def test_other_user_cannot_delete(self, client: TestClient, memory: dict, other_headers: dict):
        """Test users cannot delete someone else's memory."""
        response = client.delete(f"/api/memories/{memory['id']}", headers=other_headers)

        assert response.status_code == 403

    def test_admin_deletes_any(self, client: TestClient, memory: dict, admin_headers: dict):
        """Test admins can delete any memory."""
        response = client.delete(f"/api/memories/{memory['id']}", headers=admin_headers)

        assert response.status_code == 200


@pytest.mark.unit
@pytest.mark.content
@pytest.mark.admin
class TestMemoryModeration:
    """Test reports and admin moderation."""

    def test_report_memory(self, client: TestClient, memory: dict, other_headers: dict):
        """Test reporting a memory."""
        response = client.post(
            f"/api/memories/{memory['id']}/report",
            headers=other_headers,
            json={"reason": "Spam link"}
        )

        assert response.status_code == 200

    def test_report_twice_conflicts(self, client: TestClient, memory: dict, other_headers: dict):
        """Test a user can report a memory only once."""
        body = {"reason": "Spam link"}
        client.post(f"/api/memories/{memory['id']}/report", headers=other_headers, json=body)

        response = client.post(f"/api/memories/{memory['id']}/report", headers=other_headers, json=body)

        assert response.status_code == 409

    def test_cannot_report_own_memory(self, client: TestClient, memory: dict, auth_headers: dict):
        """Test authors cannot report themselves."""
        response = client.post(
            f"/api/memories/{memory['id']}/report",
            headers=auth_headers,
            json={"reason": "Oops"}
        )

        assert response.status_code == 400

    def test_admin_lists_reported(self, client: TestClient, memory: dict, other_headers: dict, admin_headers: dict):
        """Test the moderation queue filters reported memories."""
        client.post(f"/api/memories/{memory['id']}/report", headers=other_headers, json={"reason": "Spam link"})

        response = client.get("/api/admin/comments?reported=true", headers=admin_headers)

        assert response.status_code == 200
        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["reports"][0]["reason"] == "Spam link"

    def test_moderate_hides_memory(
        self, client: TestClient, test_video: Video, memory: dict, admin_headers: dict,
        admin_user, test_db: Session
    ):
        """Test moderated memories leave the public listing."""
        response = client.put(
            f"/api/admin/comments/{memory['id']}/moderate",
            headers=admin_headers,
            json={"status": "MODERATED", "reason": "Off topic"}
        )

        assert response.status_code == 200
        assert response.json()["moderated_by"] == str(admin_user.id)

        listing = client.get(f"/api/public/videos/{test_video.id}/memories").json()
        assert listing["pagination"]["total"] == 0
        test_db.refresh(test_video)
        assert test_video.comment_count == 0

    def test_deleting_moderated_memory_keeps_count(
        self, client: TestClient, test_video: Video, memory: dict,
        auth_headers: dict, admin_headers: dict, test_db: Session
    ):
        """Test a moderated memory is not subtracted again when its author deletes it."""
        client.post(
            f"/api/public/videos/{test_video.id}/memories",
            headers=auth_headers,
            json={"content": "Taped it off the radio"}
        )
        client.put(
            f"/api/admin/comments/{memory['id']}/moderate",
            headers=admin_headers,
            json={"status": "MODERATED", "reason": "Off topic"}
        )

        response = client.delete(f"/api/memories/{memory['id']}", headers=auth_headers)

        assert response.status_code == 200
        test_db.refresh(test_video)
        assert test_video.comment_count == 1

    def test_moderated_memory_cannot_be_replied(
        self, client: TestClient, memory: dict, admin_headers: dict, other_headers: dict, test_db: Session
    ):
        """Test replies to moderated memories are refused."""
        comment = test_db.query(Comment).one()
        comment.status = CommentStatus.MODERATED.value
        test_db.commit()

        response = client.post(
            f"/api/memories/{memory['id']}/replies",
            headers=other_headers,
            json={"content": "Hello?"}
        )

        assert response.status_code == 400

    def test_moderation_requires_admin(self, client: TestClient, memory: dict, other_headers: dict):
        """Test regular users cannot moderate."""
        response = client.put(
            f"/api/admin/comments/{memory['id']}/moderate",
            headers=other_headers,
            json={"status": "MODERATED"}
        )

        assert response.status_code == 403
