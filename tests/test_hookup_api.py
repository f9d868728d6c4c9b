"""Route-level tests for the hookup API: gate ordering, envelopes, uploads."""
import re
import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from app import main
from app.api import uploads
from app.utils.exceptions import HttpException

BASE = "/api/v1/hookup"

FILENAME_PATTERN = re.compile(r"^hookup--\d{14,17}\.jpeg$")

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _hookup(gender="male", **overrides) -> dict:
    data = {
        "id": str(uuid.uuid4()),
        "gender": gender,
        "status": "active",
        "winner_id": None,
        "decided_at": None,
        "entries": [],
        "created_at": "2026-10-18T12:00:00+00:00",
        "updated_at": "2026-10-18T12:00:00+00:00",
    }
    data.update(overrides)
    return data


class TestAuthentication:
    """Requests without a valid token never reach the handler."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/active"),
            ("get", "/last_winners"),
            ("get", "/"),
        ],
    )
    def test_missing_token_is_401(self, client, fake_service, method, path):
        response = getattr(client, method)(f"{BASE}{path}")
        assert response.status_code == 401
        assert response.json() == {
            "status": "fail",
            "message": "You are not logged in! Please log in to get access.",
        }
        fake_service.get_active.assert_not_awaited()
        fake_service.get_last_winners.assert_not_awaited()
        fake_service.get_all.assert_not_awaited()

    def test_missing_token_on_admin_route_is_401_not_403(self, client, fake_service):
        response = client.post(f"{BASE}/", json={"gender": "male"})
        assert response.status_code == 401
        fake_service.create.assert_not_awaited()

    def test_garbage_token_is_401(self, client, fake_service):
        response = client.get(f"{BASE}/active", headers=_auth("not-a-jwt"))
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token. Please log in again."
        fake_service.get_active.assert_not_awaited()

    def test_token_signed_with_other_secret_is_401(self, client, sample_user_id):
        token = jwt.encode(
            {"sub": str(sample_user_id), "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "some-other-secret",
            algorithm="HS256",
        )
        response = client.get(f"{BASE}/active", headers=_auth(token))
        assert response.status_code == 401

    def test_expired_token_is_401(self, client, fake_service, sample_user_id):
        token = jwt.encode(
            {"sub": str(sample_user_id), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            "test-secret",
            algorithm="HS256",
        )
        response = client.get(f"{BASE}/active", headers=_auth(token))
        assert response.status_code == 401
        assert response.json()["message"] == "Your token has expired! Please log in again."
        fake_service.get_active.assert_not_awaited()

    def test_subject_must_be_a_user_id(self, client):
        token = jwt.encode({"sub": "alice"}, "test-secret", algorithm="HS256")
        response = client.get(f"{BASE}/active", headers=_auth(token))
        assert response.status_code == 401


class TestAdminRoutes:
    """POST / PATCH / PUT admin routes reject non-admin identities."""

    def test_create_as_user_is_403(self, client, fake_service, user_token):
        response = client.post(f"{BASE}/", json={"gender": "male"}, headers=_auth(user_token))
        assert response.status_code == 403
        assert response.json() == {
            "status": "fail",
            "message": "You do not have permission to perform this action",
        }
        fake_service.create.assert_not_awaited()

    def test_set_winner_as_user_is_403(self, client, fake_service, user_token, sample_hookup_id):
        response = client.patch(
            f"{BASE}/{sample_hookup_id}",
            json={"user": str(uuid.uuid4())},
            headers=_auth(user_token),
        )
        assert response.status_code == 403
        fake_service.set_winner.assert_not_awaited()

    def test_set_status_as_user_is_403(self, client, fake_service, user_token, sample_hookup_id):
        response = client.put(
            f"{BASE}/{sample_hookup_id}",
            json={"status": "inactive"},
            headers=_auth(user_token),
        )
        assert response.status_code == 403
        fake_service.update_status_hookup.assert_not_awaited()

    def test_role_gate_runs_before_validation(self, client, fake_service, user_token):
        response = client.post(f"{BASE}/", json={"gender": "robot"}, headers=_auth(user_token))
        assert response.status_code == 403


class TestCreate:

    def test_create_returns_201_envelope(self, client, fake_service, admin_token):
        created = _hookup("male")
        fake_service.create.return_value = created

        response = client.post(f"{BASE}/", json={"gender": "male"}, headers=_auth(admin_token))

        assert response.status_code == 201
        assert response.json() == {"status": "success", "data": created}
        fake_service.create.assert_awaited_once_with("male", db_session=None)

    @pytest.mark.parametrize(
        "body",
        [{}, {"gender": "robot"}, {"gender": "male", "extra": 1}],
    )
    def test_invalid_body_is_400(self, client, fake_service, admin_token, body):
        response = client.post(f"{BASE}/", json=body, headers=_auth(admin_token))
        assert response.status_code == 400
        payload = response.json()
        assert payload["status"] == "fail"
        assert payload["errors"]
        fake_service.create.assert_not_awaited()


class TestReads:

    def test_active_defaults_to_male(self, client, fake_service, user_token):
        fake_service.get_active.return_value = _hookup("male")
        response = client.get(f"{BASE}/active", headers=_auth(user_token))
        assert response.status_code == 200
        assert response.json()["status"] == "success"
        fake_service.get_active.assert_awaited_once_with("male", db_session=None)

    def test_active_uses_gender_query(self, client, fake_service, user_token):
        fake_service.get_active.return_value = _hookup("female")
        response = client.get(f"{BASE}/active?gender=female", headers=_auth(user_token))
        assert response.status_code == 200
        fake_service.get_active.assert_awaited_once_with("female", db_session=None)

    def test_last_winners(self, client, fake_service, user_token):
        winners = [{"hookup_id": str(uuid.uuid4()), "gender": "male"}]
        fake_service.get_last_winners.return_value = winners
        response = client.get(f"{BASE}/last_winners", headers=_auth(user_token))
        assert response.status_code == 200
        assert response.json() == {"status": "success", "data": winners}

    def test_all_winners_is_public(self, client, fake_service, user_token):
        fake_service.get_all_winners.return_value = []

        anonymous = client.get(f"{BASE}/all_winners")
        authenticated = client.get(f"{BASE}/all_winners", headers=_auth(user_token))

        assert anonymous.status_code == 200
        assert authenticated.status_code == 200
        assert anonymous.json() == authenticated.json() == {"status": "success", "data": []}
        assert fake_service.get_all_winners.await_count == 2
        for call in fake_service.get_all_winners.await_args_list:
            assert call.args == ("male",)

    def test_all_winners_uses_gender_query(self, client, fake_service):
        fake_service.get_all_winners.return_value = []
        client.get(f"{BASE}/all_winners?gender=female")
        fake_service.get_all_winners.assert_awaited_once_with("female", db_session=None)

    def test_list_passes_query_through(self, client, fake_service, user_token):
        fake_service.get_all.return_value = []
        response = client.get(
            f"{BASE}/?gender=female&sort=-created_at&page=2",
            headers=_auth(user_token),
        )
        assert response.status_code == 200
        fake_service.get_all.assert_awaited_once_with(
            {"gender": "female", "sort": "-created_at", "page": "2"},
            db_session=None,
        )


class TestSubmitPhoto:

    def test_stores_one_file_and_passes_its_name(
        self, client, fake_service, user_token, sample_user_id, sample_hookup_id, upload_dir,
    ):
        fake_service.add.return_value = _hookup("male")

        response = client.patch(
            f"{BASE}/{sample_hookup_id}/submit",
            files={"image": ("me.png", PNG_BYTES, "image/png")},
            headers=_auth(user_token),
        )

        assert response.status_code == 200
        stored = list(upload_dir.iterdir())
        assert len(stored) == 1
        assert FILENAME_PATTERN.match(stored[0].name)
        assert stored[0].read_bytes() == PNG_BYTES
        fake_service.add.assert_awaited_once_with(
            sample_hookup_id, sample_user_id, stored[0].name, db_session=None,
        )

    def test_non_image_is_rejected_without_writing(
        self, client, fake_service, user_token, sample_hookup_id, upload_dir,
    ):
        response = client.patch(
            f"{BASE}/{sample_hookup_id}/submit",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=_auth(user_token),
        )

        assert response.status_code == 400
        assert response.json() == {
            "status": "fail",
            "message": "Not an image! Please upload only image files.",
        }
        assert not upload_dir.exists() or not any(upload_dir.iterdir())
        fake_service.add.assert_not_awaited()

    def test_two_images_are_rejected(self, client, fake_service, user_token, sample_hookup_id):
        response = client.patch(
            f"{BASE}/{sample_hookup_id}/submit",
            files=[
                ("image", ("a.png", PNG_BYTES, "image/png")),
                ("image", ("b.png", PNG_BYTES, "image/png")),
            ],
            headers=_auth(user_token),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Too many files"
        fake_service.add.assert_not_awaited()

    def test_unexpected_field_is_rejected(self, client, fake_service, user_token, sample_hookup_id):
        response = client.patch(
            f"{BASE}/{sample_hookup_id}/submit",
            files={"photo": ("a.png", PNG_BYTES, "image/png")},
            headers=_auth(user_token),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Unexpected field"

    def test_anonymous_upload_writes_nothing(
        self, client, fake_service, sample_hookup_id, upload_dir,
    ):
        response = client.patch(
            f"{BASE}/{sample_hookup_id}/submit",
            files={"image": ("me.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 401
        assert not upload_dir.exists()
        fake_service.add.assert_not_awaited()

    def test_without_file_passes_none(
        self, client, fake_service, user_token, sample_user_id, sample_hookup_id,
    ):
        fake_service.add.side_effect = HttpException("Please upload an image", 400)
        response = client.patch(
            f"{BASE}/{sample_hookup_id}/submit", headers=_auth(user_token),
        )
        assert response.status_code == 400
        fake_service.add.assert_awaited_once_with(
            sample_hookup_id, sample_user_id, None, db_session=None,
        )

    def test_file_is_kept_when_service_fails(
        self, client, fake_service, user_token, sample_hookup_id, upload_dir,
    ):
        fake_service.add.side_effect = HttpException("This hookup is no longer active", 400)
        response = client.patch(
            f"{BASE}/{sample_hookup_id}/submit",
            files={"image": ("me.jpg", PNG_BYTES, "image/jpeg")},
            headers=_auth(user_token),
        )
        assert response.status_code == 400
        assert len(list(upload_dir.iterdir())) == 1

    def test_partial_file_is_removed_when_write_fails(
        self, client, fake_service, user_token, sample_hookup_id, upload_dir, monkeypatch,
    ):
        async def _disk_full(upload, directory, filename):
            upload_dir.mkdir(parents=True, exist_ok=True)
            (upload_dir / filename).write_bytes(PNG_BYTES[:4])
            raise OSError("No space left on device")

        monkeypatch.setattr(uploads, "save_upload", _disk_full)
        response = TestClient(main.app, raise_server_exceptions=False).patch(
            f"{BASE}/{sample_hookup_id}/submit",
            files={"image": ("me.png", PNG_BYTES, "image/png")},
            headers=_auth(user_token),
        )

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Something went wrong"}
        assert list(upload_dir.iterdir()) == []
        fake_service.add.assert_not_awaited()


class TestAdminWrites:

    def test_set_winner(self, client, fake_service, admin_token, sample_hookup_id):
        winner = uuid.uuid4()
        decided = _hookup("male", winner_id=str(winner))
        fake_service.set_winner.return_value = decided

        response = client.patch(
            f"{BASE}/{sample_hookup_id}",
            json={"user": str(winner)},
            headers=_auth(admin_token),
        )

        assert response.status_code == 200
        assert response.json() == {"status": "success", "data": decided}
        fake_service.set_winner.assert_awaited_once_with(
            sample_hookup_id, winner, db_session=None,
        )

    def test_set_winner_requires_uuid(self, client, fake_service, admin_token, sample_hookup_id):
        response = client.patch(
            f"{BASE}/{sample_hookup_id}",
            json={"user": "someone"},
            headers=_auth(admin_token),
        )
        assert response.status_code == 400
        fake_service.set_winner.assert_not_awaited()

    def test_set_status(self, client, fake_service, admin_token, sample_hookup_id):
        fake_service.update_status_hookup.return_value = _hookup("male", status="inactive")
        response = client.put(
            f"{BASE}/{sample_hookup_id}",
            json={"status": "inactive"},
            headers=_auth(admin_token),
        )
        assert response.status_code == 200
        fake_service.update_status_hookup.assert_awaited_once_with(
            sample_hookup_id, "inactive", db_session=None,
        )

    def test_set_status_rejects_unknown_status(
        self, client, fake_service, admin_token, sample_hookup_id,
    ):
        response = client.put(
            f"{BASE}/{sample_hookup_id}",
            json={"status": "paused"},
            headers=_auth(admin_token),
        )
        assert response.status_code == 400
        fake_service.update_status_hookup.assert_not_awaited()


class TestErrorPassThrough:
    """Service errors keep their message and status code."""

    def test_service_http_exception(self, client, fake_service, user_token):
        fake_service.get_active.side_effect = HttpException(
            "No active hookup found for gender 'male'", 404,
        )
        response = client.get(f"{BASE}/active", headers=_auth(user_token))
        assert response.status_code == 404
        assert response.json() == {
            "status": "fail",
            "message": "No active hookup found for gender 'male'",
        }

    def test_plain_exception_becomes_500(self, client, fake_service, user_token):
        fake_service.get_last_winners.side_effect = RuntimeError("database unavailable")
        response = client.get(f"{BASE}/last_winners", headers=_auth(user_token))
        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "database unavailable"}

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json()["status"] == "fail"


class TestShutdown:

    def test_new_requests_are_refused_while_draining(self, client, fake_service, user_token):
        main._shutdown_event.set()
        try:
            response = client.get(f"{BASE}/active", headers=_auth(user_token))
        finally:
            main._shutdown_event.clear()

        assert response.status_code == 503
        assert response.json() == {"status": "error", "message": "Server is shutting down"}
        fake_service.get_active.assert_not_awaited()
