import pytest

from urban_transit.auth.utils import verify_password
from urban_transit.enums import UserRole
from urban_transit.exceptions import InvalidRequest
from urban_transit.users.service import UserService

API = "/api/v1"


# ================================
# Service
# ================================
def test_change_password(db, user):
    UserService.change_password(db, user, "secret123", "newsecret")
    assert verify_password("newsecret", user.password)


def test_change_password_wrong_current(db, user):
    with pytest.raises(InvalidRequest) as exc:
        UserService.change_password(db, user, "not-it", "newsecret")
    assert exc.value.message == "Current password is incorrect"


def test_last_admin_is_protected(db, admin):
    with pytest.raises(InvalidRequest):
        UserService.update_role(db, admin.id, UserRole.USER)
    with pytest.raises(InvalidRequest):
        UserService.update_status(db, admin.id, False)
    with pytest.raises(InvalidRequest):
        UserService.delete_user(db, admin.id)
    with pytest.raises(InvalidRequest):
        UserService.deactivate_account(db, admin)


def test_admin_can_be_demoted_when_another_exists(db, admin, make_user):
    make_user(email="second.admin@example.com", role=UserRole.ADMIN)
    assert UserService.update_role(db, admin.id, UserRole.USER).role == UserRole.USER


def test_inactive_admin_does_not_cover_last_active_admin(db, admin, make_user):
    make_user(email="retired.admin@example.com", role=UserRole.ADMIN, active=False)

    with pytest.raises(InvalidRequest):
        UserService.delete_user(db, admin.id)
    with pytest.raises(InvalidRequest):
        UserService.update_role(db, admin.id, UserRole.USER)
    assert UserService._active_admin_count(db) == 1


def test_inactive_admin_can_be_demoted_and_deleted(db, admin, make_user):
    retired = make_user(email="retired.admin@example.com", role=UserRole.ADMIN, active=False)

    assert UserService.update_role(db, retired.id, UserRole.USER).role == UserRole.USER
    assert UserService.delete_user(db, retired.id) == "User deleted successfully"


def test_delete_user_is_soft(db, user):
    assert UserService.delete_user(db, user.id) == "User deleted successfully"
    assert UserService.get_user_by_id(db, user.id).active is False


def test_search_and_counts(db, user, admin, make_user):
    make_user(email="maria@example.com", full_name="Maria Lopez")

    page = UserService.search_users(db, "LOPEZ", 0, 10)
    assert [u.email for u in page.content] == ["maria@example.com"]

    counts = UserService.count_by_role(db)
    assert counts[UserRole.USER] == 2
    assert counts[UserRole.ADMIN] == 1


# ================================
# HTTP
# ================================
def test_update_profile(client, user_headers):
    response = client.put(f"{API}/users/me", json={"full_name": " Renamed Rider "}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["full_name"] == "Renamed Rider"


def test_change_password_endpoint(client, user_headers):
    response = client.put(f"{API}/users/me/password", headers=user_headers,
                          json={"current_password": "wrong-one", "new_password": "newsecret"})
    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"


def test_admin_endpoints_require_admin(client, user_headers, admin_headers):
    assert client.get(f"{API}/admin/users", headers=user_headers).status_code == 403
    response = client.get(f"{API}/admin/users", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total_elements"] == 2


def test_admin_deactivates_user(client, user, admin_headers):
    response = client.put(f"{API}/admin/users/{user.id}/status", json={"active": False}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "User deactivated successfully"


def test_admin_unknown_user(client, admin_headers):
    response = client.get(f"{API}/admin/users/9999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["success"] is False
