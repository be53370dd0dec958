import pytest

from conftest import auth_header, make_user


def test_profile(client, db, citizen):
    res = client.get("/auth/profile", headers=auth_header(citizen))
    assert res.status_code == 200
    body = res.json()
    assert body["uid"] == "citizen1"
    assert body["role"] == "citizen"
    assert body["issuesReported"] == 0


def test_profile_missing_user(client):
    res = client.get("/auth/profile", headers=auth_header("ghost"))
    assert res.status_code == 404
    assert res.json() == {"error": "User not found"}


def test_update_profile_trims_display_name(client, db, citizen):
    res = client.patch("/auth/profile", json={"displayName": "  Asha  "}, headers=auth_header(citizen))
    assert res.status_code == 200
    assert db.docs("users")[citizen]["displayName"] == "Asha"


def test_update_profile_rejects_short_name(client, db, citizen):
    res = client.patch("/auth/profile", json={"displayName": " a "}, headers=auth_header(citizen))
    assert res.status_code == 400
    assert "Display name must be at least 2 characters" in res.json()["details"][0]


def test_verify_known_user_records_login(client, db):
    make_user(db, "vol1", role="volunteer")
    res = client.post("/auth/verify", headers=auth_header("vol1"))
    assert res.status_code == 200
    assert res.json() == {"uid": "vol1", "email": "vol1@example.com", "role": "volunteer", "verified": True}
    assert db.docs("users")["vol1"]["lastLogin"] is not None


def test_verify_unknown_user_defaults_to_citizen(client, db):
    res = client.post("/auth/verify", headers=auth_header("newbie"))
    assert res.status_code == 200
    assert res.json()["role"] == "citizen"
    assert "newbie" not in db.docs("users")


@pytest.mark.parametrize(
    "token, message",
    [
        ("expired", "Token expired"),
        ("revoked", "Token revoked"),
        ("garbage", "Invalid token"),
    ],
)
def test_rejected_tokens(client, token, message):
    res = client.get("/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json() == {"error": message}


def test_missing_token(client):
    res = client.post("/auth/verify")
    assert res.status_code == 401
    assert res.json() == {"error": "No token provided"}
