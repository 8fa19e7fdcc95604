from fastapi import status

from app import crud
from app.auth import create_access_token, get_password_hash
from app.core import get_settings
from app.models import Animal


def create_user(db_session, email, password="secret123"):
    return crud.create_user(db_session, email.split("@")[0].title(), email, get_password_hash(password))


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user, get_settings())}"}


SHELTER = {
    "name": "Happy Paws",
    "email": "contact@happypaws.org",
    "address": "Main street 1",
    "phone": "600000000",
    "description": "Dogs and cats",
}


def found_shelter(client, db_session, email="owner@example.com"):
    user = create_user(db_session, email)
    response = client.post("/api/shelters/create-shelter", json=SHELTER, headers=auth(user))
    assert response.status_code == status.HTTP_201_CREATED
    return user, response.json()


def test_create_shelter_returns_shelter_and_owner(client, db_session):
    _, body = found_shelter(client, db_session)
    assert body["shelter"]["name"] == "Happy Paws"
    assert body["user"]["role"] == "ADMIN"
    assert body["user"]["isAdminOwner"] is True
    assert body["user"]["firstLoginCompleted"] is True
    assert body["user"]["shelterId"] == body["shelter"]["id"]


def test_create_shelter_missing_fields(client, db_session):
    user = create_user(db_session, "user@example.com")
    response = client.post(
        "/api/shelters/create-shelter", json={"name": "Only name"}, headers=auth(user)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Invalid input."


def test_create_shelter_email_of_existing_user(client, db_session):
    create_user(db_session, "taken@example.com")
    user = create_user(db_session, "user@example.com")
    response = client.post(
        "/api/shelters/create-shelter",
        json={**SHELTER, "email": "taken@example.com"},
        headers=auth(user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_public_listing_and_detail(client, db_session):
    _, body = found_shelter(client, db_session)
    shelter_id = body["shelter"]["id"]
    db_session.add(Animal(name="Luna", species="Dog", breed="Mix", gender="F", shelter_id=shelter_id))
    db_session.commit()

    listing = client.get("/api/shelters")
    assert listing.status_code == status.HTTP_200_OK
    shelters = listing.json()["shelters"]
    assert shelters[0]["admins"][0]["email"] == "owner@example.com"
    assert shelters[0]["animals"][0]["name"] == "Luna"

    detail = client.get(f"/api/shelters/{shelter_id}")
    assert detail.json()["shelter"]["animals"][0]["name"] == "Luna"
    assert client.get("/api/shelters/999").status_code == status.HTTP_404_NOT_FOUND


def test_admin_view_counts(client, db_session):
    owner, body = found_shelter(client, db_session)
    shelter_id = body["shelter"]["id"]
    create_user(db_session, "helper@example.com")
    client.post("/api/shelters/add-admin", json={"email": "helper@example.com"}, headers=auth(owner))

    response = client.get(f"/api/shelters/{shelter_id}/admin", headers=auth(owner))
    assert response.status_code == status.HTTP_200_OK
    view = response.json()["shelter"]
    assert view["adminsCount"] == 2
    assert view["animalsCount"] == 0
    assert view["currentAdmin"]["isAdminOwner"] is True


def test_admin_view_forbidden_for_users(client, db_session):
    _, body = found_shelter(client, db_session)
    user = create_user(db_session, "user@example.com")
    response = client.get(f"/api/shelters/{body['shelter']['id']}/admin", headers=auth(user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_invite_and_list_admins(client, db_session):
    owner, body = found_shelter(client, db_session)
    create_user(db_session, "helper@example.com")
    invited = client.post(
        "/api/shelters/add-admin", json={"email": "helper@example.com"}, headers=auth(owner)
    )
    assert invited.status_code == status.HTTP_200_OK
    assert invited.json()["user"]["role"] == "ADMIN"
    assert invited.json()["user"]["isAdminOwner"] is False

    admins = client.get(
        f"/api/shelters/{body['shelter']['id']}/my-shelter-admins", headers=auth(owner)
    )
    assert [a["email"] for a in admins.json()["admins"]] == [
        "owner@example.com",
        "helper@example.com",
    ]


def test_invite_blocked_by_pending_request(client, db_session):
    owner, body = found_shelter(client, db_session)
    animal = Animal(name="Luna", species="Dog", breed="Mix", gender="F", shelter_id=body["shelter"]["id"])
    db_session.add(animal)
    db_session.commit()
    applicant = create_user(db_session, "applicant@example.com")
    request_id = client.post(
        "/api/adoptions",
        json={"animalId": animal.id, "message": "hi"},
        headers=auth(applicant),
    ).json()["request"]["id"]

    blocked = client.post(
        "/api/shelters/add-admin", json={"email": "applicant@example.com"}, headers=auth(owner)
    )
    assert blocked.status_code == status.HTTP_400_BAD_REQUEST

    client.delete(f"/api/adoptions/{request_id}", headers=auth(owner))
    allowed = client.post(
        "/api/shelters/add-admin", json={"email": "applicant@example.com"}, headers=auth(owner)
    )
    assert allowed.status_code == status.HTTP_200_OK
    assert allowed.json()["user"]["isAdminOwner"] is False


def test_remove_admin_over_http(client, db_session):
    owner, _ = found_shelter(client, db_session)
    helper = create_user(db_session, "helper@example.com")
    client.post("/api/shelters/add-admin", json={"email": helper.email}, headers=auth(owner))

    forbidden = client.post(
        "/api/shelters/remove-admin", json={"adminId": owner.id}, headers=auth(helper)
    )
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    self_removal = client.post(
        "/api/shelters/remove-admin", json={"adminId": owner.id}, headers=auth(owner)
    )
    assert self_removal.status_code == status.HTTP_400_BAD_REQUEST

    removed = client.post(
        "/api/shelters/remove-admin", json={"adminId": helper.id}, headers=auth(owner)
    )
    assert removed.status_code == status.HTTP_200_OK


def test_update_shelter_over_http(client, db_session):
    owner, body = found_shelter(client, db_session)
    shelter_id = body["shelter"]["id"]

    missing = client.put(f"/api/shelters/{shelter_id}", json={"name": "X"}, headers=auth(owner))
    assert missing.status_code == status.HTTP_400_BAD_REQUEST

    wrong = client.put(
        f"/api/shelters/{shelter_id}",
        json={"name": "X", "currentPassword": "nope"},
        headers=auth(owner),
    )
    assert wrong.status_code == status.HTTP_403_FORBIDDEN

    ok = client.put(
        f"/api/shelters/{shelter_id}",
        json={"description": "Only cats now", "currentPassword": "secret123"},
        headers=auth(owner),
    )
    assert ok.status_code == status.HTTP_200_OK
    assert ok.json()["shelter"]["description"] == "Only cats now"
    assert ok.json()["shelter"]["name"] == "Happy Paws"


def test_delete_shelter_over_http(client, db_session, storage):
    owner, body = found_shelter(client, db_session)
    response = client.delete(f"/api/shelters/{body['shelter']['id']}", headers=auth(owner))
    assert response.status_code == status.HTTP_200_OK

    me = client.get("/api/auth/me", headers=auth(owner)).json()["user"]
    assert me["role"] == "USER"
    assert me["shelterId"] is None


def test_create_shelter_rejects_empty_phone(client, db_session):
    user = create_user(db_session, "user@example.com")
    response = client.post(
        "/api/shelters/create-shelter", json={**SHELTER, "phone": ""}, headers=auth(user)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_admins_of_other_shelter_are_forbidden(client, db_session):
    owner, body = found_shelter(client, db_session)
    response = client.get(
        f"/api/shelters/{body['shelter']['id'] + 1}/my-shelter-admins", headers=auth(owner)
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
