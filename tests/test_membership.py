import pytest

from app import membership
from app.auth import get_password_hash
from app.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from app.models import AdoptionRequest, Animal, Photo, Shelter, User


def make_user(db_session, email, password="not-used"):
    user = User(
        full_name=email.split("@")[0],
        email=email,
        hashed_password=password if password == "not-used" else get_password_hash(password),
        role="USER",
    )
    db_session.add(user)
    db_session.commit()
    return user


SHELTER = {
    "name": "Happy Paws",
    "email": "contact@happypaws.org",
    "address": "Main street 1",
    "phone": "600000000",
    "description": None,
}


@pytest.fixture()
def owner(db_session):
    user = make_user(db_session, "owner@example.com")
    membership.create_shelter(db_session, user, dict(SHELTER))
    return user


def test_create_shelter_promotes_caller(db_session):
    user = make_user(db_session, "founder@example.com")
    shelter, updated = membership.create_shelter(db_session, user, dict(SHELTER))
    assert updated.role == "ADMIN"
    assert updated.is_admin_owner is True
    assert updated.first_login_completed is True
    assert updated.shelter_id == shelter.id


def test_create_shelter_requires_plain_user(db_session, owner):
    with pytest.raises(ForbiddenError):
        membership.create_shelter(db_session, owner, {**SHELTER, "name": "Second"})


@pytest.mark.parametrize(
    "override",
    [
        {"name": "Happy Paws"},
        {"email": "contact@happypaws.org"},
        {"email": "owner@example.com"},
        {"address": "Main street 1"},
        {"phone": "600000000"},
    ],
)
def test_create_shelter_unique_fields(db_session, owner, override):
    user = make_user(db_session, "another@example.com")
    data = {
        "name": "Other",
        "email": "other@shelter.org",
        "address": "Side street 2",
        "phone": "611111111",
        "description": None,
        **override,
    }
    with pytest.raises(ConflictError):
        membership.create_shelter(db_session, user, data)
    db_session.expire_all()
    assert db_session.get(User, user.id).role == "USER"


def test_add_admin(db_session, owner):
    target = make_user(db_session, "helper@example.com")
    added, shelter = membership.add_admin(db_session, owner, "helper@example.com")
    assert added.id == target.id
    assert added.role == "ADMIN"
    assert added.is_admin_owner is False
    assert added.shelter_id == owner.shelter_id
    assert shelter.id == owner.shelter_id


def test_add_admin_rejects_unknown_and_affiliated_users(db_session, owner):
    with pytest.raises(NotFoundError):
        membership.add_admin(db_session, owner, "ghost@example.com")
    other_owner = make_user(db_session, "rival@example.com")
    membership.create_shelter(
        db_session,
        other_owner,
        {"name": "Rival", "email": "rival@shelter.org", "address": "Far away 9"},
    )
    with pytest.raises(InvalidInputError):
        membership.add_admin(db_session, owner, "rival@example.com")


def test_add_admin_blocked_by_active_request_until_withdrawn(db_session, owner):
    target = make_user(db_session, "applicant@example.com")
    animal = Animal(name="Luna", species="Dog", breed="Mix", gender="F", shelter_id=owner.shelter_id)
    db_session.add(animal)
    db_session.commit()
    request = AdoptionRequest(user_id=target.id, animal_id=animal.id, message="hi")
    db_session.add(request)
    db_session.commit()

    with pytest.raises(ConflictError):
        membership.add_admin(db_session, owner, target.email)

    db_session.delete(request)
    db_session.commit()
    added, _ = membership.add_admin(db_session, owner, target.email)
    assert added.role == "ADMIN"
    assert added.is_admin_owner is False


def test_rejected_requests_do_not_block_add_admin(db_session, owner):
    target = make_user(db_session, "applicant@example.com")
    animal = Animal(name="Luna", species="Dog", breed="Mix", gender="F", shelter_id=owner.shelter_id)
    db_session.add(animal)
    db_session.commit()
    db_session.add(AdoptionRequest(user_id=target.id, animal_id=animal.id, message="hi", status="REJECTED"))
    db_session.commit()
    added, _ = membership.add_admin(db_session, owner, target.email)
    assert added.role == "ADMIN"


def test_non_owner_admin_cannot_manage_admins(db_session, owner):
    helper = make_user(db_session, "helper@example.com")
    membership.add_admin(db_session, owner, helper.email)
    make_user(db_session, "third@example.com")
    with pytest.raises(ForbiddenError):
        membership.add_admin(db_session, helper, "third@example.com")
    with pytest.raises(ForbiddenError):
        membership.remove_admin(db_session, helper, owner.id)


def test_owner_cannot_remove_themselves(db_session, owner):
    with pytest.raises(InvalidInputError):
        membership.remove_admin(db_session, owner, owner.id)


def test_remove_admin_resets_role(db_session, owner):
    helper = make_user(db_session, "helper@example.com")
    membership.add_admin(db_session, owner, helper.email)
    membership.remove_admin(db_session, owner, helper.id)
    db_session.expire_all()
    helper = db_session.get(User, helper.id)
    assert helper.role == "USER"
    assert helper.shelter_id is None
    assert helper.is_admin_owner is False


def test_remove_admin_validations(db_session, owner):
    plain = make_user(db_session, "plain@example.com")
    with pytest.raises(NotFoundError):
        membership.remove_admin(db_session, owner, 9999)
    with pytest.raises(ForbiddenError):
        membership.remove_admin(db_session, owner, plain.id)


def test_remove_admin_with_assigned_requests_needs_reassignment(db_session, owner):
    helper = make_user(db_session, "helper@example.com")
    backup = make_user(db_session, "backup@example.com")
    membership.add_admin(db_session, owner, helper.email)
    membership.add_admin(db_session, owner, backup.email)
    adopter = make_user(db_session, "adopter@example.com")
    animal = Animal(name="Luna", species="Dog", breed="Mix", gender="F", shelter_id=owner.shelter_id)
    db_session.add(animal)
    db_session.commit()
    request = AdoptionRequest(
        user_id=adopter.id, animal_id=animal.id, message="hi", admin_id=helper.id
    )
    db_session.add(request)
    db_session.commit()

    with pytest.raises(ConflictError):
        membership.remove_admin(db_session, owner, helper.id)
    with pytest.raises(InvalidInputError):
        membership.remove_admin(db_session, owner, helper.id, new_admin_id=adopter.id)

    membership.remove_admin(db_session, owner, helper.id, new_admin_id=backup.id)
    db_session.expire_all()
    assert db_session.get(AdoptionRequest, request.id).admin_id == backup.id
    assert db_session.get(User, helper.id).role == "USER"


def test_update_shelter_requires_password_and_ownership(db_session):
    user = make_user(db_session, "owner@example.com", password="secret123")
    shelter, owner = membership.create_shelter(db_session, user, dict(SHELTER))

    with pytest.raises(InvalidInputError):
        membership.update_shelter(db_session, owner, shelter.id, {"name": "New"}, None)
    with pytest.raises(ForbiddenError):
        membership.update_shelter(db_session, owner, shelter.id, {"name": "New"}, "wrong")
    with pytest.raises(NotFoundError):
        membership.update_shelter(db_session, owner, 9999, {"name": "New"}, "secret123")

    updated = membership.update_shelter(
        db_session, owner, shelter.id, {"name": "New Name", "phone": None}, "secret123"
    )
    assert updated.name == "New Name"
    assert updated.phone == "600000000"


def test_update_shelter_email_must_be_free(db_session):
    user = make_user(db_session, "owner@example.com", password="secret123")
    shelter, owner = membership.create_shelter(db_session, user, dict(SHELTER))
    make_user(db_session, "taken@example.com")
    with pytest.raises(ConflictError):
        membership.update_shelter(
            db_session, owner, shelter.id, {"email": "taken@example.com"}, "secret123"
        )


def test_delete_shelter_cascades_and_demotes_admins(db_session, owner, storage):
    helper = make_user(db_session, "helper@example.com")
    membership.add_admin(db_session, owner, helper.email)
    shelter_id = owner.shelter_id
    animal = Animal(name="Luna", species="Dog", breed="Mix", gender="F", shelter_id=shelter_id)
    db_session.add(animal)
    db_session.commit()
    db_session.add(Photo(url="https://img/1.jpg", public_id="test/animals/1/p1", animal_id=animal.id))
    adopter = make_user(db_session, "adopter@example.com")
    db_session.add(AdoptionRequest(user_id=adopter.id, animal_id=animal.id, message="hi"))
    db_session.commit()

    membership.delete_shelter(db_session, owner, shelter_id, storage)

    db_session.expire_all()
    assert db_session.get(Shelter, shelter_id) is None
    assert db_session.query(Animal).count() == 0
    assert db_session.query(Photo).count() == 0
    assert db_session.query(AdoptionRequest).count() == 0
    for user_id in (owner.id, helper.id):
        user = db_session.get(User, user_id)
        assert (user.role, user.shelter_id, user.is_admin_owner) == ("USER", None, False)
    assert storage.deleted_resources == [["test/animals/1/p1"]]


def test_delete_shelter_only_by_owner(db_session, owner, storage):
    helper = make_user(db_session, "helper@example.com")
    membership.add_admin(db_session, owner, helper.email)
    with pytest.raises(ForbiddenError):
        membership.delete_shelter(db_session, helper, owner.shelter_id, storage)


def test_delete_own_account_rules(db_session, owner):
    with pytest.raises(ForbiddenError):
        membership.delete_own_account(db_session, owner, "anything")

    user = make_user(db_session, "leaving@example.com", password="secret123")
    with pytest.raises(InvalidInputError):
        membership.delete_own_account(db_session, user, None)
    with pytest.raises(UnauthorizedError):
        membership.delete_own_account(db_session, user, "wrong")

    animal = Animal(name="Luna", species="Dog", breed="Mix", gender="F", shelter_id=owner.shelter_id)
    db_session.add(animal)
    db_session.commit()
    request = AdoptionRequest(user_id=user.id, animal_id=animal.id, message="hi", status="REJECTED")
    db_session.add(request)
    db_session.commit()
    with pytest.raises(ConflictError):
        membership.delete_own_account(db_session, user, "secret123")

    db_session.delete(request)
    db_session.commit()
    user_id = user.id
    membership.delete_own_account(db_session, user, "secret123")
    db_session.expire_all()
    assert db_session.get(User, user_id) is None


def test_delete_user_by_owner(db_session, owner):
    helper = make_user(db_session, "helper@example.com")
    membership.add_admin(db_session, owner, helper.email)
    stranger = make_user(db_session, "stranger@example.com")

    with pytest.raises(ForbiddenError):
        membership.delete_user_by_owner(db_session, helper, owner.id)
    with pytest.raises(ForbiddenError):
        membership.delete_user_by_owner(db_session, owner, stranger.id)
    with pytest.raises(ForbiddenError):
        membership.delete_user_by_owner(db_session, owner, owner.id)
    with pytest.raises(NotFoundError):
        membership.delete_user_by_owner(db_session, owner, 9999)

    helper_id = helper.id
    membership.delete_user_by_owner(db_session, owner, helper_id)
    db_session.expire_all()
    assert db_session.get(User, helper_id) is None


def test_empty_phone_is_stored_as_missing(db_session):
    first = make_user(db_session, "first@example.com")
    second = make_user(db_session, "second@example.com")
    shelter_a, _ = membership.create_shelter(db_session, first, {**SHELTER, "phone": ""})
    shelter_b, _ = membership.create_shelter(
        db_session,
        second,
        {"name": "Other", "email": "other@shelter.org", "address": "Side street 2", "phone": ""},
    )
    assert shelter_a.phone is None
    assert shelter_b.phone is None


def test_create_shelter_race_on_unique_field_is_conflict(db_session, owner, monkeypatch):
    user = make_user(db_session, "late@example.com")
    user_id = user.id
    # a concurrent founder takes the name after the lookup
    monkeypatch.setattr(membership, "_check_unique_fields", lambda *args, **kwargs: None)
    with pytest.raises(ConflictError):
        membership.create_shelter(
            db_session,
            user,
            {"name": "Happy Paws", "email": "late@shelter.org", "address": "Late street 3"},
        )
    db_session.expire_all()
    assert db_session.query(Shelter).count() == 1
    assert db_session.get(User, user_id).role == "USER"


def test_list_admins_of_other_shelter_is_forbidden(db_session, owner):
    assert [a.id for a in membership.list_admins(db_session, owner, owner.shelter_id)] == [owner.id]
    with pytest.raises(ForbiddenError):
        membership.list_admins(db_session, owner, owner.shelter_id + 1)
