import pytest
from fastapi.testclient import TestClient

import config
from attachments import AttachmentStore
from conftest import PDF_BYTES, PNG_BYTES
from main import app, get_profile_service
from service import ProfileService


FORM = {
    "fullName": "Linus Example",
    "email": "linus@example.com",
    "phone": "9876543210",
    "dob": "1985-04-02",
    "gender": "Male",
    "skills": ["Go", "SQL"],
    "department": "Platform",
    "address": "1 Kernel Street",
    "isActive": "false",
}


def _files(*gallery):
    files = [
        ("resume", ("cv.pdf", PDF_BYTES, "application/pdf")),
        ("profileImage", ("me.png", PNG_BYTES, "image/png")),
    ]
    files += [("galleryImages", (name, PNG_BYTES, "image/png")) for name in gallery]
    return files


@pytest.fixture
def client(collection, policies):
    # same root the /uploads mount serves from
    store = AttachmentStore(config.UPLOAD_BASE_DIR, policies, url_prefix=config.UPLOAD_URL_PREFIX)
    service = ProfileService(collection, store, gallery_max_files=3)
    app.dependency_overrides[get_profile_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_create_then_get_and_list(client):
    resp = client.post("/profiles", data=FORM, files=_files("g.png"))

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Profile created successfully"
    profile = body["data"]
    assert profile["skills"] == ["Go", "SQL"]
    assert profile["isActive"] is False
    assert profile["dob"] == "1985-04-02"

    fetched = client.get(f"/profiles/{profile['_id']}").json()["data"]
    assert fetched["email"] == "linus@example.com"

    listed = client.get("/profiles").json()
    assert [p["_id"] for p in listed["data"]] == [profile["_id"]]


def test_stored_files_are_served_from_their_reference(client):
    profile = client.post("/profiles", data=FORM, files=_files()).json()["data"]

    served = client.get(f"/{profile['resume']}")

    assert served.status_code == 200
    assert served.content == PDF_BYTES


def test_create_missing_field_is_400_with_details(client):
    form = {k: v for k, v in FORM.items() if k != "address"}

    resp = client.post("/profiles", data=form, files=_files())

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "address" in resp.json()["errors"]


def test_duplicate_email_is_400(client):
    client.post("/profiles", data=FORM, files=_files())

    resp = client.post("/profiles", data=FORM, files=_files())

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Email already exists"}
    assert len(client.get("/profiles").json()["data"]) == 1


def test_update_gallery_and_fields(client):
    profile = client.post("/profiles", data=FORM, files=_files("a.png", "b.png")).json()["data"]
    a, b = profile["galleryImages"]

    resp = client.put(
        f"/profiles/{profile['_id']}",
        data={"department": "Security", "existingGalleryImages": [b]},
        files=[("galleryImages", ("c.png", PNG_BYTES, "image/png"))],
    )

    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["department"] == "Security"
    assert updated["fullName"] == FORM["fullName"]
    assert updated["galleryImages"][0] == b
    assert len(updated["galleryImages"]) == 2
    assert updated["resume"] == profile["resume"]
    assert client.get(f"/{a}").status_code == 404


def test_delete_then_get_is_404(client):
    profile = client.post("/profiles", data=FORM, files=_files()).json()["data"]

    resp = client.delete(f"/profiles/{profile['_id']}")

    assert resp.status_code == 200
    assert resp.json()["message"] == "Profile deleted successfully"
    assert client.get(f"/profiles/{profile['_id']}").status_code == 404
    assert client.get(f"/{profile['profileImage']}").status_code == 404


def test_malformed_id_is_400(client):
    for resp in (
        client.get("/profiles/nope"),
        client.put("/profiles/nope", data={"fullName": "X"}),
        client.delete("/profiles/nope"),
    ):
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Invalid employee ID"}


def test_unknown_id_is_404(client):
    resp = client.get("/profiles/64b7f0c2a1b2c3d4e5f60718")

    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_storage_failure_is_opaque_500(client, collection):
    collection.fail_on.add("find")

    resp = client.get("/profiles")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Server Error"}
