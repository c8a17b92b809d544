"""
File service API tests - attachments, categories and simple files.
"""

import pytest

from taskhub.models import FileAttachment
from taskhub.models.files import MEGABYTE, create_default_categories, determine_file_type

pytestmark = pytest.mark.file_service

ATTACHMENT = {
    "original_filename": "report.pdf",
    "content_type": "application/pdf",
    "file_size": 2048,
    "attachable_type": "Task",
    "attachable_id": 1,
    "user_id": 1,
}


@pytest.fixture
def categories(db, file_client):
    return {c.name: c.id for c in create_default_categories(db)}


def test_default_categories_are_seeded_once(db, file_client):
    create_default_categories(db)
    create_default_categories(db)

    body = file_client.get("/api/v1/file_categories").json()

    assert [c["name"] for c in body["data"]] == ["documents", "images", "others", "videos"]


def test_create_attachment(file_client, categories):
    response = file_client.post(
        "/api/v1/file_attachments",
        json={**ATTACHMENT, "file_category_id": categories["documents"]},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["upload_status"] == "pending"
    assert data["storage_filename"].endswith(".pdf")
    assert data["human_file_size"] == "2.0 KB"
    assert data["download_url"] == f"/uploads/{data['storage_filename']}"
    assert data["file_category"] == {"id": categories["documents"], "name": "documents"}


def test_attachment_validation(file_client, categories):
    response = file_client.post(
        "/api/v1/file_attachments",
        json={
            **ATTACHMENT,
            "content_type": "video/mp4",
            "file_size": 6 * MEGABYTE,
            "file_category_id": categories["images"],
            "attachable_type": None,
        },
    )

    assert response.status_code == 422
    errors = response.json()["errors"]
    assert errors["content_type"] == ["is not allowed in category images"]
    assert errors["file_size"] == ["cannot exceed 5.0MB in category images"]
    assert errors["attachable_type"] == ["can't be blank"]


def test_dangerous_and_oversized_files_rejected(file_client):
    response = file_client.post(
        "/api/v1/file_attachments",
        json={**ATTACHMENT, "content_type": "application/x-msdownload", "file_size": 11 * MEGABYTE},
    )

    errors = response.json()["errors"]
    assert errors["content_type"] == ["is not an allowed file type"]
    assert errors["file_size"] == ["cannot exceed 10MB"]


def test_unknown_category_rejected(file_client):
    response = file_client.post("/api/v1/file_attachments", json={**ATTACHMENT, "file_category_id": 999})

    assert response.status_code == 422
    assert response.json()["errors"]["file_category_id"] == ["does not exist"]


def test_list_attachments_filters_and_paginates(file_client):
    for index in range(3):
        file_client.post("/api/v1/file_attachments", json={**ATTACHMENT, "original_filename": f"report-{index}.pdf"})
    file_client.post("/api/v1/file_attachments", json={**ATTACHMENT, "user_id": 2})

    body = file_client.get("/api/v1/file_attachments?user_id=1&per_page=2&page=2").json()["data"]

    assert body["pagination"] == {"current_page": 2, "per_page": 2, "total_count": 3, "total_pages": 2}
    assert [a["original_filename"] for a in body["items"]] == ["report-0.pdf"]


def test_upload_status_and_delete(file_client):
    attachment = file_client.post("/api/v1/file_attachments", json=ATTACHMENT).json()["data"]

    completed = file_client.post(f"/api/v1/file_attachments/{attachment['id']}/upload_complete")
    deleted = file_client.delete(f"/api/v1/file_attachments/{attachment['id']}")
    missing = file_client.get(f"/api/v1/file_attachments/{attachment['id']}")

    assert completed.json()["data"]["upload_status"] == "completed"
    assert deleted.status_code == 204
    assert missing.status_code == 404
    assert missing.json() == {"message": "File attachment not found"}


def test_attachment_statistics(file_client):
    file_client.post("/api/v1/file_attachments", json=ATTACHMENT)
    file_client.post(
        "/api/v1/file_attachments",
        json={**ATTACHMENT, "original_filename": "photo.png", "content_type": "image/png", "file_size": 1000},
    )

    without_user = file_client.get("/api/v1/file_attachments/statistics")
    stats = file_client.get("/api/v1/file_attachments/statistics?user_id=1").json()["data"]["statistics"]

    assert without_user.status_code == 400
    assert stats["total_files"] == 2
    assert stats["total_size"] == 3048
    assert stats["images"] == 1
    assert stats["upload_status_distribution"] == {"pending": 2}


def test_create_category_normalizes_and_rejects_duplicates(file_client):
    created = file_client.post(
        "/api/v1/file_categories",
        json={"name": " Spreadsheets ", "allowed_file_types": "text/csv, application/vnd.ms-excel", "max_file_size": MEGABYTE},
    )
    duplicate = file_client.post("/api/v1/file_categories", json={"name": "spreadsheets"})

    assert created.status_code == 201
    data = created.json()["data"]
    assert data["name"] == "spreadsheets"
    assert data["allowed_file_types"] == ["text/csv", "application/vnd.ms-excel"]
    assert data["max_file_size_mb"] == 1.0
    assert duplicate.status_code == 422
    assert duplicate.json()["errors"]["name"] == ["has already been taken"]


def test_validate_file_against_category(file_client, categories):
    images = categories["images"]

    ok = file_client.post(f"/api/v1/file_categories/{images}/validate_file", json={"content_type": "image/png", "file_size": 100})
    bad = file_client.post(
        f"/api/v1/file_categories/{images}/validate_file",
        json={"content_type": "text/plain", "file_size": 6 * MEGABYTE},
    )

    assert ok.json()["data"] == {"valid": True, "errors": []}
    assert bad.json()["data"]["valid"] is False
    assert len(bad.json()["data"]["errors"]) == 2


def test_deleting_category_keeps_files(file_client, categories, db):
    documents = categories["documents"]
    attachment = file_client.post("/api/v1/file_attachments", json={**ATTACHMENT, "file_category_id": documents}).json()["data"]

    response = file_client.delete(f"/api/v1/file_categories/{documents}")

    assert response.status_code == 204
    db.expire_all()
    assert db.get(FileAttachment, attachment["id"]).file_category_id is None


def test_simple_files(file_client, categories):
    created = file_client.post(
        "/api/v1/simple_files",
        json={"filename": "holiday.JPG", "file_url": "https://cdn.example.com/holiday.jpg", "user_id": 1, "file_category_id": categories["images"]},
    )
    file_client.post("/api/v1/simple_files", json={"filename": "notes.txt", "file_url": "https://cdn.example.com/notes.txt", "user_id": 1})
    invalid = file_client.post("/api/v1/simple_files", json={"filename": "", "user_id": 1})

    listing = file_client.get("/api/v1/simple_files?user_id=1").json()["data"]
    stats = file_client.get("/api/v1/simple_files/statistics?user_id=1").json()["data"]["statistics"]

    assert created.status_code == 201
    assert created.json()["data"]["file_type"] == "image"
    assert created.json()["data"]["category_name"] == "images"
    assert invalid.status_code == 422
    assert set(invalid.json()["errors"]) == {"filename", "file_url"}
    assert listing["pagination"]["total_count"] == 2
    assert stats["file_type_distribution"] == {"image": 1, "document": 1}
    assert stats["category_distribution"] == {"images": 1}


@pytest.mark.parametrize("filename, file_type", [
    ("a.pdf", "document"),
    ("b.PNG", "image"),
    ("c.tar", "archive"),
    ("d.xyz", "other"),
    ("noextension", "other"),
])
def test_determine_file_type(filename, file_type):
    assert determine_file_type(filename) == file_type
