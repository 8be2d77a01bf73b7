from datetime import datetime, timezone

from conftest import auth_header


def add_certificate(db, user_id="user-1", course_id="c1", certificate_id="CERT-ABC123XYZ", day=1):
    db.certificates.docs.append({
        "_id": f"{user_id}_{course_id}",
        "user_id": user_id,
        "course_id": course_id,
        "course_name": f"Course {course_id}",
        "instructor_name": "eXamplify Instructor",
        "issue_date": datetime(2024, 5, day, tzinfo=timezone.utc),
        "certificate_id": certificate_id,
        "metadata": {"version": "1.0", "issuer": "eXamplify Platform", "exam_score": 80.0},
    })


def test_list_my_certificates_newest_first(client, db):
    add_certificate(db, course_id="c1", certificate_id="CERT-AAAAAAAA1", day=1)
    add_certificate(db, course_id="c2", certificate_id="CERT-AAAAAAAA2", day=9)
    add_certificate(db, user_id="user-2", course_id="c1", certificate_id="CERT-AAAAAAAA3")

    response = client.get("/certificates", headers=auth_header())

    assert response.status_code == 200
    assert [c["certificateId"] for c in response.json()] == ["CERT-AAAAAAAA2", "CERT-AAAAAAAA1"]
    assert response.json()[0]["courseName"] == "Course c2"


def test_list_requires_authentication(client, db):
    assert client.get("/certificates").status_code == 403


def test_verify_known_certificate(client, db):
    add_certificate(db)

    data = client.get("/certificates/verify/CERT-ABC123XYZ").json()

    assert data["valid"] is True
    assert data["courseId"] == "c1"
    assert "userId" not in data


def test_verify_unknown_certificate(client):
    assert client.get("/certificates/verify/CERT-NOPE00000").json()["valid"] is False


def test_download_renders_png_for_holder(client, db):
    add_certificate(db)

    response = client.get("/certificates/CERT-ABC123XYZ/download", headers=auth_header())

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


def test_download_hidden_from_other_users(client, db):
    add_certificate(db)

    response = client.get("/certificates/CERT-ABC123XYZ/download", headers=auth_header("user-2"))

    assert response.status_code == 404
