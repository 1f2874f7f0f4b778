"""
API tests over the in-memory record store.
"""

import inspect

import pytest
from fastapi.routing import APIRoute

from conftest import auth_headers
from placement_engine.main import app

STUDENT = auth_headers("s1", "student")
OTHER_STUDENT = auth_headers("s2", "student")
INSTITUTE = auth_headers("inst-admin", "institute")
OTHER_INSTITUTE = auth_headers("inst-other", "institute")
COMPANY = auth_headers("c1", "company", name="Acme")


@pytest.fixture
def course(client):
    """Institution with one course requiring GPA 3.0. Returns (institution_id, course_id)."""
    response = client.post("/api/institutions", json={"name": "University A"}, headers=INSTITUTE)
    assert response.status_code == 201
    institution_id = response.json()["id"]

    response = client.post(
        f"/api/institutions/{institution_id}/faculties",
        json={"name": "Engineering"},
        headers=INSTITUTE,
    )
    assert response.status_code == 201

    response = client.post(
        f"/api/institutions/{institution_id}/faculties/Engineering/courses",
        json={"name": "Computer Science", "requirements": {"min_gpa": 3.0}},
        headers=INSTITUTE,
    )
    assert response.status_code == 201
    return institution_id, response.json()["id"]


def upload_transcript(client, headers=STUDENT, gpa=3.5, **fields):
    response = client.put("/api/students/transcript", json={"gpa": gpa, **fields}, headers=headers)
    assert response.status_code == 200
    return response.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["store"] == "connected"


class TestAuth:
    def test_invalid_token(self, client):
        response = client.get("/api/students/applications", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_wrong_role(self, client):
        response = client.get("/api/students/applications", headers=COMPANY)
        assert response.status_code == 403
        assert response.json()["detail"] == "Students only"


class TestInstitutionRoutes:
    def test_get_institution(self, client, course):
        institution_id, course_id = course
        response = client.get(f"/api/institutions/{institution_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "University A"
        assert body["faculties"][0]["courses"][0]["id"] == course_id

    def test_missing_institution(self, client):
        response = client.get("/api/institutions/missing")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "not_found",
            "detail": "Institution not found",
        }

    def test_duplicate_faculty(self, client, course):
        institution_id, _ = course
        response = client.post(
            f"/api/institutions/{institution_id}/faculties",
            json={"name": "Engineering"},
            headers=INSTITUTE,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "constraint_violation"

    def test_list_institutions(self, client, course):
        institution_id, _ = course
        response = client.get("/api/institutions")
        assert response.status_code == 200
        assert [i["id"] for i in response.json()] == [institution_id]

    def test_update_institution_and_requirements(self, client, course):
        institution_id, course_id = course

        response = client.put(f"/api/institutions/{institution_id}", json={"location": "Maseru"}, headers=INSTITUTE)
        assert response.status_code == 200
        assert response.json()["location"] == "Maseru"

        response = client.put(
            f"/api/institutions/{institution_id}/courses/{course_id}/requirements",
            json={"min_gpa": 3.8},
            headers=INSTITUTE,
        )
        assert response.status_code == 200
        assert response.json()["requirements"]["min_gpa"] == 3.8

        upload_transcript(client, gpa=3.5)
        response = client.post(
            "/api/students/applications",
            json={"institution_id": institution_id, "course_id": course_id},
            headers=STUDENT,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "unqualified"

    def test_delete_institution(self, client, course):
        institution_id, _ = course
        response = client.delete(f"/api/institutions/{institution_id}", headers=INSTITUTE)
        assert response.status_code == 200
        assert client.get(f"/api/institutions/{institution_id}").status_code == 404

    def test_other_institute_cannot_change(self, client, course):
        institution_id, course_id = course
        writes = [
            ("put", f"/api/institutions/{institution_id}", {"name": "Renamed"}),
            ("post", f"/api/institutions/{institution_id}/faculties", {"name": "Law"}),
            ("post", f"/api/institutions/{institution_id}/faculties/Engineering/courses", {"name": "Physics"}),
            ("put", f"/api/institutions/{institution_id}/courses/{course_id}/requirements", {"min_gpa": 1.0}),
            ("post", "/api/institutions/admissions/publish", {
                "institution_id": institution_id,
                "course_id": course_id,
                "admitted_students": ["s1"],
                "waiting_list": [],
            }),
        ]
        for method, url, payload in writes:
            response = client.request(method, url, json=payload, headers=OTHER_INSTITUTE)
            assert response.status_code == 403, url
            assert response.json()["error"] == "permission_denied"

        response = client.delete(f"/api/institutions/{institution_id}", headers=OTHER_INSTITUTE)
        assert response.status_code == 403
        assert client.get(f"/api/institutions/{institution_id}").json()["name"] == "University A"


class TestAdmissionFlow:
    """Apply, publish, select over HTTP."""

    def test_apply_publish_select(self, client, course):
        institution_id, course_id = course
        upload_transcript(client)

        response = client.post(
            "/api/students/applications",
            json={"institution_id": institution_id, "course_id": course_id},
            headers=STUDENT,
        )
        assert response.status_code == 201

        response = client.post(
            "/api/institutions/admissions/publish",
            json={
                "institution_id": institution_id,
                "course_id": course_id,
                "admitted_students": ["s1"],
                "waiting_list": ["s2"],
            },
            headers=INSTITUTE,
        )
        assert response.status_code == 201

        admissions = client.get("/api/students/admissions", headers=STUDENT).json()
        assert [a["institution_id"] for a in admissions] == [institution_id]

        position = client.get(f"/api/students/waiting-list/{institution_id}", headers=OTHER_STUDENT)
        assert position.status_code == 200
        assert position.json()["position"] == 1

        response = client.post(
            "/api/students/select-admission",
            json={"selected_institution_id": institution_id},
            headers=STUDENT,
        )
        assert response.status_code == 200
        assert response.json()["accepted_institution_id"] == institution_id

        [application] = client.get("/api/students/applications", headers=STUDENT).json()
        assert application["status"] == "accepted"

    def test_application_cap(self, client, course):
        institution_id, course_id = course
        upload_transcript(client)
        payload = {"institution_id": institution_id, "course_id": course_id}

        for _ in range(2):
            assert client.post("/api/students/applications", json=payload, headers=STUDENT).status_code == 201

        response = client.post("/api/students/applications", json=payload, headers=STUDENT)
        assert response.status_code == 400
        assert response.json()["error"] == "constraint_violation"
        assert response.json()["detail"] == "Maximum 2 applications per institution allowed"

    def test_unqualified(self, client, course):
        institution_id, course_id = course
        upload_transcript(client, gpa=2.0)
        response = client.post(
            "/api/students/applications",
            json={"institution_id": institution_id, "course_id": course_id},
            headers=STUDENT,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "unqualified"

    def test_unknown_course(self, client, course):
        institution_id, _ = course
        upload_transcript(client)
        response = client.post(
            "/api/students/applications",
            json={"institution_id": institution_id, "course_id": "missing"},
            headers=STUDENT,
        )
        assert response.status_code == 404

    def test_transcript_merge(self, client):
        upload_transcript(client, gpa=3.0, field_of_study="Computer Science")
        profile = upload_transcript(client, gpa=3.4)
        assert profile["gpa"] == 3.4
        assert profile["field_of_study"] == "Computer Science"


class TestJobRoutes:
    def post_job(self, client, **requirements):
        response = client.post(
            "/api/company/jobs",
            json={
                "title": "Cloud Engineer",
                "description": "Run the cloud",
                "location": "Remote",
                "requirements": requirements,
            },
            headers=COMPANY,
        )
        assert response.status_code == 201
        return response.json()["id"]

    def test_post_and_rank(self, client):
        upload_transcript(client, certificates=[{"name": "aws"}])
        job_id = self.post_job(client, certificates=["AWS"])

        response = client.get(f"/api/company/jobs/{job_id}/qualified", headers=COMPANY)
        assert response.status_code == 200
        assert [c["student_id"] for c in response.json()] == ["s1"]

        matches = client.get("/api/students/matching-jobs", headers=STUDENT).json()
        assert matches[0]["job"]["company_name"] == "Acme"

    def test_other_company_cannot_view_candidates(self, client):
        job_id = self.post_job(client)
        response = client.get(
            f"/api/company/jobs/{job_id}/qualified",
            headers=auth_headers("c2", "company"),
        )
        assert response.status_code == 403

    def test_notification_inbox(self, client):
        upload_transcript(client)
        self.post_job(client, min_gpa=3.0)

        [notification] = client.get("/api/notifications", headers=STUDENT).json()
        assert notification["company_name"] == "Acme"

        response = client.put(f"/api/notifications/{notification['id']}/read", headers=OTHER_STUDENT)
        assert response.status_code == 403

        response = client.put(f"/api/notifications/{notification['id']}/read", headers=STUDENT)
        assert response.status_code == 200

        response = client.delete(f"/api/notifications/{notification['id']}", headers=STUDENT)
        assert response.status_code == 200
        assert client.get("/api/notifications", headers=STUDENT).json() == []

    def test_manage_own_postings(self, client):
        job_id = self.post_job(client)

        [job] = client.get("/api/company/jobs", headers=COMPANY).json()
        assert job["id"] == job_id

        response = client.put(f"/api/company/jobs/{job_id}", json={"status": "closed"}, headers=COMPANY)
        assert response.status_code == 200
        assert response.json()["status"] == "closed"

        response = client.delete(f"/api/company/jobs/{job_id}", headers=COMPANY)
        assert response.status_code == 200
        assert client.get("/api/company/jobs", headers=COMPANY).json() == []

    def test_other_company_cannot_edit(self, client):
        job_id = self.post_job(client)
        other = auth_headers("c2", "company")

        assert client.put(f"/api/company/jobs/{job_id}", json={"title": "Mine"}, headers=other).status_code == 403
        assert client.delete(f"/api/company/jobs/{job_id}", headers=other).status_code == 403
        assert client.get("/api/company/jobs", headers=other).json() == []


class TestHandlers:
    def test_store_backed_handlers_are_sync(self):
        """Blocking store calls run in the threadpool, not on the event loop."""
        routes = [r for r in app.routes if isinstance(r, APIRoute) and r.path != "/"]
        assert routes
        for route in routes:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path
