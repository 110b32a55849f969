"""
Test delle risorse del sito (cliniche, medici, trattamenti, sedi, partner,
listino, timeline, FAQ) e della gestione dei file caricati.
"""
from __future__ import annotations

import json

from conftest import png, stored_file


def _files_in(uploads_dir) -> set[str]:
    return {p.name for p in uploads_dir.iterdir()}


class TestClinicsAndDoctors:
    def test_clinic_image_is_stored_and_served(self, client, uploads_dir):
        r = client.post("/api/clinics", data={"name": "C1"}, files={"image": png()})

        assert r.status_code == 200
        image = r.json()["image"]
        assert image.startswith("/uploads/")
        assert image.endswith("-foto.png")
        assert stored_file(uploads_dir, image).exists()
        assert client.get(image).status_code == 200

    def test_non_image_upload_is_rejected_before_writing(self, client, uploads_dir):
        r = client.post(
            "/api/clinics",
            data={"name": "C1"},
            files={"image": ("note.txt", b"ciao", "text/plain")},
        )

        assert r.status_code == 400
        assert "error" in r.json()
        assert client.get("/api/clinics").json() == []
        assert _files_in(uploads_dir) == set()

    def test_update_without_file_keeps_image(self, client):
        created = client.post("/api/clinics", data={"name": "C1"}, files={"image": png()}).json()

        r = client.put(f"/api/clinics/{created['id']}", data={"name": "C1 Merkez", "image": created["image"]})

        assert r.status_code == 200
        assert r.json()["name"] == "C1 Merkez"
        assert r.json()["image"] == created["image"]

    def test_update_with_new_image_removes_old_file(self, client, uploads_dir):
        created = client.post("/api/clinics", data={"name": "C1"}, files={"image": png("a.png")}).json()

        r = client.put(f"/api/clinics/{created['id']}", data={"name": "C1"}, files={"image": png("b.png")})

        assert r.json()["image"].endswith("-b.png")
        assert not stored_file(uploads_dir, created["image"]).exists()
        assert stored_file(uploads_dir, r.json()["image"]).exists()

    def test_update_missing_clinic(self, client):
        assert client.put("/api/clinics/999", data={"name": "X"}).status_code == 404

    def test_missing_name_is_a_bad_request(self, client):
        r = client.post("/api/clinics", data={"phone": "123"})

        assert r.status_code == 400
        assert r.json() == {"error": "Il campo 'name' è obbligatorio."}

    def test_doctors_filtered_by_clinic(self, client, doctor, clinic):
        other = client.post("/api/clinics", data={"name": "C2"}).json()
        client.post("/api/doctors", data={"name": "Dr. B", "clinic_id": str(other["id"])})

        r = client.get("/api/doctors", params={"clinicId": clinic["id"]})

        assert [d["name"] for d in r.json()] == ["Dr. A"]
        assert len(client.get("/api/doctors").json()) == 2

    def test_doctor_with_unknown_clinic(self, client):
        r = client.post("/api/doctors", data={"name": "Dr. X", "clinic_id": "999"})

        assert r.status_code == 400

    def test_clinic_with_doctors_cannot_be_deleted(self, client, doctor, clinic):
        assert client.delete(f"/api/clinics/{clinic['id']}").status_code == 409

        client.delete(f"/api/doctors/{doctor['id']}")
        r = client.delete(f"/api/clinics/{clinic['id']}")

        assert r.status_code == 200
        assert r.json()["success"] is True


class TestTreatments:
    def _create(self, client, slug: str = "implant", **extra):
        data = {"title": "İmplant", "slug": slug, "content": json.dumps({"blocks": ["a"]})}
        data.update(extra)
        return client.post("/api/treatments", data=data)

    def test_create_and_get_by_slug(self, client):
        r = self._create(client, featured="true", order_index="2")

        assert r.status_code == 200
        assert r.json()["featured"] is True
        assert r.json()["content"] == {"blocks": ["a"]}

        by_slug = client.get("/api/treatments/implant")
        assert by_slug.status_code == 200
        assert by_slug.json()["id"] == r.json()["id"]

    def test_unknown_slug(self, client):
        assert client.get("/api/treatments/yok").status_code == 404

    def test_duplicate_slug_is_rejected_without_row(self, client, uploads_dir):
        self._create(client)

        r = client.post(
            "/api/treatments",
            data={"title": "Altro", "slug": "implant"},
            files={"image": png()},
        )

        assert r.status_code == 400
        assert len(client.get("/api/treatments").json()) == 1
        assert _files_in(uploads_dir) == set()

    def test_invalid_content_json(self, client):
        r = self._create(client, content="{non json")

        assert r.status_code == 400

    def test_list_order(self, client):
        self._create(client, slug="b", order_index="2")
        self._create(client, slug="a", order_index="1")

        assert [t["slug"] for t in client.get("/api/treatments").json()] == ["a", "b"]


class TestBranches:
    def _create(self, client):
        files = [("gallery", png("main.png")), ("gallery", png("g1.png")), ("gallery", png("g2.png"))]
        r = client.post("/api/branches", data={"name": "Ortahisar", "lat": "41.0", "lng": "39.7"}, files=files)
        assert r.status_code == 201
        return r.json()

    def test_first_file_is_main_image(self, client):
        branch = self._create(client)

        assert branch["image"].endswith("-main.png")
        assert len(branch["gallery"]) == 2
        assert branch["lat"] == 41.0

    def test_update_without_files_preserves_gallery(self, client):
        branch = self._create(client)

        r = client.put(f"/api/branches/{branch['id']}", data={"name": "Ortahisar Şube"})

        assert r.status_code == 200
        assert r.json()["gallery"] == branch["gallery"]
        assert r.json()["image"] == branch["image"]

    def test_explicit_gallery_replaces_and_removes_dropped_files(self, client, uploads_dir):
        branch = self._create(client)
        kept, dropped = branch["gallery"]

        r = client.put(
            f"/api/branches/{branch['id']}",
            data={"name": "Ortahisar", "gallery": json.dumps([kept])},
        )

        assert r.json()["gallery"] == [kept]
        assert stored_file(uploads_dir, kept).exists()
        assert not stored_file(uploads_dir, dropped).exists()

    def test_uploaded_files_are_appended(self, client):
        branch = self._create(client)
        files = [("gallery", png("new-main.png")), ("gallery", png("g3.png"))]

        r = client.put(f"/api/branches/{branch['id']}", data={"name": "Ortahisar"}, files=files)

        gallery = r.json()["gallery"]
        assert gallery[:2] == branch["gallery"]
        assert gallery[2].endswith("-g3.png")
        assert r.json()["image"].endswith("-new-main.png")

    def test_delete_removes_all_files(self, client, uploads_dir):
        branch = self._create(client)
        assert len(_files_in(uploads_dir)) == 3

        r = client.delete(f"/api/branches/{branch['id']}")

        assert r.status_code == 200
        assert _files_in(uploads_dir) == set()

    def test_delete_missing_branch_leaves_storage(self, client, uploads_dir):
        self._create(client)
        before = _files_in(uploads_dir)

        assert client.delete("/api/branches/999").status_code == 404
        assert _files_in(uploads_dir) == before


class TestPartners:
    def test_logo_is_required(self, client):
        r = client.post("/api/partners", data={"name": "Lab"})

        assert r.status_code == 400

    def test_delete_removes_logo(self, client, uploads_dir):
        partner = client.post("/api/partners", data={"name": "Lab"}, files={"logo": png("logo.png")})
        assert partner.status_code == 201
        logo = stored_file(uploads_dir, partner.json()["logo"])
        assert logo.exists()

        r = client.delete(f"/api/partners/{partner.json()['id']}")

        assert r.status_code == 200
        assert not logo.exists()

    def test_delete_missing_partner_leaves_storage(self, client, uploads_dir):
        client.post("/api/partners", data={"name": "Lab"}, files={"logo": png("logo.png")})
        before = _files_in(uploads_dir)

        assert client.delete("/api/partners/999").status_code == 404
        assert _files_in(uploads_dir) == before

    def test_list_newest_first(self, client):
        client.post("/api/partners", data={"name": "Primo"}, files={"logo": png()})
        client.post("/api/partners", data={"name": "Secondo"}, files={"logo": png()})

        assert [p["name"] for p in client.get("/api/partners").json()] == ["Secondo", "Primo"]


class TestFeedbacksAndVideos:
    def test_rating_out_of_range(self, client):
        r = client.post("/api/feedbacks", data={"name": "Ali", "comment": "Ottimo", "rating": "6"})

        assert r.status_code == 400

    def test_video_crud(self, client):
        created = client.post("/api/videos", json={"title": "Tanıtım", "video_id": "abc123"})
        assert created.status_code == 200
        video_pk = created.json()["id"]

        updated = client.put(f"/api/videos/{video_pk}", json={"title": "Tanıtım 2", "video_id": "xyz"})
        assert updated.json()["video_id"] == "xyz"

        assert client.delete(f"/api/videos/{video_pk}").status_code == 200
        assert client.get("/api/videos").json() == []


class TestInfo:
    def test_prices_ordered_by_category_then_name(self, client):
        for category, name in [("protez", "Zirkonyum"), ("dolgu", "Kompozit"), ("dolgu", "Amalgam")]:
            r = client.post(
                "/api/prices",
                json={"category": category, "name": name, "min_price": 100, "max_price": 200},
            )
            assert r.status_code == 200

        rows = client.get("/api/prices").json()

        assert [(p["category"], p["name"]) for p in rows] == [
            ("dolgu", "Amalgam"),
            ("dolgu", "Kompozit"),
            ("protez", "Zirkonyum"),
        ]

    def test_price_range_is_validated(self, client):
        r = client.post("/api/prices", json={"category": "x", "name": "y", "min_price": 300, "max_price": 100})

        assert r.status_code == 400

    def test_timeline_order(self, client):
        client.post("/api/timeline", json={"title": "B", "description": "d", "date": "2020-01-01", "order_index": 2})
        r = client.post("/api/timeline", json={"title": "A", "description": "d", "date": "2021-01-01", "order_index": None})

        assert r.status_code == 201
        assert r.json()["order_index"] == 0
        assert [t["title"] for t in client.get("/api/timeline").json()] == ["A", "B"]

    def test_faq_category_filter_and_default(self, client):
        first = client.post("/api/faqs", json={"question": "Q1", "answer": "A1"})
        client.post("/api/faqs", json={"question": "Q2", "answer": "A2", "category": "implant"})

        assert first.status_code == 201
        assert first.json()["category"] == "genel"
        rows = client.get("/api/faqs", params={"category": "implant"}).json()
        assert [f["question"] for f in rows] == ["Q2"]
        assert len(client.get("/api/faqs").json()) == 2

    def test_delete_missing_faq(self, client):
        r = client.delete("/api/faqs/999")

        assert r.status_code == 404
        assert "error" in r.json()


class TestImageCleanupOnDelete:
    def test_clinic_delete_removes_image(self, client, uploads_dir):
        clinic = client.post("/api/clinics", data={"name": "C1"}, files={"image": png()}).json()
        image = stored_file(uploads_dir, clinic["image"])
        assert image.exists()

        assert client.delete(f"/api/clinics/{clinic['id']}").status_code == 200
        assert not image.exists()

    def test_doctor_delete_removes_image(self, client, clinic, uploads_dir):
        doctor = client.post(
            "/api/doctors",
            data={"name": "Dr. A", "clinic_id": str(clinic["id"])},
            files={"image": png("dr.png")},
        ).json()
        image = stored_file(uploads_dir, doctor["image"])
        assert image.exists()

        assert client.delete(f"/api/doctors/{doctor['id']}").status_code == 200
        assert not image.exists()

    def test_feedback_delete_removes_image(self, client, uploads_dir):
        feedback = client.post(
            "/api/feedbacks",
            data={"name": "Ali", "comment": "Ottimo", "rating": "5"},
            files={"image": png("ali.png")},
        ).json()
        image = stored_file(uploads_dir, feedback["image"])
        assert image.exists()

        assert client.delete(f"/api/feedbacks/{feedback['id']}").status_code == 200
        assert not image.exists()

    def test_treatment_delete_removes_image(self, client, uploads_dir):
        treatment = client.post(
            "/api/treatments",
            data={"title": "Dolgu", "slug": "dolgu"},
            files={"image": png("dolgu.png")},
        ).json()
        image = stored_file(uploads_dir, treatment["image"])
        assert image.exists()

        assert client.delete(f"/api/treatments/{treatment['id']}").status_code == 200
        assert not image.exists()

    def test_delete_missing_treatment_leaves_storage(self, client, uploads_dir):
        client.post("/api/treatments", data={"title": "Dolgu", "slug": "dolgu"}, files={"image": png()})
        before = _files_in(uploads_dir)

        assert client.delete("/api/treatments/999").status_code == 404
        assert _files_in(uploads_dir) == before


class TestImageCleanupOnReplace:
    def test_feedback_new_image_removes_old_file(self, client, uploads_dir):
        created = client.post(
            "/api/feedbacks", data={"name": "Ali", "comment": "Ottimo"}, files={"image": png("a.png")}
        ).json()

        r = client.put(
            f"/api/feedbacks/{created['id']}",
            data={"name": "Ali", "comment": "Ottimo"},
            files={"image": png("b.png")},
        )

        assert r.status_code == 200
        assert not stored_file(uploads_dir, created["image"]).exists()
        assert stored_file(uploads_dir, r.json()["image"]).exists()

    def test_treatment_new_image_removes_old_file(self, client, uploads_dir):
        created = client.post(
            "/api/treatments", data={"title": "Dolgu", "slug": "dolgu"}, files={"image": png("a.png")}
        ).json()

        r = client.put(
            f"/api/treatments/{created['id']}",
            data={"title": "Dolgu", "slug": "dolgu"},
            files={"image": png("b.png")},
        )

        assert r.status_code == 200
        assert not stored_file(uploads_dir, created["image"]).exists()
        assert stored_file(uploads_dir, r.json()["image"]).exists()

    def test_treatment_empty_path_clears_image(self, client, uploads_dir):
        created = client.post(
            "/api/treatments", data={"title": "Dolgu", "slug": "dolgu"}, files={"image": png()}
        ).json()

        r = client.put(f"/api/treatments/{created['id']}", data={"title": "Dolgu", "slug": "dolgu", "image": ""})

        assert r.json()["image"] is None
        assert _files_in(uploads_dir) == set()
