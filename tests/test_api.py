"""End-to-end tests through the HTTP API."""
from sqlalchemy import text

from petsup.models.audit import AuditEvent, AuditEventType
from petsup.models.domain import PasswordRecovery
from petsup.models.terms import AdoptionTerm, COMMITMENT_FLAGS
from conftest import PASSWORD, auth_headers

DONATION_BODY = dict(
    {"signature_text": "João Donor", "donation_reason": "Ninhada inesperada"},
    **{flag: True for flag in COMMITMENT_FLAGS}
)


def _emailed_events(db_session):
    return db_session.query(AuditEvent).filter(AuditEvent.event_type == AuditEventType.TERM_EMAILED).all()


def _sign_adoption(client, pet, headers, signature="Maria Silva"):
    return client.post(
        "/api/adoption-terms",
        json={"pet_id": pet.id, "signature_text": signature},
        headers=headers
    )


class TestHealthAndAuth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_login_and_me(self, client, donor):
        response = client.post("/api/auth/login", json={"email": "joao@example.com", "password": PASSWORD})
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "joao@example.com"

    def test_login_wrong_password(self, client, donor):
        response = client.post("/api/auth/login", json={"email": "joao@example.com", "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid email or password"}

    def test_missing_token(self, client, pet):
        assert client.get("/api/auth/me").status_code == 401
        assert client.post("/api/adoption-terms", json={"pet_id": pet.id, "signature_text": "x"}).status_code == 401

    def test_garbage_token(self, client, donor):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_password_recovery_flow(self, client, db_session, donor, fake_mailer):
        response = client.post("/api/auth/password-recovery", json={"email": "joao@example.com"})
        assert response.status_code == 200
        assert response.json()["email_sent"] is True
        code = db_session.query(PasswordRecovery).one().code
        assert code in fake_mailer.sent[0]["html"]

        body = {"email": "joao@example.com", "code": code}
        assert client.post("/api/auth/password-recovery/verify", json=body).status_code == 200
        reset = client.post("/api/auth/password-recovery/reset", json=dict(body, new_password="brand-new"))
        assert reset.status_code == 200

        login = client.post("/api/auth/login", json={"email": "joao@example.com", "password": "brand-new"})
        assert login.status_code == 200


class TestUsersApi:

    def test_register(self, client, reference_data):
        response = client.post("/api/users", json={
            "name": "Ana Lima",
            "email": "ana@example.com",
            "phone": "(11) 91234-5678",
            "cpf": "987.654.321-00",
            "password": "ana-secret",
            "city_id": reference_data["rio"].id,
        })
        assert response.status_code == 201
        body = response.json()
        assert body["cpf"] == "98765432100"
        assert body["state_id"] == reference_data["rj"].id
        assert "password_hash" not in body

    def test_register_duplicate_email(self, client, donor):
        response = client.post("/api/users", json={
            "name": "Outro João",
            "email": "joao@example.com",
            "phone": "(11) 91234-5678",
            "cpf": "987.654.321-00",
            "password": "secret99",
        })
        assert response.status_code == 409

    def test_register_schema_validation(self, client, reference_data):
        response = client.post("/api/users", json={"name": "Ana", "email": "not-an-email"})
        assert response.status_code == 422

    def test_availability(self, client, donor):
        response = client.get("/api/users/availability", params={"email": "joao@example.com"})
        assert response.json()["email"] is False

    def test_only_self_can_update(self, client, donor, adopter, adopter_headers):
        response = client.put(f"/api/users/{donor.id}", json={"name": "Hacker"}, headers=adopter_headers)
        assert response.status_code == 403

        response = client.put(f"/api/users/{adopter.id}", json={"name": "Maria S."}, headers=adopter_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Maria S."


class TestLookupsApi:

    def test_list_and_filter(self, client, reference_data):
        assert [s["name"] for s in client.get("/api/species").json()] == ["Cachorro"]
        cities = client.get("/api/cities", params={"state_id": reference_data["rj"].id}).json()
        assert [c["name"] for c in cities] == ["Rio de Janeiro"]

    def test_create_requires_auth(self, client, reference_data):
        assert client.post("/api/species", json={"name": "Gato"}).status_code == 401

    def test_create_update_delete(self, client, donor_headers):
        created = client.post("/api/diseases", json={"name": "Sarna"}, headers=donor_headers)
        assert created.status_code == 201
        disease_id = created.json()["id"]

        updated = client.put(f"/api/diseases/{disease_id}", json={"name": "Sarna demodécica"}, headers=donor_headers)
        assert updated.json()["name"] == "Sarna demodécica"

        assert client.delete(f"/api/diseases/{disease_id}", headers=donor_headers).status_code == 204
        assert client.get(f"/api/diseases/{disease_id}").status_code == 404

    def test_duplicate_name_conflicts(self, client, donor_headers):
        response = client.post("/api/species", json={"name": "Cachorro"}, headers=donor_headers)
        assert response.status_code == 409

    def test_unknown_parent(self, client, donor_headers):
        response = client.post("/api/breeds", json={"name": "Poodle", "species_id": 999}, headers=donor_headers)
        assert response.status_code == 404

    def test_delete_in_use_row_conflicts(self, client, db_session, reference_data, pet, donor_headers):
        db_session.execute(text("PRAGMA foreign_keys=ON"))
        sex_id = reference_data["sex"].id

        response = client.delete(f"/api/pet-sexes/{sex_id}", headers=donor_headers)

        assert response.status_code == 409
        assert response.json() == {"detail": "PetSex is still in use"}
        assert client.get(f"/api/pet-sexes/{sex_id}").status_code == 200


class TestPetsApi:

    def test_create_and_list(self, client, reference_data, adopter_headers):
        response = client.post("/api/pets", json={
            "name": "Luna",
            "age": 2,
            "species_id": reference_data["species"].id,
            "breed_id": reference_data["breed"].id,
            "sex_id": reference_data["sex"].id,
        }, headers=adopter_headers)
        assert response.status_code == 201

        mine = client.get("/api/pets/mine", headers=adopter_headers).json()
        assert [p["name"] for p in mine] == ["Luna"]

    def test_filter_by_state(self, client, reference_data, pet):
        sp = client.get("/api/pets", params={"state_id": reference_data["sp"].id}).json()
        rj = client.get("/api/pets", params={"state_id": reference_data["rj"].id}).json()
        assert [p["id"] for p in sp] == [pet.id]
        assert rj == []

    def test_only_owner_can_change(self, client, pet, adopter_headers, donor_headers):
        assert client.put(f"/api/pets/{pet.id}", json={"age": 4}, headers=adopter_headers).status_code == 403
        response = client.put(f"/api/pets/{pet.id}", json={"age": 4}, headers=donor_headers)
        assert response.json()["age"] == 4

    def test_favorites(self, client, pet, adopter_headers):
        assert client.post("/api/favorites", json={"pet_id": pet.id}, headers=adopter_headers).status_code == 201
        assert client.post("/api/favorites", json={"pet_id": pet.id}, headers=adopter_headers).status_code == 409

        favorites = client.get("/api/favorites", headers=adopter_headers).json()
        assert favorites[0]["pet"]["name"] == "Rex"
        assert client.delete(f"/api/favorites/{pet.id}", headers=adopter_headers).status_code == 204


class TestAdoptionTermsApi:

    def test_create_emails_both_parties(self, client, db_session, pet, adopter_headers, fake_mailer):
        response = _sign_adoption(client, pet, adopter_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["pet_name"] == "Rex"
        assert body["donor_city_name"] == "São Paulo"
        assert body["adopter_document"] == "11144477735"
        assert len(body["document_hash"]) == 32

        assert [m["to"] for m in fake_mailer.sent] == ["joao@example.com", "maria@example.com"]
        assert fake_mailer.sent[0]["attachments"][0].content.startswith(b"%PDF")
        events = _emailed_events(db_session)
        assert len(events) == 1
        assert events[0].entity_id == str(body["id"])

    def test_duplicate_term_conflicts(self, client, pet, adopter_headers, other_user):
        assert _sign_adoption(client, pet, adopter_headers).status_code == 201
        response = _sign_adoption(client, pet, auth_headers(other_user), signature="Carlos Souza")
        assert response.status_code == 409

    def test_own_pet_refused(self, client, pet, donor_headers, fake_mailer):
        response = _sign_adoption(client, pet, donor_headers, signature="João Donor")
        assert response.status_code == 400
        assert fake_mailer.sent == []

    def test_cannot_sign_for_someone_else(self, client, pet, donor, adopter_headers):
        response = client.post(
            "/api/adoption-terms",
            json={"pet_id": pet.id, "adopter_id": donor.id, "signature_text": "Maria Silva"},
            headers=adopter_headers
        )
        assert response.status_code == 403

    def test_party_only_reads(self, client, pet, adopter_headers, donor_headers, other_user):
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]

        assert client.get(f"/api/adoption-terms/{term_id}", headers=donor_headers).status_code == 200
        assert client.get(f"/api/adoption-terms/pet/{pet.id}", headers=adopter_headers).status_code == 200
        assert client.get(f"/api/adoption-terms/{term_id}", headers=auth_headers(other_user)).status_code == 403

        as_donor = client.get("/api/adoption-terms/as-donor", headers=donor_headers).json()
        as_adopter = client.get("/api/adoption-terms/as-adopter", headers=adopter_headers).json()
        assert [t["id"] for t in as_donor] == [term_id]
        assert [t["id"] for t in as_adopter] == [term_id]

    def test_resync_by_non_adopter_forbidden(self, client, pet, adopter_headers, other_user):
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]
        response = client.put(
            f"/api/adoption-terms/{term_id}/resync",
            json={"signature_text": "Carlos Souza"},
            headers=auth_headers(other_user)
        )
        assert response.status_code == 403

    def test_resync_after_rename(self, client, pet, adopter, adopter_headers, fake_mailer):
        term = _sign_adoption(client, pet, adopter_headers).json()
        client.put(f"/api/users/{adopter.id}", json={"name": "Maria Souza"}, headers=adopter_headers)

        eligibility = client.get(f"/api/adoption-terms/eligibility/{pet.id}", headers=adopter_headers).json()
        assert eligibility["name_outdated"] is True

        response = client.put(
            f"/api/adoption-terms/{term['id']}/resync",
            json={"signature_text": "Maria Souza"},
            headers=adopter_headers
        )
        assert response.status_code == 200
        assert response.json()["adopter_name"] == "Maria Souza"
        assert response.json()["document_hash"] != term["document_hash"]
        assert len(fake_mailer.sent) == 4

    def test_validate_detects_tampering(self, client, db_session, pet, adopter_headers):
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]
        assert client.get(f"/api/adoption-terms/{term_id}/validate").json()["valid"] is True

        stored = db_session.get(AdoptionTerm, term_id)
        stored.signature_text = "Outra Pessoa"
        db_session.commit()

        assert client.get(f"/api/adoption-terms/{term_id}/validate").json()["valid"] is False

    def test_pdf_download(self, client, pet, adopter_headers):
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]
        response = client.get(f"/api/adoption-terms/{term_id}/pdf", headers=adopter_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert f"termo_adocao_Rex_{term_id}.pdf" in response.headers["content-disposition"]

    def test_pdf_download_is_party_only(self, client, pet, adopter_headers, donor_headers, other_user):
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]
        url = f"/api/adoption-terms/{term_id}/pdf"

        assert client.get(url).status_code == 401
        assert client.get(url, headers=auth_headers(other_user)).status_code == 403
        assert client.get(url, headers=donor_headers).status_code == 200

    def test_pdf_download_with_non_latin1_pet_name(self, client, db_session, pet, adopter_headers):
        pet.name = "Lưu"
        db_session.commit()
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]

        response = client.get(f"/api/adoption-terms/{term_id}/pdf", headers=adopter_headers)

        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert f'filename="termo_adocao_Luu_{term_id}.pdf"' in disposition
        assert f"filename*=UTF-8''termo_adocao_L%C6%B0u_{term_id}.pdf" in disposition

    def test_send_email_again(self, client, db_session, pet, donor_headers, adopter_headers):
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]
        response = client.post(f"/api/adoption-terms/{term_id}/send-email", headers=donor_headers)

        assert response.json() == {"sent_to": ["joao@example.com", "maria@example.com"]}
        assert len(_emailed_events(db_session)) == 2

    def test_send_email_failure_reported(self, client, pet, adopter_headers, fake_mailer):
        fake_mailer.fail = True
        term_id = _sign_adoption(client, pet, adopter_headers).json()["id"]

        response = client.post(f"/api/adoption-terms/{term_id}/send-email", headers=adopter_headers)
        assert response.status_code == 500
        assert response.json() == {"detail": "Email delivery failed"}

    def test_stats(self, client, pet, adopter_headers):
        _sign_adoption(client, pet, adopter_headers)
        assert client.get("/api/adoption-terms/stats").json()["total"] == 1


class TestCompromiseTermsApi:

    def test_compromise_emails_adopter_only(self, client, pet, adopter_headers, fake_mailer):
        response = client.post(
            "/api/compromise-terms",
            json={"pet_id": pet.id, "signature_text": "Maria Silva"},
            headers=adopter_headers
        )
        assert response.status_code == 201
        assert "donor_city_name" not in response.json()
        assert [m["to"] for m in fake_mailer.sent] == ["maria@example.com"]

    def test_compromise_and_adoption_are_independent(self, client, pet, adopter_headers):
        body = {"pet_id": pet.id, "signature_text": "Maria Silva"}
        assert client.post("/api/compromise-terms", json=body, headers=adopter_headers).status_code == 201
        assert client.post("/api/adoption-terms", json=body, headers=adopter_headers).status_code == 201


class TestDonationTermsApi:

    def test_create_delivers_and_marks_sent(self, client, db_session, donor_headers, fake_mailer):
        response = client.post("/api/donation-terms", json=DONATION_BODY, headers=donor_headers)
        assert response.status_code == 201
        assert [m["to"] for m in fake_mailer.sent] == ["joao@example.com"]

        db_session.expire_all()
        mine = client.get("/api/donation-terms/mine", headers=donor_headers).json()
        assert mine["pdf_sent_at"] is not None

    def test_missing_commitment(self, client, donor_headers):
        body = dict(DONATION_BODY, allows_visits=False)
        response = client.post("/api/donation-terms", json=body, headers=donor_headers)
        assert response.status_code == 400

    def test_can_register_pets(self, client, donor_headers):
        before = client.get("/api/donation-terms/can-register-pets", headers=donor_headers).json()
        assert before["can_register"] is False

        client.post("/api/donation-terms", json=DONATION_BODY, headers=donor_headers)
        after = client.get("/api/donation-terms/can-register-pets", headers=donor_headers).json()
        assert after == {"can_register": True, "has_term": True, "name_outdated": False}

    def test_only_donor_reads(self, client, donor_headers, adopter_headers):
        term_id = client.post("/api/donation-terms", json=DONATION_BODY, headers=donor_headers).json()["id"]
        assert client.get(f"/api/donation-terms/{term_id}", headers=adopter_headers).status_code == 403
        assert client.get(f"/api/donation-terms/{term_id}/validate").json()["valid"] is True
        assert client.get(f"/api/donation-terms/{term_id}/pdf").status_code == 401
        assert client.get(f"/api/donation-terms/{term_id}/pdf", headers=adopter_headers).status_code == 403
        response = client.get(f"/api/donation-terms/{term_id}/pdf", headers=donor_headers)
        assert response.content.startswith(b"%PDF")
        assert f'filename="termo_doacao_Joao_Donor_{term_id}.pdf"' in response.headers["content-disposition"]

    def test_pdf_download_with_non_latin1_donor_name(self, client, db_session, donor, donor_headers):
        donor.name = "Nguyễn Văn"
        db_session.commit()
        body = dict(DONATION_BODY, signature_text="Nguyễn Văn")
        term_id = client.post("/api/donation-terms", json=body, headers=donor_headers).json()["id"]

        response = client.get(f"/api/donation-terms/{term_id}/pdf", headers=donor_headers)

        assert response.status_code == 200
        assert f'filename="termo_doacao_Nguyen_Van_{term_id}.pdf"' in response.headers["content-disposition"]

    def test_second_term_conflicts(self, client, donor_headers):
        assert client.post("/api/donation-terms", json=DONATION_BODY, headers=donor_headers).status_code == 201
        assert client.post("/api/donation-terms", json=DONATION_BODY, headers=donor_headers).status_code == 409
