"""
Component tests for the contact endpoints.
"""

from microbial.storage.models import new_id

CONTACTS = "/api/v1/contacts"


def _signup_body(campaign, email, **extra):
    return {"contact": {"campaign_code": campaign.public_code, "email": email, **extra}}


class TestRegisterContactEndpoint:
    """Tests for POST /api/v1/contacts"""

    def test_signup_without_token(self, client, campaign, mailer):
        """Test signup is public and sends the confirmation"""
        response = client.post(CONTACTS, json=_signup_body(campaign, "alice@example.com", name="Alice"))

        assert response.status_code == 200
        contact = response.json()["contact"]
        assert contact["email"] == "alice@example.com"
        assert contact["name"] == "Alice"
        assert contact["campaign_id"] == campaign.id
        assert contact["campaign_public_code"] == campaign.public_code
        assert contact["referral_code"]
        assert contact["referred_contacts"] == []
        assert len(mailer.of_kind("signup")) == 1

    def test_signup_with_referral_code(self, client, campaign, mailer, auth_headers):
        alice = client.post(CONTACTS, json=_signup_body(campaign, "alice@example.com")).json()["contact"]

        response = client.post(
            CONTACTS,
            json=_signup_body(campaign, "bob@example.com", code=alice["referral_code"]),
        )

        assert response.status_code == 200
        bob = response.json()["contact"]
        refreshed = client.get(f"{CONTACTS}/{alice['id']}", headers=auth_headers).json()["contact"]
        assert refreshed["referred_contacts"] == [bob["id"]]
        assert len(mailer.of_kind("nudge")) == 1

    def test_signup_with_unknown_long_code(self, client, campaign, mailer):
        """Test a referral code matching nobody is ignored whatever its length"""
        response = client.post(CONTACTS, json=_signup_body(campaign, "alice@example.com", code="c" * 25))

        assert response.status_code == 200
        assert response.json()["contact"]["referred_contacts"] == []
        assert mailer.of_kind("nudge") == []
        assert len(mailer.of_kind("signup")) == 1

    def test_signup_missing_campaign_code(self, client):
        response = client.post(CONTACTS, json={"contact": {"email": "alice@example.com"}})

        assert response.status_code == 422
        assert response.json()["message"] == "missing campaign id"

    def test_signup_invalid_campaign_code(self, client, campaign):
        response = client.post(
            CONTACTS,
            json={"contact": {"campaign_code": "zzzzzzzz", "email": "alice@example.com"}},
        )

        assert response.status_code == 422
        assert response.json()["message"] == "invalid campaign id"

    def test_signup_invalid_email(self, client, campaign):
        response = client.post(CONTACTS, json=_signup_body(campaign, "not-an-email"))

        assert response.status_code == 422
        assert any(error.startswith("contact.email") for error in response.json()["errors"])

    def test_duplicate_signup(self, client, campaign):
        """Test the second signup with the same email fails"""
        first = client.post(CONTACTS, json=_signup_body(campaign, "alice@example.com"))
        second = client.post(CONTACTS, json=_signup_body(campaign, "alice@example.com"))

        assert first.status_code == 200
        assert second.status_code == 422
        assert second.json()["errors"]


class TestReadContacts:
    """Tests for GET /api/v1/contacts and /api/v1/contacts/{id}"""

    def test_list_requires_token(self, client):
        assert client.get(CONTACTS).status_code == 401

    def test_list_contacts(self, client, auth_headers, campaign, referrals):
        alice = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})
        bob = referrals.register_contact(campaign.public_code, {"email": "bob@example.com"})

        response = client.get(CONTACTS, headers=auth_headers)

        assert response.status_code == 200
        assert {c["id"] for c in response.json()["contacts"]} == {alice.id, bob.id}

    def test_list_expands_referred_contacts(self, client, auth_headers, campaign, referrals):
        """Test each listed contact carries its referred contacts in order"""
        alice = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})
        bob = referrals.register_contact(
            campaign.public_code, {"email": "bob@example.com", "name": "Bob"}, referral_code=alice.referral_code
        )
        carol = referrals.register_contact(
            campaign.public_code, {"email": "carol@example.com"}, referral_code=alice.referral_code
        )

        response = client.get(CONTACTS, headers=auth_headers)

        listed = {c["id"]: c for c in response.json()["contacts"]}
        assert [r["id"] for r in listed[alice.id]["referred"]] == [bob.id, carol.id]
        assert listed[alice.id]["referred"][0]["name"] == "Bob"
        assert listed[alice.id]["referred"][0]["referral_code"] == bob.referral_code
        assert listed[bob.id]["referred"] == []

    def test_list_skips_missing_referred_contacts(self, client, auth_headers, campaign, referrals, contacts):
        alice = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})
        bob = referrals.register_contact(
            campaign.public_code, {"email": "bob@example.com"}, referral_code=alice.referral_code
        )
        contacts.delete_contact(bob)

        response = client.get(CONTACTS, headers=auth_headers)

        listed = response.json()["contacts"]
        assert listed[0]["referred_contacts"] == [bob.id]
        assert listed[0]["referred"] == []

    def test_list_filtered_by_campaign(self, client, auth_headers, campaign, campaigns, user, referrals):
        other = campaigns.create_campaign(user.id, {"name": "Other"})
        alice = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})
        referrals.register_contact(other.public_code, {"email": "bob@example.com"})

        response = client.get(CONTACTS, params={"campaign_id": campaign.id}, headers=auth_headers)

        assert [c["id"] for c in response.json()["contacts"]] == [alice.id]

    def test_get_requires_token(self, client, campaign, referrals):
        contact = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})

        assert client.get(f"{CONTACTS}/{contact.id}").status_code == 401

    def test_get_unknown_and_malformed(self, client, auth_headers):
        assert client.get(f"{CONTACTS}/{new_id()}", headers=auth_headers).status_code == 404
        assert client.get(f"{CONTACTS}/589abfe06b0dc319ae919865", headers=auth_headers).status_code == 404


class TestUpdateContact:
    """Tests for PUT /api/v1/contacts/{id}"""

    def test_shallow_merge(self, client, auth_headers, campaign, referrals):
        contact = referrals.register_contact(
            campaign.public_code, {"email": "alice@example.com", "name": "Alice", "mobile": "+15550100"}
        )

        response = client.put(
            f"{CONTACTS}/{contact.id}",
            json={"contact": {"name": "Alice Smith"}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        updated = response.json()["contact"]
        assert updated["name"] == "Alice Smith"
        assert updated["mobile"] == "+15550100"
        assert updated["email"] == "alice@example.com"
        assert updated["referral_code"] == contact.referral_code

    def test_referral_state_is_not_patchable(self, client, auth_headers, campaign, referrals):
        contact = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})

        response = client.put(
            f"{CONTACTS}/{contact.id}",
            json={"contact": {"referral_code": "mine", "referred_contacts": [new_id()]}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        updated = response.json()["contact"]
        assert updated["referral_code"] == contact.referral_code
        assert updated["referred_contacts"] == []

    def test_email_collision(self, client, auth_headers, campaign, referrals):
        """Test changing email onto another signup's email fails"""
        referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})
        bob = referrals.register_contact(campaign.public_code, {"email": "bob@example.com"})

        response = client.put(
            f"{CONTACTS}/{bob.id}",
            json={"contact": {"email": "alice@example.com"}},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_update_requires_token(self, client, campaign, referrals):
        contact = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})

        response = client.put(f"{CONTACTS}/{contact.id}", json={"contact": {"name": "X"}})

        assert response.status_code == 401


class TestDeleteContact:
    """Tests for DELETE /api/v1/contacts/{id}"""

    def test_delete_contact(self, client, auth_headers, campaign, referrals):
        contact = referrals.register_contact(campaign.public_code, {"email": "alice@example.com"})

        response = client.delete(f"{CONTACTS}/{contact.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get(f"{CONTACTS}/{contact.id}", headers=auth_headers).status_code == 404

    def test_delete_unknown_contact(self, client, auth_headers):
        assert client.delete(f"{CONTACTS}/{new_id()}", headers=auth_headers).status_code == 404
