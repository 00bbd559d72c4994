"""
Shared fixtures for the Microbial test suite.

Every test runs against a fresh in-memory SQLite database and a recording
email service, so no test talks to SendGrid.
"""

import os

# Settings are read at import time; point them at test values first
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ.pop("SENDGRID_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from microbial.api.main import app
from microbial.auth.local import LocalAuthService
from microbial.campaigns.service import CampaignService
from microbial.contacts.service import ContactService
from microbial.email.service import EmailService
from microbial.referral.service import ReferralService, get_referral_service
from microbial.storage.db import db


class RecordingEmailService(EmailService):
    """Email service that records dispatches instead of sending them."""

    def __init__(self):
        super().__init__(api_key="test-key", max_workers=1)
        self.sent = []

    def send(self, template_id, recipient, data, kind="email"):
        self.sent.append(
            {"template_id": template_id, "recipient": recipient, "data": data, "kind": kind}
        )
        return None

    def of_kind(self, kind):
        return [message for message in self.sent if message["kind"] == kind]


@pytest.fixture(autouse=True)
def database():
    """Provide an empty schema for each test"""
    db.drop_tables()
    db.create_tables()
    yield db


@pytest.fixture
def mailer():
    service = RecordingEmailService()
    yield service
    service.shutdown(wait=False)


@pytest.fixture
def referrals(database, mailer):
    """Referral service wired to the recording mailer"""
    return ReferralService(database=database, mailer=mailer)


@pytest.fixture
def campaigns(database):
    return CampaignService(database=database)


@pytest.fixture
def contacts(database):
    return ContactService(database=database)


@pytest.fixture
def auth_service(database):
    return LocalAuthService(database=database)


@pytest.fixture
def user(auth_service):
    return auth_service.create_user(
        email="owner@example.com",
        password="Sup3r-secret!",
        name="Olivia Owner",
    )


@pytest.fixture
def token(auth_service, user):
    return auth_service.create_access_token(user)


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def campaign(campaigns, user):
    """Campaign with a nudge threshold of 2"""
    return campaigns.create_campaign(
        user.id,
        {
            "name": "Spring Outbreak",
            "referral_url": "https://outbreak.example.com/join",
            "signup_template_id": "tem_signup",
            "nudge_template_id": "tem_nudge",
            "completion_template_id": "tem_done",
            "nudge_threshold": 2,
        },
    )


@pytest.fixture
def client(referrals):
    """HTTP client whose signup endpoint uses the recording mailer"""
    app.dependency_overrides[get_referral_service] = lambda: referrals
    yield TestClient(app)
    app.dependency_overrides.clear()
