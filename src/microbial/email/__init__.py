"""Transactional email dispatch."""

from microbial.email.service import EmailService, email_service, referral_link

__all__ = ["EmailService", "email_service", "referral_link"]
