"""Contacts ("microbes") signed up under campaigns."""

from microbial.contacts.service import ContactService, contact_service, get_contact_service

__all__ = ["ContactService", "contact_service", "get_contact_service"]
