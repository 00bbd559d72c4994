"""Referral chain module.

A contact signing up with another contact's referral code is appended to that
contact's referral list; the referrer is nudged by email for each signup up to
the campaign's nudge threshold.
"""

from microbial.referral.codes import generate_code, unique_code
from microbial.referral.service import ReferralService, get_referral_service, referral_service

__all__ = [
    "ReferralService",
    "generate_code",
    "get_referral_service",
    "referral_service",
    "unique_code",
]
