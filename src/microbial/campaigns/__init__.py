"""Referral campaigns ("outbreaks")."""

from microbial.campaigns.service import CampaignService, campaign_service, get_campaign_service

__all__ = ["CampaignService", "campaign_service", "get_campaign_service"]
