"""Fusion Portal Account Module - invitations, organizations and profile."""

from fusion_portal.modules.account.service import AccountService, generate_slug

__all__ = ["AccountService", "generate_slug"]
