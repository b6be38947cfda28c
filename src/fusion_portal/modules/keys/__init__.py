"""Fusion Portal API Keys Module."""

from fusion_portal.modules.keys.service import ApiKeysService

__all__ = ["ApiKeysService"]
