"""Fusion Portal Activity Module - verification history."""

from fusion_portal.modules.activity.service import ActivityService

__all__ = ["ActivityService"]
