from ..config import settings
from .provider import PushProvider
from .log_provider import LogPushProvider
from .fcm_provider import FcmPushProvider


def get_push_provider() -> PushProvider:
    """Get push provider based on configuration"""
    if settings.push_provider == "fcm" and settings.fcm_project_id and settings.fcm_access_token:
        return FcmPushProvider()
    else:
        # development default: log instead of delivering
        return LogPushProvider()


__all__ = ["PushProvider", "LogPushProvider", "FcmPushProvider", "get_push_provider"]
