"""
Push provider for development.
Writes messages to the log instead of delivering them.
"""
from typing import Dict

import structlog

from .provider import PushProvider

logger = structlog.get_logger(__name__)


class LogPushProvider(PushProvider):
    def send(self, topic: str, title: str, body: str, data: Dict[str, str]) -> None:
        logger.info("push_logged", topic=topic, title=title, body=body, data=data)
