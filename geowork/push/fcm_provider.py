"""
Firebase Cloud Messaging push provider (HTTP v1 API).
Messages are addressed to topics; the access token is supplied by the deployment.
"""
import httpx
from typing import Dict, Optional

from ..config import settings
from ..errors import NotificationDispatchError
from .provider import PushProvider

FCM_ENDPOINT = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"


class FcmPushProvider(PushProvider):
    """Client for the FCM HTTP v1 send endpoint"""

    def __init__(
        self,
        project_id: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.project_id = project_id or settings.fcm_project_id
        self.access_token = access_token or settings.fcm_access_token
        self.timeout_s = timeout_s or settings.push_timeout_s
        self._transport = transport

        if not self.project_id or not self.access_token:
            raise ValueError("FCM project id and access token are required")

    @property
    def url(self) -> str:
        return FCM_ENDPOINT.format(project_id=self.project_id)

    def send(self, topic: str, title: str, body: str, data: Dict[str, str]) -> None:
        message = {
            "message": {
                "topic": topic,
                "notification": {"title": title, "body": body},
                # FCM only accepts string values in the data block
                "data": {k: str(v) for k, v in data.items() if v is not None},
            }
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            with httpx.Client(timeout=self.timeout_s, transport=self._transport) as client:
                response = client.post(self.url, json=message, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationDispatchError(f"FCM send to {topic} failed: {e}") from e
