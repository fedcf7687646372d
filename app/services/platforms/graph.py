from typing import Optional

import httpx

from app.logging_config import get_logger
from app.models import Integration
from app.services.platforms.base import PlatformAdapter

logger = get_logger("platforms.graph")


class GraphAPIAdapter(PlatformAdapter):
    """Shared transport for the Meta family (WhatsApp Cloud, Messenger, Instagram)."""

    @property
    def graph_url(self) -> str:
        return f"{self.config.graph_api_base_url.rstrip('/')}/{self.config.graph_api_version}"

    def _graph_post(self, integration: Integration, path: str, payload: dict) -> Optional[dict]:
        """POST to the Graph API with the integration's bearer token.

        Returns the decoded body on 2xx, None on any failure.
        """
        if not integration.access_token:
            logger.error(
                "Integration has no access token",
                extra={"context": {"integration_id": str(integration.id), "platform": integration.type}},
            )
            return None

        url = f"{self.graph_url}/{path.lstrip('/')}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {integration.access_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(
                f"Graph API transport error: {e}",
                extra={"context": {"integration_id": str(integration.id), "path": path}},
            )
            return None

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Graph API error: {response.status_code} - {response.text[:300]}",
                extra={"context": {"integration_id": str(integration.id), "path": path}},
            )
            return None

        try:
            return response.json()
        except ValueError:
            return {}
