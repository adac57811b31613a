"""Hand finished content to an external automation workflow (n8n webhook)."""

from __future__ import annotations

import logging

import httpx

from autocontent.auth.models import User
from autocontent.config import Settings
from autocontent.errors import BusinessError
from autocontent.schemas.content_schemas import WorkflowRequest, WorkflowResult
from autocontent.utils import utcnow

logger = logging.getLogger(__name__)


class WorkflowService:
    def __init__(self, settings: Settings, client: httpx.Client | None = None):
        self._settings = settings
        self._client = client

    def _post(self, url: str, payload: dict) -> httpx.Response:
        if self._client is not None:
            return self._client.post(url, json=payload)
        with httpx.Client(timeout=self._settings.ac_workflow_timeout_seconds) as client:
            return client.post(url, json=payload)

    def trigger(self, request: WorkflowRequest, user: User) -> WorkflowResult:
        """POST the content to the webhook; transport and HTTP errors come back as FAILED."""
        if not request.generated_content or not request.generated_content.strip():
            raise BusinessError("Generated content cannot be empty")
        url = self._settings.ac_workflow_webhook_url
        if not url:
            raise BusinessError("Workflow webhook is not configured")

        payload = {
            **request.model_dump(),
            "user_id": user.user_id,
            "username": user.username,
            "triggered_at": utcnow().isoformat(),
        }
        try:
            response = self._post(url, payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Workflow webhook failed for user %s: %s", user.username, e)
            return WorkflowResult(status="FAILED", message=f"Failed to trigger workflow: {e}")

        try:
            body = response.json()
        except ValueError:
            body = response.text
        logger.info("Workflow triggered for user %s", user.username)
        return WorkflowResult(status="SUCCESS", message="Workflow triggered successfully", workflow_response=body)
