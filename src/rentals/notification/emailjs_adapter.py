"""EmailJS adapter — sends templated emails through the EmailJS REST API.

Configure with EMAILJS_SERVICE_ID, EMAILJS_TEMPLATE_ID, EMAILJS_PUBLIC_KEY
and (for server-side calls) EMAILJS_PRIVATE_KEY.
"""

import os
from uuid import uuid4

import requests
import structlog

from rentals.notification.port import NotificationPort

logger = structlog.get_logger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


class EmailJSAdapter(NotificationPort):
    def __init__(
        self,
        service_id: str | None = None,
        template_id: str | None = None,
        public_key: str | None = None,
        private_key: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.service_id = service_id or os.environ.get("EMAILJS_SERVICE_ID", "")
        self.template_id = template_id or os.environ.get("EMAILJS_TEMPLATE_ID", "")
        self.public_key = public_key or os.environ.get("EMAILJS_PUBLIC_KEY", "")
        self.private_key = private_key or os.environ.get("EMAILJS_PRIVATE_KEY")
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, template_params: dict) -> dict:
        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": template_params,
        }
        if self.private_key:
            payload["accessToken"] = self.private_key

        try:
            response = self.session.post(EMAILJS_SEND_URL, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("emailjs_request_failed", to=template_params.get("to_email"), error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        if response.status_code != 200:
            logger.warning(
                "emailjs_rejected",
                to=template_params.get("to_email"),
                status_code=response.status_code,
                body=response.text,
            )
            return {
                "message_id": None,
                "status": "failed",
                "error": f"EmailJS returned {response.status_code}: {response.text}",
            }

        return {"message_id": f"emailjs-{uuid4().hex[:12]}", "status": "sent"}
