"""Outbound messaging channel (MSG91 WhatsApp templates)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from complaint_desk.core.config import settings
from complaint_desk.core.structured_logging import mask_phone
from complaint_desk.utils.normalization import to_international_number

logger = logging.getLogger(__name__)


# Template kinds the core asks for -> WhatsApp template names
TEMPLATE_ASSIGNMENT = "assignment"
TEMPLATE_NAMES: dict[str, str] = {
    TEMPLATE_ASSIGNMENT: "status_updates",
    "assigned": "status_updates",
    "in-progress": "complaint_started_update",
    "resolved": "complaint_completed_update",
}


@dataclass(frozen=True)
class SendResult:
    success: bool
    external_message_id: str | None = None
    error: str | None = None


class MessagingChannel(Protocol):
    def send(self, recipient: str, template_kind: str, variables: dict[str, str]) -> SendResult:
        """Deliver one templated message. Must not raise."""


def build_template_payload(
    *,
    integrated_number: str,
    namespace: str,
    template_name: str,
    to: str,
    variables: dict[str, str],
) -> dict:
    """Build the bulk outbound payload for a single recipient."""
    components = {
        "body_1": {"type": "text", "value": variables.get("name") or "Customer"},
        "body_2": {"type": "text", "value": variables.get("complaint_number") or ""},
    }
    return {
        "integrated_number": integrated_number,
        "content_type": "template",
        "payload": {
            "messaging_product": "whatsapp",
            "type": "template",
            "template": {
                "name": template_name,
                "language": {"code": "en", "policy": "deterministic"},
                "namespace": namespace,
                "to_and_components": [{"to": [to], "components": components}],
            },
        },
    }


class Msg91WhatsAppChannel:
    """MSG91 bulk WhatsApp outbound API."""

    key = "msg91"

    def __init__(
        self,
        *,
        authkey: str,
        integrated_number: str,
        namespace: str,
        api_url: str,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.authkey = authkey
        self.integrated_number = integrated_number
        self.namespace = namespace
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "Msg91WhatsAppChannel":
        return cls(
            authkey=settings.MSG91_AUTHKEY,
            integrated_number=settings.MSG91_INTEGRATED_NUMBER,
            namespace=settings.MSG91_NAMESPACE,
            api_url=settings.MSG91_API_URL,
            timeout=settings.MSG91_TIMEOUT_SECONDS,
        )

    def is_configured(self) -> bool:
        return bool(self.authkey and self.integrated_number and self.namespace)

    def send(self, recipient: str, template_kind: str, variables: dict[str, str]) -> SendResult:
        if not self.is_configured():
            return SendResult(success=False, error="MSG91 is not configured")

        template_name = TEMPLATE_NAMES.get(template_kind)
        if not template_name:
            return SendResult(success=False, error=f"Unsupported template: {template_kind}")

        to = to_international_number(recipient)
        if not to:
            return SendResult(success=False, error="Invalid recipient number")

        payload = build_template_payload(
            integrated_number=self.integrated_number,
            namespace=self.namespace,
            template_name=template_name,
            to=to,
            variables=variables,
        )
        headers = {
            "Content-Type": "application/json",
            "authkey": self.authkey,
            "accept": "application/json",
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(self.api_url, json=payload, headers=headers)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "MSG91 send failed template=%s to=%s error=%s",
                template_name,
                mask_phone(to),
                exc,
            )
            return SendResult(success=False, error=str(exc) or exc.__class__.__name__)

        if isinstance(data, dict) and data.get("status") == "success":
            return SendResult(success=True, external_message_id=data.get("request_id"))

        error = data.get("errors") or data.get("message") if isinstance(data, dict) else None
        logger.warning(
            "MSG91 rejected message template=%s to=%s status_code=%s",
            template_name,
            mask_phone(to),
            response.status_code,
        )
        return SendResult(success=False, error=str(error or f"Failed to send {template_kind} message"))


def get_messaging_channel() -> MessagingChannel:
    return Msg91WhatsAppChannel.from_settings()
