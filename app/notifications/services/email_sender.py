import httpx
import logging
from typing import Optional

from app.core.config import RESEND_API_KEY, EMAIL_FROM, EMAIL_API_URL

logger = logging.getLogger(__name__)


async def send_email(
    to: str,
    subject: str,
    html: str,
    api_key: Optional[str] = None,
) -> bool:
    """
    Send an e-mail through a Resend-compatible HTTP API.

    Returns:
        bool: True if the provider accepted the message, False otherwise.
        Never raises; delivery is best-effort.
    """
    api_key = api_key or RESEND_API_KEY
    if not api_key:
        logger.debug(f"E-mail API key is not set, skipping e-mail to {to}")
        return False

    payload = {"from": EMAIL_FROM, "to": [to], "subject": subject, "html": html}
    headers = {"Authorization": f"Bearer {api_key}"}

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                EMAIL_API_URL, json=payload, headers=headers, timeout=10.0
            )

        if response.status_code in (200, 201, 202):
            logger.info(f"E-mail sent to {to}: {subject}")
            return True

        logger.error(f"Failed to send e-mail to {to}: {response.status_code} {response.text}")
        return False

    except httpx.HTTPError as e:
        logger.error(f"Error sending e-mail to {to}: {str(e)}")
        return False
