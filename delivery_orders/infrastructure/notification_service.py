import json
import logging
import re
from itertools import chain
from typing import List, Mapping, Optional

from twilio.rest import Client
from delivery_orders.core.config import settings
from delivery_orders.interfaces.INotificationService import INotificationService

logger = logging.getLogger(__name__)


def normalize_phone(raw: str, country_code: str = settings.PHONE_COUNTRY_CODE) -> str:
    """Keep digits only and add the country code to bare 11-digit mobile numbers.

    "(11) 98765-4321" -> "5511987654321"
    """
    digits = re.sub(r"\D", "", raw or "")
    # An 11-digit number starting with the country code is taken as already
    # prefixed, so area code 55 (RS) numbers such as "(55) 99123-4567" stay as is.
    if len(digits) == 11 and not digits.startswith(country_code):
        digits = f"{country_code}{digits}"
    return digits


def whatsapp_address(number: str) -> str:
    # Twilio requires the "whatsapp:" prefix and an E.164 number
    if number.startswith("whatsapp:"):
        return number
    return f"whatsapp:+{number.lstrip('+')}"


class WhatsAppNotificationService(INotificationService):
    """Sends approved WhatsApp templates to customers through Twilio's Content API."""

    def __init__(
        self,
        client: Optional[Client] = None,
        templates: Optional[Mapping[str, str]] = None,
        from_number: Optional[str] = None,
        country_code: Optional[str] = None,
    ):
        self.templates = dict(settings.WHATSAPP_TEMPLATES if templates is None else templates)
        self.from_number = from_number or settings.TWILIO_FROM_NUMBER
        self.country_code = country_code or settings.PHONE_COUNTRY_CODE
        self.client = client

        # Only build a client if credentials exist in .env
        if self.client is None and settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
            try:
                self.client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
                logger.info("✅ NotificationService: Twilio Client Initialized")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Twilio Client: {e}")
        elif self.client is None:
            logger.warning("⚠️ NotificationService: Credentials missing in .env. Notifications disabled.")

        self.enabled = self.client is not None and bool(self.from_number)

    def send_template(self, phone: str, template_name: str, parameter_groups: List[List[str]]) -> bool:
        if not self.enabled:
            logger.warning(f"⚠️ NotificationService disabled, skipping '{template_name}'.")
            return False

        to_number = normalize_phone(phone, self.country_code)
        if not to_number:
            logger.warning(f"⚠️ No usable phone number for '{template_name}': {phone!r}")
            return False

        content_sid = self.templates.get(template_name)
        if not content_sid:
            logger.warning(f"⚠️ Template '{template_name}' has no Content SID configured.")
            return False

        # Content API variables are numbered from 1, groups are laid out in order
        variables = {
            str(position): value
            for position, value in enumerate(chain.from_iterable(parameter_groups), start=1)
        }

        try:
            message = self.client.messages.create(
                from_=whatsapp_address(self.from_number),
                to=whatsapp_address(to_number),
                content_sid=content_sid,
                content_variables=json.dumps(variables),
            )
            logger.info(f"✅ Template '{template_name}' sent to {to_number} ({message.sid})")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to send '{template_name}' to {to_number}: {e}")
            return False
