"""Donation detail extraction from payment screenshots using Gemini."""

import json
import logging

import google.generativeai as genai
from pydantic import ValidationError

from app.config import get_settings
from app.models.donation import DonationDetails

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT = """You are reading a screenshot of a payment made to a charity.

Extract the payment details and respond in this exact JSON format:
{
    "amount": <amount paid as a whole number, no currency symbol>,
    "donor_name": "<name of the person who paid>",
    "transaction_id": "<transaction or reference ID>",
    "utr_number": "<UTR number if shown>",
    "payment_app": "<Google Pay, PhonePe, Paytm, bank name, etc.>",
    "donation_date": "<YYYY-MM-DD>",
    "notes": "<any note or message attached to the payment>"
}

Use null for any field that is not visible in the image.
Return ONLY the JSON, no other text."""


def _parse_model_json(text: str) -> dict:
    """Parse JSON from a model reply, tolerating markdown code fences."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    return json.loads(text)


async def extract_donation_details(image: bytes, mime_type: str) -> DonationDetails:
    """
    Pre-fill donation fields from a payment screenshot.

    Returns an empty DonationDetails when no API key is configured or the
    model reply cannot be used; the operator then fills the form by hand.
    """
    settings = get_settings()

    if not settings.gemini_api_key:
        logger.info("Gemini API key not configured, skipping donation scan")
        return DonationDetails()

    genai.configure(api_key=settings.gemini_api_key)
    model = genai.GenerativeModel(settings.gemini_model)

    try:
        response = model.generate_content([
            EXTRACTION_PROMPT,
            {"mime_type": mime_type, "data": image}
        ])
        data = _parse_model_json(response.text)
        return DonationDetails(**{k: v for k, v in data.items() if v is not None})

    except (json.JSONDecodeError, ValidationError, IndexError) as e:
        logger.warning("Could not parse donation details from model reply: %s", e)
        return DonationDetails()
    except Exception:
        logger.exception("Donation scan failed")
        return DonationDetails()
