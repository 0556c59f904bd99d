"""
ai/gemini_extractor.py
----------------------
Uses Google Gemini to read transaction rows off a photographed
receipt, invoice or bank statement.

Responsibilities:
    - Declare the strict JSON output schema and the reading instructions.
    - Send one image per request (single attempt, no retries).
    - Validate the structured response into `Transaction` objects.
"""

import json
from dataclasses import dataclass
from typing import Optional, Protocol

import google.generativeai as genai

from ai.errors import ExtractionError, MissingCredentialError
from ai.image_encoder import ImagePayload
from config import GEMINI_MODEL, GEMINI_TEMPERATURE, get_gemini_api_key
from models.transaction import Transaction, TransactionType
from utils.logger import get_logger

logger = get_logger(__name__)

# ── Output schema ────────────────────────────────────────

TRANSACTION_SCHEMA: dict = {
    "type": "ARRAY",
    "description": "List of transactions extracted from the image.",
    "items": {
        "type": "OBJECT",
        "properties": {
            "date": {
                "type": "STRING",
                "description": "The date of the transaction in DD/MM/YYYY format "
                               "(e.g., 15/12/2025). Normalize year to 4 digits.",
            },
            "description": {
                "type": "STRING",
                "description": "The name, item, or description of the transaction.",
            },
            "amount": {
                "type": "NUMBER",
                "description": "The absolute numeric value of the transaction amount (no symbols).",
            },
            "type": {
                "type": "STRING",
                "format": "enum",
                "enum": [TransactionType.INCOME.value, TransactionType.EXPENSE.value],
                "description": "Money in (refund, income, deposit) is INCOME; money out "
                               "(expense, purchase, withdrawal) is EXPENSE. Default to EXPENSE.",
            },
        },
        "required": ["date", "description", "amount", "type"],
    },
}

# ── Prompts ──────────────────────────────────────────────

SYSTEM_INSTRUCTION = (
    "You are a highly accurate OCR assistant for accounting. Your job is to extract "
    "transaction details from images. Pay close attention to dates and prices."
)

EXTRACTION_PROMPT = (
    "Analyze this image (receipt, invoice, or bank statement). "
    "Extract every transaction row visible in the image, from top to bottom. "
    "Write each date strictly as DD/MM/YYYY and expand 2-digit years to 4 digits. "
    "Classify each row as INCOME (refund, deposit, money in) or EXPENSE "
    "(purchase, withdrawal, money out); when unsure, use EXPENSE. "
    "Return amounts as unsigned numbers without currency symbols. "
    "Return a JSON array."
)


class TransactionExtractor(Protocol):
    """Anything that turns one image into an ordered list of transactions."""

    def extract(self, image: ImagePayload) -> list[Transaction]:
        ...


@dataclass(frozen=True)
class ExtractionRequest:
    """Everything sent to the model for a single image."""
    contents: list
    system_instruction: str
    generation_config: dict


def build_request(image: ImagePayload, temperature: float = GEMINI_TEMPERATURE) -> ExtractionRequest:
    """Assemble the request for one image: inline image, instructions and output schema."""
    return ExtractionRequest(
        contents=[image.as_part(), EXTRACTION_PROMPT],
        system_instruction=SYSTEM_INSTRUCTION,
        generation_config={
            "response_mime_type": "application/json",
            "response_schema": TRANSACTION_SCHEMA,
            "temperature": temperature,
        },
    )


def _strip_code_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_response(raw: Optional[str]) -> list[Transaction]:
    """
    Validate the model's JSON body into transactions.

    Args:
        raw: Response text, or None when the model returned no body.

    Returns:
        Transactions in the order the model listed them. A missing body
        or an empty array yields an empty list.

    Raises:
        ExtractionError: If the body is not a JSON array of valid transactions.
            Nothing from a malformed body is kept.
    """
    if raw is None or not raw.strip():
        return []

    try:
        data = json.loads(_strip_code_fences(raw))
    except json.JSONDecodeError as e:
        logger.warning(f"Gemini returned non-JSON: {e}; body: {raw[:500]!r}")
        raise ExtractionError() from e

    if not isinstance(data, list):
        logger.warning(f"Gemini returned {type(data).__name__} instead of an array")
        raise ExtractionError()

    try:
        return [Transaction.from_dict(item) for item in data]
    except ValueError as e:
        logger.warning(f"Gemini returned an invalid transaction: {e}")
        raise ExtractionError() from e


def _response_text(response) -> Optional[str]:
    try:
        return response.text
    except ValueError as e:
        # No text part in the candidate (nothing produced or blocked).
        logger.warning(f"Gemini response has no text: {e}")
        return None


class GeminiExtractor:
    """Extraction client backed by the Gemini API."""

    def __init__(self, model_name: str = GEMINI_MODEL, temperature: float = GEMINI_TEMPERATURE):
        self.model_name = model_name
        self.temperature = temperature

    def extract(self, image: ImagePayload) -> list[Transaction]:
        """
        Send one image to Gemini and return the recognized transactions.

        Raises:
            MissingCredentialError: GEMINI_API_KEY is not set. No request is made.
            ExtractionError: The call failed or the response was malformed.
        """
        api_key = get_gemini_api_key()
        if not api_key:
            logger.error("GEMINI_API_KEY is not configured; extraction aborted.")
            raise MissingCredentialError()

        request = build_request(image, self.temperature)
        logger.info(
            f"Sending {len(image.data)} bytes ({image.mime_type}) to {self.model_name}"
        )

        try:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(
                self.model_name,
                system_instruction=request.system_instruction,
            )
            response = model.generate_content(
                request.contents,
                generation_config=genai.GenerationConfig(**request.generation_config),
            )
        except Exception as e:
            logger.error(f"Gemini API error: {e}")
            raise ExtractionError() from e

        transactions = parse_response(_response_text(response))
        logger.info(f"Gemini recognized {len(transactions)} transaction(s)")
        return transactions
