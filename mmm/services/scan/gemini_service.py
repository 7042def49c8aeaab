"""
Receipt Scanning using Gemini

DESIGN DECISION: We send the slip image straight to a Gemini vision model
and ask for a small JSON object (merchant, amount, date, category, items).
A vision LLM reads Thai and English receipts, handwritten totals and
e-payment slips without per-format rules.

CRITICAL BOUNDARIES:
1. This service ONLY proposes data - nothing is saved from here
2. Scanning NEVER raises to the caller. Any failure (missing key, network,
   blocked or unparseable response) returns ScanResult.fallback(today),
   which the entry form shows as an "Error Scanning" draft to fix by hand
3. One request per call and no automatic retry; the user simply scans
   again. Cancellation (task.cancel()) still propagates.
"""

import json
import re
from typing import Any, Optional

import google.generativeai as genai
import structlog

from mmm.aggregation.clock import Clock, system_clock
from mmm.config import GeminiSettings, get_settings
from mmm.models.ledger import (
    DEFAULT_CATEGORY,
    SCAN_UNKNOWN_MERCHANT,
    SUGGESTED_CATEGORIES,
    ScanResult,
)

SUPPORTED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
})

SCAN_PROMPT = f"""Analyze this image of a receipt/slip.
Extract the following information:
1. Merchant name (or 'Unknown' if not found)
2. Total amount (number only)
3. Date (in YYYY-MM-DD format, use null if not found)
4. Category (choose one: {', '.join(repr(c) for c in SUGGESTED_CATEGORIES)})
5. List of items purchased (simplified)

Respond with ONLY a JSON object in this exact format:
{{"merchant": "name", "amount": 0.0, "date": "YYYY-MM-DD", "category": "Other", "items": ["item"]}}"""


class ScanFailure(Exception):
    """A scan attempt failed; converted to the fallback result."""
    pass


_AMOUNT_JUNK = re.compile(r"[^\d.\-]")


def _parse_amount(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ScanFailure(f"Unreadable amount: {value!r}")
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        # "฿1,234.50" -> 1234.50
        cleaned = _AMOUNT_JUNK.sub("", str(value))
        try:
            amount = float(cleaned)
        except ValueError:
            raise ScanFailure(f"Unreadable amount: {value!r}")
    if amount != amount or amount in (float("inf"), float("-inf")):
        raise ScanFailure(f"Unreadable amount: {value!r}")
    return amount


def _canonical_category(value: Any) -> str:
    if not value or not str(value).strip():
        return DEFAULT_CATEGORY
    text = str(value).strip()
    for category in SUGGESTED_CATEGORIES:
        if category.lower() == text.lower():
            return category
    return text


class GeminiSlipScanner:
    """
    Scan adapter: image bytes in, ScanResult out.

    The Gemini model is created lazily so a missing API key only affects
    scanning, never start-up.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        clock: Clock = system_clock,
        max_image_bytes: Optional[int] = None,
    ):
        """
        Args:
            settings: Gemini configuration; read from the environment if None
            model: Pre-built model exposing generate_content_async (tests)
            clock: Source of "today" for missing and fallback dates
            max_image_bytes: Largest image accepted
        """
        self._settings = settings or get_settings().gemini
        self._model = model
        self._clock = clock
        self._max_image_bytes = (
            max_image_bytes
            if max_image_bytes is not None
            else get_settings().app.max_scan_image_bytes
        )
        self._logger = structlog.get_logger(__name__)

    def _get_model(self) -> Any:
        """Configure Google Generative AI on first use."""
        if self._model is None:
            if not self._settings.api_key:
                raise ScanFailure("Gemini API key is missing")
            genai.configure(api_key=self._settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                    "response_mime_type": "application/json",
                },
            )
        return self._model

    def _check_image(self, image_bytes: bytes, mime_type: str) -> None:
        if not image_bytes:
            raise ScanFailure("Image is empty")
        if len(image_bytes) > self._max_image_bytes:
            raise ScanFailure(
                f"Image is {len(image_bytes)} bytes; limit is {self._max_image_bytes}"
            )
        if mime_type.lower() not in SUPPORTED_MIME_TYPES:
            raise ScanFailure(f"Unsupported image type: {mime_type}")

    async def _request(self, image_bytes: bytes, mime_type: str) -> str:
        model = self._get_model()
        response = await model.generate_content_async([
            {"mime_type": mime_type.lower(), "data": image_bytes},
            SCAN_PROMPT,
        ])
        # .text raises ValueError when the response was blocked
        text = response.text
        if not text or not text.strip():
            raise ScanFailure("No response from Gemini")
        return text

    def parse_response(self, text: str) -> ScanResult:
        """
        Turn the model's JSON reply into a ScanResult.

        Missing fields get defaults: merchant "Unknown merchant", date today,
        category Other, no items. An amount that is present but unreadable
        fails the whole scan.

        Raises:
            ScanFailure: If the reply holds no JSON object
        """
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise ScanFailure("Response holds no JSON object")
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as e:
            raise ScanFailure(f"Response is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise ScanFailure("Response JSON is not an object")

        merchant = str(data.get("merchant") or "").strip() or SCAN_UNKNOWN_MERCHANT

        today = self._clock()
        slip_date = today
        raw_date = data.get("date")
        if raw_date:
            try:
                slip_date = type(today).fromisoformat(str(raw_date).strip()[:10])
            except ValueError:
                self._logger.info("scan_date_unreadable", raw_date=str(raw_date))

        amount = _parse_amount(data.get("amount"))
        if amount < 0:
            # Refund or credit slip; the user picks the type on review
            self._logger.warning("scan_negative_amount", amount=amount, merchant=merchant)
            amount = -amount

        items = data.get("items") or []
        if not isinstance(items, list):
            items = [items]

        return ScanResult(
            merchant=merchant,
            amount=amount,
            date=slip_date,
            category=_canonical_category(data.get("category")),
            items=[str(item).strip() for item in items if str(item).strip()],
        )

    async def scan_slip(self, image_bytes: bytes, mime_type: str) -> ScanResult:
        """
        Read a slip image.

        Returns:
            The extracted ScanResult, or ScanResult.fallback(today) on any
            failure. Never raises (except cancellation).
        """
        try:
            self._check_image(image_bytes, mime_type)
            text = await self._request(image_bytes, mime_type)
            result = self.parse_response(text)
        except Exception as e:
            self._logger.warning(
                "slip_scan_failed",
                error=str(e),
                error_type=type(e).__name__,
                mime_type=mime_type,
            )
            return ScanResult.fallback(self._clock())

        self._logger.info(
            "slip_scanned",
            merchant=result.merchant,
            amount=result.amount,
            item_count=len(result.items),
        )
        return result
