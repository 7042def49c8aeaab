"""
Receipt Scanning Package

Gemini-backed slip reading plus the guard that drops stale scan results.
"""

from mmm.services.scan.gemini_service import (
    SCAN_PROMPT,
    SUPPORTED_MIME_TYPES,
    GeminiSlipScanner,
    ScanFailure,
)
from mmm.services.scan.tracker import ScanRequestTracker, draft_from_scan

__all__ = [
    "GeminiSlipScanner",
    "SCAN_PROMPT",
    "SUPPORTED_MIME_TYPES",
    "ScanFailure",
    "ScanRequestTracker",
    "draft_from_scan",
]
