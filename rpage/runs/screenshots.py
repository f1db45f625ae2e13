"""Locating screenshot information in run logs and results."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from rpage.domain.common.time import utcnow

SCREENSHOT_HINT_PATTERN = re.compile(r"Taking screenshot and saving to:.*?([^/\\]+\.png)")
_BASENAME_PATTERN = re.compile(r"([^/\\]+)$")
_IMAGE_FILENAME_PATTERN = re.compile(r"^[^\s][^\r\n]{0,254}\.(?:png|jpe?g|gif|webp)$", re.IGNORECASE)


def screenshot_hint(line: str) -> Optional[str]:
    """Best-effort filename scraped from a log line. Advisory only."""
    match = SCREENSHOT_HINT_PATTERN.search(line)
    return match.group(1) if match else None


def _field(result: dict[str, Any], snake: str, camel: str) -> Any:
    value = result.get(snake)
    return value if value is not None else result.get(camel)


def screenshot_filename(result: Any) -> Optional[str]:
    """Filename from the structured ``screenshot_path`` field of a result."""
    if not isinstance(result, dict):
        return None
    path = _field(result, "screenshot_path", "screenshotPath")
    if not isinstance(path, str) or not path:
        return None
    match = _BASENAME_PATTERN.search(path)
    return match.group(1) if match else None


@dataclass(slots=True, frozen=True)
class ScreenshotPayload:
    name: str
    data: Any


def _looks_like_filename(value: str) -> bool:
    return _IMAGE_FILENAME_PATTERN.match(value) is not None


def extract_screenshot(
    result: Any,
    automation_name: str,
    *,
    now: Optional[datetime] = None,
) -> Optional[ScreenshotPayload]:
    """Return the artifact to persist when ``result`` carries a screenshot.

    Only a short image filename is used as the artifact name. Image bytes reach
    this point as base64 text and are kept in the data, never in the name.
    """
    if not isinstance(result, dict):
        return None
    screenshot = result.get("screenshot")
    if not screenshot:
        return None

    moment = now or utcnow()
    explicit_name = _field(result, "screenshot_name", "screenshotName")
    if explicit_name:
        name = str(explicit_name)
    elif isinstance(screenshot, dict) and screenshot.get("name"):
        name = str(screenshot["name"])
    elif isinstance(screenshot, str) and _looks_like_filename(screenshot):
        name = screenshot
    else:
        name = f"Screenshot for {automation_name} at {moment.strftime('%Y-%m-%d %H:%M:%S')}"

    if isinstance(screenshot, dict):
        return ScreenshotPayload(name=name, data=screenshot)

    data: dict[str, Any] = {
        "name": name,
        "timestamp": moment.isoformat(),
        "format": "png",
        "source": automation_name,
    }
    if isinstance(screenshot, str) and not _looks_like_filename(screenshot):
        data["encoding"] = "base64"
        data["image_data"] = screenshot
    elif isinstance(screenshot, (list, tuple)):
        data["content"] = list(screenshot)
    return ScreenshotPayload(name=name, data=data)
