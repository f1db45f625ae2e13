"""Objects injected into a script's namespace.

Scripts are trusted. These helpers exist for convenience (a logger that feeds
the live stream, file helpers rooted at the run's output directory and lazy
Playwright launchers); they are not a security boundary.
"""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ScriptCapabilityError(RuntimeError):
    """Raised when a capability cannot be provided to the script."""


def format_log_args(args: tuple[Any, ...]) -> str:
    parts = []
    for arg in args:
        if isinstance(arg, (dict, list, tuple)):
            try:
                parts.append(json.dumps(arg, ensure_ascii=False, default=str))
            except ValueError:
                parts.append(repr(arg))
        else:
            parts.append(str(arg))
    return " ".join(parts)


class ScriptConsole:
    """Logger handed to scripts; every severity lands in the same sink."""

    def __init__(self, sink: Callable[[str], None]) -> None:
        self._sink = sink

    def log(self, *args: Any) -> None:
        self._sink(format_log_args(args))

    info = log
    warn = log
    error = log


class ConsoleWriter(io.TextIOBase):
    """File-like adapter so ``print()`` inside a script becomes ``console.log`` lines."""

    def __init__(self, console: ScriptConsole) -> None:
        super().__init__()
        self._console = console
        self._pending = ""

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        self._pending += text
        while "\n" in self._pending:
            line, self._pending = self._pending.split("\n", 1)
            self._console.log(line)
        return len(text)

    def flush(self) -> None:
        if self._pending:
            line, self._pending = self._pending, ""
            self._console.log(line)


class OutputFS:
    """File helpers scoped to one run's output directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def path(self, name: str = "") -> Path:
        candidate = (self.root / name).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise ValueError(f"Path {name!r} escapes the outputs directory")
        return candidate

    def exists(self, name: str) -> bool:
        return self.path(name).exists()

    def listdir(self, name: str = "") -> list[str]:
        return sorted(entry.name for entry in self.path(name).iterdir())

    def makedirs(self, name: str) -> Path:
        target = self.path(name)
        target.mkdir(parents=True, exist_ok=True)
        return target

    def write_text(self, name: str, text: str, encoding: str = "utf-8") -> str:
        target = self.path(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding=encoding)
        return str(target)

    def write_bytes(self, name: str, data: bytes) -> str:
        target = self.path(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return str(target)

    def read_text(self, name: str, encoding: str = "utf-8") -> str:
        return self.path(name).read_text(encoding=encoding)

    def read_bytes(self, name: str) -> bytes:
        return self.path(name).read_bytes()


class PlaywrightManager:
    """Starts Playwright on first use and tears down every browser it launched."""

    def __init__(self) -> None:
        self._playwright: Any = None
        self._browsers: list[Any] = []

    async def start(self) -> Any:
        if self._playwright is None:
            try:
                from playwright.async_api import async_playwright
            except ImportError as exc:
                raise ScriptCapabilityError(
                    "Playwright is not installed. "
                    "Install with: pip install playwright && playwright install chromium"
                ) from exc
            self._playwright = await async_playwright().start()
        return self._playwright

    def track(self, browser: Any) -> None:
        self._browsers.append(browser)

    @property
    def started(self) -> bool:
        return self._playwright is not None

    async def close(self) -> None:
        while self._browsers:
            browser = self._browsers.pop()
            try:
                if browser.is_connected():
                    await browser.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to close browser: %s", exc)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            finally:
                self._playwright = None


class BrowserLauncher:
    """``await chromium.launch()`` entry point exposed to scripts."""

    def __init__(self, manager: PlaywrightManager, browser_type: str) -> None:
        self._manager = manager
        self._browser_type = browser_type

    @property
    def name(self) -> str:
        return self._browser_type

    async def launch(self, **options: Any) -> Any:
        options.setdefault("headless", True)
        playwright = await self._manager.start()
        browser = await getattr(playwright, self._browser_type).launch(**options)
        self._manager.track(browser)
        return browser


def build_namespace(
    console: ScriptConsole,
    fs: OutputFS,
    manager: PlaywrightManager,
    *,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    namespace: dict[str, Any] = {
        "__name__": "__rpage_script__",
        "console": console,
        "fs": fs,
        "outputs_dir": str(fs.root),
        "chromium": BrowserLauncher(manager, "chromium"),
        "firefox": BrowserLauncher(manager, "firefox"),
        "webkit": BrowserLauncher(manager, "webkit"),
    }
    if extra:
        namespace.update(extra)
    return namespace
