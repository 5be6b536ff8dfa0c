"""Headless browser rendering of web pages."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from ..exceptions import RenderError

LOGGER = logging.getLogger("docforge.collaborators")

BROWSER_CANDIDATES: Sequence[str] = (
    "chromium",
    "chromium-browser",
    "google-chrome",
    "google-chrome-stable",
    "chrome",
)


def find_browser(explicit: Optional[str] = None) -> Optional[str]:
    """Return the browser executable to use, or ``None`` if none is installed."""

    if explicit:
        return shutil.which(explicit) or (explicit if Path(explicit).is_file() else None)
    for candidate in BROWSER_CANDIDATES:
        executable = shutil.which(candidate)
        if executable:
            return executable
    return None


class ChromiumRenderer:
    """Print web pages to PDF with a headless Chromium or Chrome.

    Args:
        executable: Browser binary name or path. Looked up on ``PATH`` from
            :data:`BROWSER_CANDIDATES` when omitted.
        timeout: Seconds the browser may run before it is killed.
    """

    def __init__(self, executable: Optional[str] = None, *, timeout: float = 60.0) -> None:
        self.executable = executable
        self.timeout = timeout

    def command(self, browser: str, url: str, destination: Path) -> list[str]:
        return [
            browser,
            "--headless",
            "--disable-gpu",
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--no-pdf-header-footer",
            f"--print-to-pdf={destination}",
            url,
        ]

    def render(self, url: str, destination: Path) -> None:
        browser = find_browser(self.executable)
        if not browser:
            LOGGER.error("No headless browser available to render %s", url)
            raise RenderError("No headless browser is installed on the server.")

        command = self.command(browser, url, destination)
        LOGGER.debug("Rendering %s with %s", url, browser)
        try:
            subprocess.run(
                command,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout or None,
            )
        except subprocess.TimeoutExpired as exc:
            LOGGER.error("Rendering %s timed out after %ss", url, self.timeout)
            raise RenderError(f"Rendering {url} timed out.") from exc
        except (subprocess.CalledProcessError, OSError) as exc:
            LOGGER.error("Rendering %s failed: %s", url, exc)
            raise RenderError(f"Failed to render {url}.") from exc

        if not destination.exists() or destination.stat().st_size == 0:
            raise RenderError(f"The browser produced no document for {url}.")
        LOGGER.info("Rendered %s to %s", url, destination.name)


__all__ = ["BROWSER_CANDIDATES", "ChromiumRenderer", "find_browser"]
