"""Run transformations on a bounded worker pool."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from ..collaborators import ChromiumRenderer, PdfiumRasterizer, Rasterizer, Renderer
from ..config import Settings
from ..exceptions import TransformationTimeout
from ..resources import IdentifierFactory, ResourceTracker
from .operations import Operation
from .transformation import Transformation

LOGGER = logging.getLogger("docforge.orchestrator")

T = TypeVar("T")


class Orchestrator:
    """Create transformations and execute their blocking steps off the event loop.

    Every transformation owns a private :class:`ResourceTracker`, so concurrent
    requests never share intermediate files.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        renderer: Optional[Renderer] = None,
        rasterizer: Optional[Rasterizer] = None,
        identifiers: Optional[IdentifierFactory] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.renderer = renderer or ChromiumRenderer(
            self.settings.browser_path, timeout=self.settings.render_timeout
        )
        self.rasterizer = rasterizer or PdfiumRasterizer(
            dpi=self.settings.raster_dpi, quality=self.settings.raster_quality
        )
        self.identifiers = identifiers or IdentifierFactory()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    @property
    def executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.settings.max_workers, thread_name_prefix="docforge"
                )
            return self._executor

    def begin(self, operation: Operation) -> Transformation:
        tracker = ResourceTracker(self.settings.work_dir, self.identifiers)
        LOGGER.debug("Starting %s", operation.value)
        return Transformation(
            operation,
            tracker,
            renderer=self.renderer,
            rasterizer=self.rasterizer,
            max_upload_bytes=self.settings.max_upload_bytes,
        )

    async def run(self, transformation: Transformation, func: Callable[..., T], *args: Any) -> T:
        """Run ``func(*args)`` on the pool within the request timeout.

        On timeout the transformation fails immediately; the worker keeps
        running and the transformation's artifacts are released once it ends.
        """

        future = self.executor.submit(func, *args)
        transformation.attach_worker(future)
        timeout = self.settings.request_timeout
        try:
            return await asyncio.wait_for(asyncio.wrap_future(future), timeout)
        except asyncio.TimeoutError:
            error = TransformationTimeout(
                f"{transformation.operation.value} did not finish within {timeout:g} seconds."
            )
            transformation.fail(error)
            raise error from None

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)


__all__ = ["Orchestrator"]
