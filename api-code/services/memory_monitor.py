from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

import psutil


logger = logging.getLogger("waifu-backend.memory")

BYTES_PER_MB = 1024 * 1024


class MemoryMonitor:
    """Periodically logs the resident and virtual memory of this process."""

    def __init__(
        self,
        interval_seconds: float = 5.0,
        *,
        process: Optional[psutil.Process] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self.interval_seconds = interval_seconds
        self._process = process or psutil.Process()
        self._sleep = sleep
        self._task: Optional[asyncio.Task[None]] = None

    def snapshot(self) -> Dict[str, int]:
        info = self._process.memory_info()
        return {
            "rss_mb": round(info.rss / BYTES_PER_MB),
            "vms_mb": round(info.vms / BYTES_PER_MB),
        }

    def log_snapshot(self) -> Optional[Dict[str, int]]:
        try:
            usage = self.snapshot()
        except psutil.Error as exc:
            logger.warning("Could not read memory usage: %s", exc)
            return None
        logger.info("Memory usage: rss=%d MB vms=%d MB", usage["rss_mb"], usage["vms_mb"])
        return usage

    async def _run_loop(self) -> None:
        while True:
            self.log_snapshot()
            await self._sleep(self.interval_seconds)

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self._run_loop(), name="memory-monitor")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def build_memory_monitor(interval_seconds: float) -> Optional[MemoryMonitor]:
    if interval_seconds <= 0:
        return None
    return MemoryMonitor(interval_seconds)
