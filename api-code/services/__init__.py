from .chat_service import OpenAIChatService, UpstreamError
from .memory_monitor import MemoryMonitor, build_memory_monitor
from .poster_service import ScheduledPoster, TwitterPublisher, build_scheduled_poster

__all__ = [
    "OpenAIChatService",
    "UpstreamError",
    "MemoryMonitor",
    "build_memory_monitor",
    "ScheduledPoster",
    "TwitterPublisher",
    "build_scheduled_poster",
]
