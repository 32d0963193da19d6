from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError


PROJECT_ROOT = Path(__file__).resolve().parent
API_CODE_PATH = PROJECT_ROOT / "api-code"
if str(API_CODE_PATH) not in sys.path:
    sys.path.insert(0, str(API_CODE_PATH))

from application import create_app  # noqa: E402
from env_loader import load_local_env  # noqa: E402
from lifecycle import install_excepthook  # noqa: E402
from settings import ConfigurationError, get_settings  # noqa: E402


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_log_level(name: str | None) -> int:
    level = logging.getLevelName((name or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


install_excepthook()
logging.basicConfig(level=resolve_log_level(os.environ.get("LOG_LEVEL")), format=LOG_FORMAT)
logger = logging.getLogger("waifu-backend")

load_local_env(PROJECT_ROOT / ".env")

try:
    settings = get_settings()
    logging.getLogger().setLevel(resolve_log_level(settings.log_level))
    app = create_app(settings)
except (ConfigurationError, ValidationError) as exc:
    logger.error("Error: %s Refusing to start.", exc)
    sys.exit(1)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=logging.getLevelName(resolve_log_level(settings.log_level)).lower(),
    )
