"""`python -m ema_scanner.services.api` runs the status service under uvicorn."""

import uvicorn

from ema_scanner.core.config import get_settings


def main() -> int:
    settings = get_settings()
    uvicorn.run(
        "ema_scanner.services.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
