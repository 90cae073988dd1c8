# backend/stockdb/serve.py
import os

import uvicorn


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def main() -> None:
    reload_enabled = _env_flag("RELOAD")
    # uvicorn ignores workers when reload is on.
    workers = 1 if reload_enabled else int(os.getenv("WEB_CONCURRENCY", "1"))

    uvicorn.run(
        "stockdb.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload_enabled,
        workers=workers,
        log_level=os.getenv("LOG_LEVEL", "info"),
        proxy_headers=_env_flag("PROXY_HEADERS", "true"),
    )


if __name__ == "__main__":
    main()
