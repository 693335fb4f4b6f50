"""Uvicorn entry point (``storefront-api`` console script)."""

import os

import uvicorn

host = os.getenv("HOST", "0.0.0.0")
port = int(os.getenv("PORT", "3000"))
workers = int(os.getenv("UVICORN_WORKERS", str(max(2, (os.cpu_count() or 1)))))
loop = os.getenv("UVICORN_LOOP", "auto")  # "uvloop" needs uvicorn[standard]
http = "h11"
log_level = os.getenv("LOG_LEVEL", "info").lower()


def main() -> None:
    uvicorn.run(
        "storefront.main:app",
        host=host,
        port=port,
        workers=workers,
        loop=loop,
        http=http,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
