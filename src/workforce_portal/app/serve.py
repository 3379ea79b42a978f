import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "workforce_portal.app.main:create_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,  # setup_logging owns the handlers
    )


if __name__ == "__main__":
    main()
