"""Run the chartchat service with uvicorn: ``python -m chartchat``."""
from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "chartchat.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5300")),
        reload=os.getenv("RELOAD", "").lower() in ("1", "true", "yes"),
    )


if __name__ == "__main__":
    main()
