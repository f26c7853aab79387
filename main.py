from __future__ import annotations

import logging
import os
import sys
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from interface.api import app
from interface.cli import main as cli_main

if __name__ == "__main__":
    if sys.argv[1:2] == ["serve"]:
        import uvicorn

        port = int(os.getenv("PORT", 8000))
        uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=port)
    else:
        cli_main()
