"""Entry point for running the FastAPI application."""

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from src.services.config import get_config  # noqa: E402

if __name__ == "__main__":
    # HOST / PORT come from the environment (or .env), e.g. PORT=8100 python main.py
    config = get_config()

    uvicorn.run(
        "src.api.main:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
