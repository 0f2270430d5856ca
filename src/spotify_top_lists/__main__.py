"""Entry point for running as a module."""
import logging

import uvicorn

from spotify_top_lists.config import load_local_env_file, load_settings

if __name__ == "__main__":
    load_local_env_file()
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("spotify_top_lists.api:app", host="0.0.0.0", port=settings.port)
