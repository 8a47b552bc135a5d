"""Environment-driven settings for the push server.

Values are read from the process environment, over a local `.env` file when
present, each time `load_settings()` is called. Nothing here imports a package
logger, so logger_util can build every logger from these settings.
"""
from __future__ import annotations

import os
from typing import Optional

import dotenv
from pydantic import BaseModel, ConfigDict, Field


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    environment: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=0, le=65535)
    path: str = "/"
    push_token_secret: Optional[str] = None
    log_dir: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings(env_file: str = ".env") -> Settings:
    env = {k: v for k, v in dotenv.dotenv_values(env_file).items() if v is not None}
    # real environment variables win over the file
    env.update(os.environ)
    return Settings(
        environment=env.get("SUBPAR_ENVIRONMENT") or env.get("ENVIRONMENT") or "development",
        log_level=env.get("SUBPAR_LOG_LEVEL", "INFO").upper(),
        host=env.get("SUBPAR_HOST", "0.0.0.0"),
        # PORT is what hosted container platforms inject
        port=int(env.get("PORT", "8080")),
        path=env.get("SUBPAR_PATH", "/"),
        push_token_secret=env.get("SUBPAR_PUSH_TOKEN_SECRET") or None,
        log_dir=env.get("SUBPAR_LOG_DIR") or None,
    )
