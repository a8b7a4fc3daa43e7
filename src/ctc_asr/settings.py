"""
Process-level defaults from environment variables.

A `.env` file in the working directory is loaded first if present; variables
already set in the environment take precedence.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from ctc_asr.models.registry import DEFAULT_MODEL_ID

ENV_PREFIX = "CTC_ASR_"


@dataclass(frozen=True)
class Settings:
    models_root: Path = Path("models")
    model_id: str = DEFAULT_MODEL_ID
    speed_profile: str = "balanced"
    accelerator: str = "auto"
    log_level: str = "INFO"


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> Settings:
    """Build Settings from `env` (os.environ after loading `.env` when None)."""
    if env is None:
        if dotenv_path is not None:
            load_dotenv(dotenv_path=dotenv_path)
        else:
            load_dotenv()
        env = os.environ

    defaults = Settings()
    return Settings(
        models_root=Path(env.get(f"{ENV_PREFIX}MODELS_ROOT", str(defaults.models_root))),
        model_id=env.get(f"{ENV_PREFIX}MODEL_ID", defaults.model_id),
        speed_profile=env.get(f"{ENV_PREFIX}SPEED_PROFILE", defaults.speed_profile),
        accelerator=env.get(f"{ENV_PREFIX}ACCELERATOR", defaults.accelerator),
        log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
    )
