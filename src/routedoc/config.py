from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SYMBOL_SEARCH_DIRS = (
    ".",
    "constants",
    "..",
    "../constants",
    "../common",
    "../..",
    "../../constants",
    "../../common",
    "../../..",
    "../../../common",
)


class ExtractorConfig(BaseModel):
    """
    Conventions the extractor relies on.

    Defaults follow a NestJS layout:
      - controllers live in *.controller.ts files
      - error/success tables live a few directories above the controllers
    """

    model_config = ConfigDict(frozen=True)

    controller_glob: str = "*.controller.ts"
    error_table_filename: str = "error-codes.ts"
    success_table_filename: str = "success-messages.ts"
    symbol_search_dirs: tuple[str, ...] = DEFAULT_SYMBOL_SEARCH_DIRS
    # directory names skipped during scans, on top of the built-in ignores
    ignore_dirs: tuple[str, ...] = ()

    error_helpers: tuple[str, ...] = ("errorDescriptions",)
    success_helpers: tuple[str, ...] = ("successDescriptions",)

    default_title: str = "API"
    default_version: str = "1.0.0"
    default_base_url: str = "http://localhost:3000"

    # how many hops of relative imports are followed when resolving DTO types
    max_import_depth: int = Field(default=3, ge=0)
    max_source_bytes: int = 2_000_000

    @classmethod
    def from_env(cls, **overrides) -> "ExtractorConfig":
        env_map = {
            "controller_glob": "ROUTEDOC_CONTROLLER_GLOB",
            "error_table_filename": "ROUTEDOC_ERROR_TABLE",
            "success_table_filename": "ROUTEDOC_SUCCESS_TABLE",
            "default_title": "ROUTEDOC_DEFAULT_TITLE",
            "default_version": "ROUTEDOC_DEFAULT_VERSION",
            "default_base_url": "ROUTEDOC_BASE_URL",
        }
        values: dict[str, object] = {}
        for field_name, env_name in env_map.items():
            raw: Optional[str] = os.getenv(env_name)
            if raw:
                values[field_name] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
