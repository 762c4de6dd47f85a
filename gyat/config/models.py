from typing import Literal

from pydantic import BaseModel, Field, field_validator


class StoreConfig(BaseModel):
    compression_level: int = Field(default=6, ge=0, le=9)
    chunk_size: int = Field(default=65536, gt=0)


class GyatConfig(BaseModel):
    metadata_dir: str = ".gyat"
    store: StoreConfig = Field(default_factory=StoreConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"

    @field_validator("metadata_dir")
    @classmethod
    def validate_metadata_dir(cls, v: str) -> str:
        if not v.strip() or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"metadata_dir must be a plain directory name, got {v!r}")
        return v
