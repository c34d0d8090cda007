# clipfetch/transport/schemas.py
from pydantic import BaseModel, ConfigDict, Field


class DownloadIn(BaseModel):
    # url stays optional so a missing value gets the friendly InvalidInput message
    model_config = ConfigDict(extra="ignore")

    url: str | None = Field(default=None, max_length=2048)
    # Non-string values are tolerated; unknown tiers fall back to hd downstream
    quality: str | int | float | None = Field(default="hd")
    format: str | None = Field(default="mp4", max_length=16)


class ErrorOut(BaseModel):
    success: bool = False
    error: str


class HealthOut(BaseModel):
    status: str
    availableMethods: list[str]
