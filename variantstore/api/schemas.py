"""Pydantic schemas for the object routes."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


def _config_forbid(**kwargs):
    return ConfigDict(extra="forbid", **kwargs)


class ObjectResponse(BaseModel):
    model_config = _config_forbid()
    key: str
    url: str


class SignedUrlResponse(BaseModel):
    model_config = _config_forbid()
    url: str
    method: str
    headers: dict[str, str]
    expires_at: datetime
