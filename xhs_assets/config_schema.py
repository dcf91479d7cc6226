from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

DEMO_ENDPOINT = "demo"

Language = Literal["zh", "en"]


class AppConfig(BaseModel):
    """
    Resolver connection settings plus the UI language.

    This is the only state persisted across sessions.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoint: str = DEMO_ENDPOINT
    token: str | None = None
    language: Language = "zh"

    @field_validator("endpoint", mode="before")
    @classmethod
    def _strip_endpoint(cls, v: object) -> object:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("token", mode="before")
    @classmethod
    def _blank_token_is_none(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @property
    def is_demo(self) -> bool:
        return not self.endpoint or self.endpoint == DEMO_ENDPOINT

    @property
    def base_url(self) -> str:
        endpoint = self.endpoint
        if endpoint.endswith("/"):
            endpoint = endpoint[:-1]
        return endpoint
