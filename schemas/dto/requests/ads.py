"""
Request DTOs for ad management and visit-log listing.

Every field accepts both the snake_case name and the camelCase spelling
the dashboard client sends (``adName``, ``adSeqList``, ``userAdNo``...).
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MAX_LOG_PAGE = 500
DEFAULT_LOG_PAGE = 200


def _trimmed(value: Any) -> str:
    return "" if value is None else str(value).strip()


class CreateAdRequest(BaseModel):
    """Body for POST /api/ads."""

    model_config = ConfigDict(populate_by_name=True)

    ad_name: str = Field(default="", validation_alias=AliasChoices("ad_name", "adName"))
    ad_domain: str = Field(
        default="", validation_alias=AliasChoices("ad_domain", "adDomain")
    )
    ad_code: str = Field(default="", validation_alias=AliasChoices("ad_code", "adCode"))

    @field_validator("ad_name", "ad_domain", "ad_code", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _trimmed(v)


class UpdateAdRequest(BaseModel):
    """Body for PUT /api/ads/{ref}. Only fields present in the body are applied."""

    model_config = ConfigDict(populate_by_name=True)

    ad_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ad_name", "adName")
    )
    ad_domain: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ad_domain", "adDomain")
    )
    ad_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ad_code", "adCode")
    )

    def provided_fields(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class BulkDeleteRequest(BaseModel):
    """Body for POST /api/ads/bulk-delete.

    Items are either ad sequence numbers (digits) or composite ``user_ad_no``
    strings; blanks are dropped.
    """

    model_config = ConfigDict(populate_by_name=True)

    ad_seq_list: list[Union[int, str]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("ad_seq_list", "adSeqList"),
    )

    def split_refs(self) -> tuple[list[int], list[str]]:
        seqs: list[int] = []
        user_ad_nos: list[str] = []
        for item in self.ad_seq_list:
            value = _trimmed(item)
            if not value:
                continue
            if value.isdigit():
                seqs.append(int(value))
            elif value not in user_ad_nos:
                user_ad_nos.append(value)
        return seqs, user_ad_nos


class LogsQuery(BaseModel):
    """Query parameters for GET /api/ads/logs."""

    model_config = ConfigDict(populate_by_name=True)

    user_ad_no: str = Field(validation_alias=AliasChoices("user_ad_no", "userAdNo"))
    limit: int = DEFAULT_LOG_PAGE
    offset: int = 0

    @field_validator("user_ad_no", mode="after")
    @classmethod
    def _require(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("userAdNo is required")
        return v

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, v: Any) -> int:
        try:
            value = int(float(v))
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_LOG_PAGE
        return min(max(value, 1), MAX_LOG_PAGE)

    @field_validator("offset", mode="before")
    @classmethod
    def _clamp_offset(cls, v: Any) -> int:
        try:
            value = int(float(v))
        except (TypeError, ValueError, OverflowError):
            return 0
        return max(value, 0)
