"""
Visit log and daily sequence document models.

VisitLogDoc       → `ad-logs`           one document per tracked visit; the
                                        log key is the document _id
DailySequenceDoc  → `ad-log-sequences`  per (local day, ad) counter feeding
                                        the 4-digit log-key suffix
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


def make_log_key(day_compact: str, ad_code: str, seq: int) -> str:
    """``20240601_og_2_1_0001``; sequences past 9999 keep all their digits."""
    return f"{day_compact}_{ad_code}_{seq:04d}"


class VisitLogDoc(BaseModel):
    """Document model for the `ad-logs` collection."""

    model_config = ConfigDict(populate_by_name=True)

    log_key: str = Field(alias="_id")
    user_ad_no: str
    raw_ip: str = ""
    created_at: datetime

    def to_mongo(self) -> dict:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_mongo(cls, data: dict | None) -> "VisitLogDoc | None":
        if data is None:
            return None
        return cls.model_validate(data)


class DailySequenceDoc(BaseModel):
    """Document model for the `ad-log-sequences` collection.

    Unique on (created_day, user_ad_no); next_seq is the last issued value.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    created_day: str  # "YYYY-MM-DD" in the reference timezone
    user_ad_no: str
    next_seq: int = Field(ge=1)
