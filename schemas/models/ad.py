"""
Ad document model.

Maps to the `ads` collection. One document per trackable link/pixel.

  owner_id    → integer user number of the owner
  ad_seq      → smallest free positive integer for that owner at creation
  user_ad_no  → "{owner_id}_{ad_seq}", the id every other collection keys on
  ad_code     → tracking code embedded in pixel URLs (null until set)

Unique indexes: (owner_id, ad_seq) and user_ad_no.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel


def make_user_ad_no(owner_id: int, ad_seq: int) -> str:
    return f"{owner_id}_{ad_seq}"


class AdDoc(MongoBaseModel):
    """Document model for the `ads` collection."""

    owner_id: int
    ad_seq: int = Field(gt=0)
    user_ad_no: str
    ad_name: str = ""
    ad_domain: str = ""
    ad_code: Optional[str] = None
    created_at: datetime

    @property
    def display_name(self) -> str:
        return resolve_display_name(self)


def resolve_display_name(ad: Optional[AdDoc], user_ad_no: str = "") -> str:
    """Chart label for an ad: name, else sequence number, else composite id.

    Empty names count as missing.
    """
    if ad is None:
        return user_ad_no
    for candidate in (ad.ad_name, ad.ad_seq, ad.user_ad_no):
        if candidate is not None and str(candidate) != "":
            return str(candidate)
    return user_ad_no
