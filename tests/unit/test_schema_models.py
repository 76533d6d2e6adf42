"""Unit tests for MongoDB document models."""

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from pydantic import ValidationError

from schemas.models.ad import AdDoc, make_user_ad_no, resolve_display_name
from schemas.models.base import MongoBaseModel, PyObjectId
from schemas.models.visit_log import DailySequenceDoc, VisitLogDoc, make_log_key


# ── Helpers ───────────────────────────────────────────────────────────────────

def now():
    return datetime.now(timezone.utc)


def ad(**overrides) -> AdDoc:
    base = dict(owner_id=2, ad_seq=1, user_ad_no="2_1", created_at=now())
    base.update(overrides)
    return AdDoc(**base)


# ── PyObjectId / MongoBaseModel ───────────────────────────────────────────────

class TestPyObjectId:
    def test_accepts_valid_string(self):
        s = str(ObjectId())
        assert str(PyObjectId._validate(s)) == s

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            PyObjectId._validate("not-an-objectid")


class TestMongoBaseModel:
    def test_from_mongo_returns_none_for_none(self):
        assert MongoBaseModel.from_mongo(None) is None

    def test_to_mongo_drops_none_id(self):
        assert "_id" not in MongoBaseModel().to_mongo()


# ── AdDoc ─────────────────────────────────────────────────────────────────────

class TestAdDoc:
    def test_user_ad_no(self):
        assert make_user_ad_no(2, 15) == "2_15"

    def test_round_trip_through_mongo_dict(self):
        o = ObjectId()
        doc = AdDoc.from_mongo(
            {
                "_id": o,
                "owner_id": 2,
                "ad_seq": 3,
                "user_ad_no": "2_3",
                "ad_name": "spring",
                "ad_domain": "example.com",
                "ad_code": None,
                "created_at": now(),
            }
        )
        assert doc.id == o
        assert doc.ad_code is None
        assert doc.to_mongo()["_id"] == o

    def test_new_doc_has_no_id(self):
        assert "_id" not in ad().to_mongo()

    def test_sequence_must_be_positive(self):
        with pytest.raises(ValidationError):
            ad(ad_seq=0)

    @pytest.mark.parametrize(
        "name, expected",
        [("banner", "banner"), ("", "1")],
        ids=["name", "seq_fallback"],
    )
    def test_display_name(self, name, expected):
        assert ad(ad_name=name).display_name == expected

    def test_display_name_for_missing_ad(self):
        assert resolve_display_name(None, "9_9") == "9_9"


# ── VisitLogDoc / DailySequenceDoc ────────────────────────────────────────────

class TestVisitLogDoc:
    def test_log_key(self):
        assert make_log_key("20240601", "og_2_1", 7) == "20240601_og_2_1_0007"

    def test_log_key_is_document_id(self):
        doc = VisitLogDoc(
            log_key="20240601_og_0001", user_ad_no="2_1", created_at=now()
        )
        data = doc.to_mongo()
        assert data["_id"] == "20240601_og_0001"
        assert "log_key" not in data
        assert data["raw_ip"] == ""

    def test_from_mongo(self):
        doc = VisitLogDoc.from_mongo(
            {"_id": "k", "user_ad_no": "2_1", "raw_ip": "1.2.3.4", "created_at": now()}
        )
        assert doc.log_key == "k"
        assert VisitLogDoc.from_mongo(None) is None


class TestDailySequenceDoc:
    def test_ignores_mongo_id(self):
        doc = DailySequenceDoc.model_validate(
            {"_id": ObjectId(), "created_day": "2024-06-01", "user_ad_no": "2_1", "next_seq": 4}
        )
        assert doc.next_seq == 4

    def test_counter_starts_at_one(self):
        with pytest.raises(ValidationError):
            DailySequenceDoc(created_day="2024-06-01", user_ad_no="2_1", next_seq=0)
