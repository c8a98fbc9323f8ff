"""Unit tests for database entity helpers."""

from datetime import datetime

import pytest

from heritage_whisper.core.database.base import dump_json, load_json, new_id, utc_now
from heritage_whisper.core.database.entities import Story, User


class TestBaseHelpers:
    def test_utc_now_is_naive(self):
        assert utc_now().tzinfo is None

    def test_new_id_is_unique(self):
        assert new_id() != new_id()

    @pytest.mark.parametrize("raw", [None, "", "{not json", "null-ish["])
    def test_load_json_falls_back(self, raw):
        assert load_json(raw, []) == []

    def test_dump_json_serializes_datetimes(self):
        assert dump_json({"at": datetime(1957, 6, 1)}) == '{"at": "1957-06-01 00:00:00"}'


class TestStoryJsonColumns:
    def test_defaults(self):
        story = Story(user_id="user-1", title="The barn")

        assert story.get_photos_list() == []
        assert story.get_emotions_list() == []
        assert story.get_photo_transform() is None

    def test_photos_round_trip(self):
        story = Story(user_id="user-1", title="The barn")
        photos = [{"id": "p1", "url": "user-1/barn.jpg", "isHero": True}]

        story.set_photos_list(photos)

        assert story.get_photos_list() == photos

    def test_clearing_transform(self):
        story = Story(user_id="user-1", title="The barn")
        story.set_photo_transform({"zoom": 1.2, "position": {"x": 0, "y": 10}})

        story.set_photo_transform(None)

        assert story.photo_transform is None


class TestUserDefaults:
    def test_new_user_is_on_free_plan(self):
        user = User(email="margaret@example.com")

        assert user.is_paid is False
        assert user.subscription_status == "none"
        assert user.story_count == 0
        assert user.name == "User"
