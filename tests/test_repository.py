"""Repository queries: partial analysis updates, exact tag matching, sentiment filter, pagination math."""

import pytest

from shadowlog.models.user import User
from shadowlog.repositories.entry_repository import (
    create_entry,
    get_entry_for_user,
    quick_search,
    search_entries,
    update_analysis,
)
from shadowlog.utils.pagination import calculate_pagination, pagination_meta


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def user_id(db):
    user = User(email="carol@example.com", password="x")
    db.add(user)
    db.commit()
    return user.id


class TestUpdateAnalysis:

    def test_only_passed_fields_change(self, db, user_id):
        entry = create_entry(db, user_id, "t", "c")
        assert update_analysis(db, entry.id, tags=["a"], summary="s") is True
        assert update_analysis(db, entry.id, summary="s2") is True

        db.expire_all()
        entry = get_entry_for_user(db, entry.id, user_id)
        assert entry.ai_tags == ["a"]
        assert entry.ai_summary == "s2"
        assert entry.ai_sentiment is None

    def test_missing_entry(self, db):
        assert update_analysis(db, "gone", tags=["a"]) is False

    def test_ownership(self, db, user_id):
        entry = create_entry(db, user_id, "t", "c")
        assert get_entry_for_user(db, entry.id, "someone-else") is None


class TestTagQueries:

    def test_tag_match_is_exact(self, db, user_id):
        entry = create_entry(db, user_id, "Notes", "nothing here")
        update_analysis(db, entry.id, tags=["café", "workday"])

        assert [e.id for e in quick_search(db, user_id, "café")] == [entry.id]
        assert quick_search(db, user_id, "work") == []

    def test_tag_with_like_wildcards(self, db, user_id):
        entry = create_entry(db, user_id, "Notes", "x")
        update_analysis(db, entry.id, tags=["100%"])
        assert quick_search(db, user_id, "1%") == []
        assert len(quick_search(db, user_id, "100%")) == 1

    def test_sentiment_filter(self, db, user_id):
        happy = create_entry(db, user_id, "Walk", "walk in the sun")
        sad = create_entry(db, user_id, "Walk", "walk in the rain")
        update_analysis(db, happy.id, sentiment={"score": 0.7, "label": "positive", "confidence": 1, "emotions": []})
        update_analysis(db, sad.id, sentiment={"score": -0.7, "label": "negative", "confidence": 1, "emotions": []})

        rows, total = search_entries(db, user_id, "walk", sentiment="negative")
        assert total == 1
        assert rows[0].id == sad.id


class TestPagination:

    def test_skip_take(self):
        assert calculate_pagination(3, 10) == (20, 10)

    def test_meta(self):
        assert pagination_meta(2, 10, 25) == {
            "page": 2,
            "limit": 10,
            "total": 25,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    def test_meta_empty(self):
        meta = pagination_meta(1, 10, 0)
        assert meta["total_pages"] == 0
        assert meta["has_next"] is False
