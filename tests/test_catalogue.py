"""Tests for catalogue lookups, seeding and learned-sign logging."""
from datetime import date, datetime
from signlearn.constants import ACTIVITY_LEARNED_SIGN
from signlearn.db import store
from signlearn.db.init_db import (
    CATEGORY_NAMES,
    INDIAN_TRAFFIC_SIGNS,
    build_question_rows,
    seed_catalogue,
)
from signlearn.db.models import Category, Question, TrafficSign, UserActivity
from signlearn.errors import FetchError
from signlearn.services import catalogue
from signlearn.services.streak import local_today


class TestSeeding:
    """Tests for the reference data seed."""

    def test_seeded_counts(self, test_db):
        assert test_db.query(TrafficSign).count() == len(INDIAN_TRAFFIC_SIGNS)
        assert test_db.query(Category).count() == len(CATEGORY_NAMES)
        assert test_db.query(Question).count() == len(INDIAN_TRAFFIC_SIGNS)

    def test_seed_is_idempotent(self, test_db):
        seed_catalogue(test_db)
        assert test_db.query(TrafficSign).count() == len(INDIAN_TRAFFIC_SIGNS)
        assert test_db.query(Question).count() == len(INDIAN_TRAFFIC_SIGNS)

    def test_questions_have_one_correct_meaning(self):
        rows = build_question_rows({tag: i for i, tag in enumerate(CATEGORY_NAMES, start=1)})
        for sign, row in zip(INDIAN_TRAFFIC_SIGNS, rows):
            correct_text = row["option_a"] if row["correct_answer"] == "A" else row["option_b"]
            assert correct_text == sign["meaning"]
            assert row["option_a"] != row["option_b"]

    def test_every_category_has_questions(self, test_db):
        for category in store.select_categories(test_db):
            assert store.select_questions(test_db, category.id)


class TestLookups:
    """Tests for listing and search."""

    def test_list_ordered(self, test_db):
        signs = catalogue.list_signs(test_db)
        assert [s.id for s in signs][:2] == ["stop", "give_way"]

    def test_search_english(self, test_db):
        ids = [s.id for s in catalogue.search_signs(test_db, "parking")]
        assert set(ids) == {"no_parking", "parking_allowed"}

    def test_search_case_insensitive(self, test_db):
        assert [s.id for s in catalogue.search_signs(test_db, "STOP")] == ["stop"]

    def test_blank_search_lists_all(self, test_db):
        assert len(catalogue.search_signs(test_db, "  ")) == len(INDIAN_TRAFFIC_SIGNS)

    def test_get_sign(self, test_db):
        sign = catalogue.get_sign(test_db, "hospital")
        data = catalogue.sign_to_dict(sign)
        assert data["icon_urls"] == ["/static/signs/hospital.png"]
        assert catalogue.get_sign(test_db, "nope") is None

    def test_fetch_failure_degrades(self, test_db, monkeypatch):
        def broken(*args, **kwargs):
            raise FetchError("down")
        monkeypatch.setattr(catalogue.store, "select_signs_catalogue", broken)
        assert catalogue.list_signs(test_db) == []
        assert catalogue.get_sign(test_db, "stop") is None


class TestMarkLearned:
    """Tests for learned_sign logging."""

    def test_once_per_day(self, test_db, test_user):
        today = local_today()
        assert catalogue.mark_sign_learned(test_db, test_user.id, "stop", today) is True
        assert catalogue.mark_sign_learned(test_db, test_user.id, "stop", today) is False
        assert catalogue.mark_sign_learned(test_db, test_user.id, "no_horn", today) is True

        events = test_db.query(UserActivity).filter_by(type=ACTIVITY_LEARNED_SIGN).all()
        assert sorted(e.details for e in events) == ["no_horn", "stop"]

    def test_logged_again_on_a_new_day(self, test_db, test_user, add_activity):
        add_activity(test_user.id, ACTIVITY_LEARNED_SIGN, "stop", datetime(2024, 3, 14, 10))
        assert catalogue.mark_sign_learned(test_db, test_user.id, "stop", date(2024, 3, 15)) is True
