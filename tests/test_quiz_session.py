"""Tests for the practice test state machine."""
import random
import pytest
from signlearn.errors import InputValidationError, InsufficientDataError
from signlearn.services.quiz_session import QuizQuestion, QuizSession, QuizState


def make_pool(size):
    return [
        QuizQuestion(id=i, prompt=f"Q{i}", option_a="a", option_b="b",
                     correct_answer="A" if i % 2 == 0 else "B", explanation=f"because {i}")
        for i in range(1, size + 1)
    ]


def answer_all(session, correct_count):
    """Answer every question, getting the first ``correct_count`` right."""
    for n in range(len(session.questions)):
        question = session.current_question
        wrong = "B" if question.correct_answer == "A" else "A"
        session.submit(question.correct_answer if n < correct_count else wrong)
        session.advance()


class TestQuizStart:
    """Tests for sampling and start-up."""

    def test_unscoped_samples_ten_distinct(self):
        session = QuizSession.unscoped(make_pool(17), rng=random.Random(1))
        assert session.state == QuizState.IN_PROGRESS
        assert len(session.questions) == 10
        assert len({q.id for q in session.questions}) == 10

    def test_unscoped_requires_ten(self):
        with pytest.raises(InsufficientDataError):
            QuizSession.unscoped(make_pool(9))

    def test_scoped_waits_for_category(self):
        session = QuizSession(scoped=True)
        assert session.state == QuizState.SELECTING_CATEGORY
        assert session.current_question is None

    def test_scoped_small_pool_allowed(self):
        session = QuizSession(scoped=True)
        session.choose_category(3, make_pool(4))
        assert session.state == QuizState.IN_PROGRESS
        assert len(session.questions) == 4
        assert session.category_id == 3

    def test_scoped_empty_pool_rejected(self):
        session = QuizSession(scoped=True)
        with pytest.raises(InsufficientDataError):
            session.choose_category(3, [])
        assert session.state == QuizState.SELECTING_CATEGORY


class TestQuizAnswering:
    """Tests for submit / advance."""

    def test_correct_answer_scores(self):
        session = QuizSession.unscoped(make_pool(10))
        question = session.current_question
        outcome = session.submit(question.correct_answer)
        assert outcome.is_correct is True
        assert outcome.score == 1
        assert outcome.explanation == question.explanation
        assert session.awaiting_advance is True

    def test_answer_is_final(self):
        session = QuizSession.unscoped(make_pool(10))
        session.submit("A")
        with pytest.raises(InputValidationError):
            session.submit("B")
        assert session.answers == ["A"]

    def test_invalid_slot(self):
        session = QuizSession.unscoped(make_pool(10))
        with pytest.raises(InputValidationError):
            session.submit("C")
        assert session.answered_count == 0

    def test_advance_moves_to_next_question(self):
        session = QuizSession.unscoped(make_pool(10))
        first = session.current_question
        session.submit("A")
        assert session.advance() is True
        assert session.current_question is not first
        assert session.advance() is False

    def test_final_answer_completes(self):
        session = QuizSession.unscoped(make_pool(10))
        answer_all(session, correct_count=7)
        assert session.state == QuizState.COMPLETED
        assert session.score == 7
        assert session.percentage == 70

    def test_submit_after_completion_rejected(self):
        session = QuizSession.unscoped(make_pool(10))
        answer_all(session, correct_count=10)
        with pytest.raises(InputValidationError):
            session.submit("A")


class TestQuizScoring:
    """Tests for totals and the one-time result."""

    def test_finish_early_uses_answered_count(self):
        session = QuizSession.unscoped(make_pool(10))
        for _ in range(4):
            q = session.current_question
            session.submit(q.correct_answer)
            session.advance()
        session.finish_early()

        assert session.state == QuizState.COMPLETED
        assert session.denominator == 4
        assert session.percentage == 100
        assert session.take_result() == {"score": 4, "total": 4}

    def test_finish_with_no_answers_records_nothing(self):
        session = QuizSession.unscoped(make_pool(10))
        session.finish_early()
        assert session.state == QuizState.COMPLETED
        assert session.take_result() is None

    def test_result_taken_once(self):
        session = QuizSession.unscoped(make_pool(10))
        answer_all(session, correct_count=5)
        assert session.take_result() == {"score": 5, "total": 10}
        assert session.take_result() is None

    def test_no_result_while_in_progress(self):
        session = QuizSession.unscoped(make_pool(10))
        session.submit("A")
        assert session.take_result() is None

    def test_scoped_total_rounds_up_to_ten(self):
        """Four questions in a category are scored out of ten."""
        session = QuizSession(scoped=True)
        session.choose_category(1, make_pool(4))
        answer_all(session, correct_count=4)
        assert session.denominator == 10
        assert session.percentage == 40
        assert session.take_result() == {"score": 4, "total": 10}

    def test_state_dict_hides_answer(self):
        session = QuizSession.unscoped(make_pool(10))
        data = session.to_dict()
        assert data["state"] == "in_progress"
        assert data["question_number"] == 1
        assert "correct_answer" not in data["question"]
        assert "percentage" not in data
