"""Practice test session: sampling, answering, scoring and completion."""
import math
import random
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence
from signlearn.constants import MIN_UNSCOPED_POOL, QUIZ_LENGTH, SCOPED_SCORE_BUCKET
from signlearn.db.models import Question
from signlearn.errors import InputValidationError, InsufficientDataError


class QuizState(str, Enum):
    """Lifecycle of a practice test."""
    SELECTING_CATEGORY = "selecting_category"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


ANSWER_SLOTS = ("A", "B")


@dataclass(frozen=True)
class QuizQuestion:
    """Detached copy of a question row, safe to keep after the db session closes."""
    id: int
    prompt: str
    option_a: str
    option_b: str
    correct_answer: str
    explanation: Optional[str] = None
    media_type: Optional[str] = None
    media_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Question) -> "QuizQuestion":
        return cls(
            id=row.id,
            prompt=row.question,
            option_a=row.option_a,
            option_b=row.option_b,
            correct_answer=row.correct_answer,
            explanation=row.explanation,
            media_type=row.media_type,
            media_url=row.media_url,
        )

    def public_dict(self) -> Dict:
        """Question as shown before it is answered."""
        return {
            "id": self.id,
            "prompt": self.prompt,
            "options": [
                {"letter": "A", "text": self.option_a},
                {"letter": "B", "text": self.option_b},
            ],
            "media_type": self.media_type,
            "media_url": self.media_url,
        }


@dataclass(frozen=True)
class QuizOutcome:
    question_id: int
    selected: str
    correct_answer: str
    is_correct: bool
    explanation: Optional[str]
    score: int
    completed: bool

    def to_dict(self) -> Dict:
        return asdict(self)


class QuizSession:
    """
    One play-through of a practice test.

    Uncategorized tests start immediately from the full pool; categorized
    tests wait in SELECTING_CATEGORY until ``choose_category`` is called.
    After each non-final answer the session holds the feedback until
    ``advance`` moves it to the next question.
    """

    def __init__(self, scoped: bool = False, rng: Optional[random.Random] = None):
        self.scoped = scoped
        self.rng = rng or random.Random()
        self.state = QuizState.SELECTING_CATEGORY if scoped else QuizState.IN_PROGRESS
        self.category_id: Optional[int] = None
        self.questions: List[QuizQuestion] = []
        self.answers: List[str] = []
        self.results: List[bool] = []
        self.current_index = 0
        self.score = 0
        self.awaiting_advance = False
        self.result_recorded = False

    # --- Setup ---------------------------------------------------------------

    def _sample(self, pool: Sequence[QuizQuestion]) -> None:
        shuffled = list(pool)
        self.rng.shuffle(shuffled)
        self.questions = shuffled[:QUIZ_LENGTH]
        self.state = QuizState.IN_PROGRESS

    @classmethod
    def unscoped(cls, pool: Sequence[QuizQuestion], rng: Optional[random.Random] = None) -> "QuizSession":
        """
        Start a test over the full question pool.

        Raises:
            InsufficientDataError: fewer than MIN_UNSCOPED_POOL questions
        """
        if len(pool) < MIN_UNSCOPED_POOL:
            raise InsufficientDataError(
                f"You need at least {MIN_UNSCOPED_POOL} questions in the database."
            )
        session = cls(scoped=False, rng=rng)
        session._sample(pool)
        return session

    def choose_category(self, category_id: int, pool: Sequence[QuizQuestion]) -> None:
        """Sample this category's questions and begin. Raises InsufficientDataError if empty."""
        if self.state != QuizState.SELECTING_CATEGORY:
            raise InputValidationError("Category already chosen")
        if not pool:
            raise InsufficientDataError("This category has no questions yet.")
        self.category_id = category_id
        self._sample(pool)

    # --- Play ----------------------------------------------------------------

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if self.state != QuizState.IN_PROGRESS or self.current_index >= len(self.questions):
            return None
        return self.questions[self.current_index]

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def is_final_question(self) -> bool:
        return self.current_index == len(self.questions) - 1

    def submit(self, answer: Optional[str]) -> QuizOutcome:
        """
        Answer the current question.

        The answer is final: a second submission before ``advance`` is rejected.
        Answering the last question completes the test.
        """
        if self.state != QuizState.IN_PROGRESS:
            raise InputValidationError("The test is not in progress")
        if self.awaiting_advance:
            raise InputValidationError("This question has already been answered")
        if answer not in ANSWER_SLOTS:
            raise InputValidationError("Please select an answer.")

        question = self.current_question
        is_correct = answer == question.correct_answer
        self.answers.append(answer)
        self.results.append(is_correct)
        if is_correct:
            self.score += 1

        if self.is_final_question:
            self.state = QuizState.COMPLETED
        else:
            self.awaiting_advance = True

        return QuizOutcome(
            question_id=question.id,
            selected=answer,
            correct_answer=question.correct_answer,
            is_correct=is_correct,
            explanation=question.explanation,
            score=self.score,
            completed=self.state == QuizState.COMPLETED,
        )

    def advance(self) -> bool:
        """Leave the feedback of the last answer and show the next question."""
        if self.state != QuizState.IN_PROGRESS or not self.awaiting_advance:
            return False
        self.current_index += 1
        self.awaiting_advance = False
        return True

    def finish_early(self) -> None:
        if self.state == QuizState.SELECTING_CATEGORY:
            raise InputValidationError("The test has not started")
        self.awaiting_advance = False
        self.state = QuizState.COMPLETED

    # --- Scoring -------------------------------------------------------------

    @property
    def denominator(self) -> int:
        """
        Total the score is measured against.

        Uncategorized tests use the number answered. Categorized tests round
        the number sampled up to the next multiple of SCOPED_SCORE_BUCKET.
        """
        if self.scoped:
            buckets = max(1, math.ceil(len(self.questions) / SCOPED_SCORE_BUCKET))
            return buckets * SCOPED_SCORE_BUCKET
        return self.answered_count

    @property
    def percentage(self) -> int:
        if not self.denominator:
            return 0
        return round(self.score / self.denominator * 100)

    def take_result(self) -> Optional[Dict]:
        """
        The (score, total) to persist, exactly once per completed test.

        Returns None while in progress, after the result was taken, or when the
        test was finished before any question was answered.
        """
        if self.state != QuizState.COMPLETED or self.result_recorded or not self.answered_count:
            return None
        self.result_recorded = True
        return {"score": self.score, "total": self.denominator}

    def to_dict(self) -> Dict:
        question = self.current_question
        data = {
            "state": self.state.value,
            "scoped": self.scoped,
            "category_id": self.category_id,
            "question_number": self.current_index + 1 if self.questions else 0,
            "question_count": len(self.questions),
            "answered_count": self.answered_count,
            "score": self.score,
            "awaiting_advance": self.awaiting_advance,
            "question": question.public_dict() if question else None,
            "answers": list(self.results),
        }
        if self.state == QuizState.COMPLETED:
            data["percentage"] = self.percentage
            data["total"] = self.denominator
        return data
