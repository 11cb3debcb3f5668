"""Practice test endpoints."""
from typing import Dict, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, validator
from sqlalchemy.orm import Session
from signlearn.constants import FEEDBACK_DWELL_SECONDS
from signlearn.db import store
from signlearn.db.database import get_db
from signlearn.errors import SignLearnError
from signlearn.logging_config import get_logger
from signlearn.routers.deps import http_error, require_user
from signlearn.services.progress import record_test_result
from signlearn.services.quiz_session import QuizQuestion, QuizSession, QuizState
from signlearn.services.sessions import SessionEntry, quiz_sessions

logger = get_logger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


class StartQuizRequest(BaseModel):
    """Request body for starting a test."""
    category_id: Optional[int] = Field(None, gt=0)
    scoped: bool = False


class CategoryChoice(BaseModel):
    category_id: int = Field(..., gt=0)


class AnswerSubmission(BaseModel):
    """Request body for answer submission."""
    answer: str = Field(..., min_length=1, max_length=1, description="Option slot, A or B")

    @validator("answer")
    def validate_answer(cls, v):
        v = v.strip().upper()
        if v not in ("A", "B"):
            raise ValueError("answer must be A or B")
        return v


def _load_pool(db: Session, category_id: Optional[int] = None):
    return [QuizQuestion.from_row(row) for row in store.select_questions(db, category_id)]


def _finish(entry: SessionEntry, db: Session) -> Dict:
    """Persist a completed test once and build its summary."""
    session: QuizSession = entry.session
    entry.cancel_timers()
    result = session.take_result()
    saved = False
    if result is not None:
        saved = record_test_result(db, entry.user_id, result["score"], result["total"])
        logger.info(
            f"Test completed: {result['score']}/{result['total']} ({session.percentage}%)",
            extra={"user_id": entry.user_id}
        )
    return {
        "score": session.score,
        "answered": session.answered_count,
        "total": session.denominator,
        "percentage": session.percentage,
        "saved": saved,
    }


@router.get("/categories")
async def list_categories(db: Session = Depends(get_db)):
    """Categories with how many questions each holds."""
    try:
        categories = store.select_categories(db)
        counts = {}
        for question in store.select_questions(db):
            counts[question.category_id] = counts.get(question.category_id, 0) + 1
    except SignLearnError as e:
        raise http_error(e)
    return {
        "categories": [
            {"id": category.id, "name": category.name, "question_count": counts.get(category.id, 0)}
            for category in categories
        ]
    }


@router.post("/start")
async def start_quiz(body: StartQuizRequest, user: Dict = Depends(require_user),
                     db: Session = Depends(get_db)):
    """
    Start a new test, replacing any test already running.

    - no category, not scoped: 10 random questions from the whole pool
    - category_id: 10 random questions from that category
    - scoped without category_id: wait for POST /api/quiz/category
    """
    try:
        if body.category_id is not None:
            session = QuizSession(scoped=True)
            session.choose_category(body.category_id, _load_pool(db, body.category_id))
        elif body.scoped:
            session = QuizSession(scoped=True)
        else:
            session = QuizSession.unscoped(_load_pool(db))
    except SignLearnError as e:
        raise http_error(e)

    quiz_sessions.start(user["id"], session)
    logger.info(f"Test started ({session.state.value})", extra={"user_id": user["id"]})
    return session.to_dict()


@router.post("/category")
async def choose_category(body: CategoryChoice, user: Dict = Depends(require_user),
                          db: Session = Depends(get_db)):
    try:
        entry = quiz_sessions.get(user["id"])
        entry.session.choose_category(body.category_id, _load_pool(db, body.category_id))
    except SignLearnError as e:
        raise http_error(e)
    return entry.session.to_dict()


@router.post("/answer")
async def submit_answer(body: AnswerSubmission, user: Dict = Depends(require_user),
                        db: Session = Depends(get_db)):
    """
    Submit the answer for the current question.

    Returns the correct slot and explanation. Unless this was the last
    question, the next one is shown after FEEDBACK_DWELL_SECONDS or on
    POST /api/quiz/next, whichever comes first.
    """
    try:
        entry = quiz_sessions.get(user["id"])
        session: QuizSession = entry.session
        outcome = session.submit(body.answer)
    except SignLearnError as e:
        raise http_error(e)

    response = {"outcome": outcome.to_dict()}
    if session.state == QuizState.COMPLETED:
        response["summary"] = _finish(entry, db)
    else:
        quiz_sessions.schedule(entry, FEEDBACK_DWELL_SECONDS, session.advance)
    response["state"] = session.to_dict()
    return response


@router.post("/next")
async def next_question(user: Dict = Depends(require_user)):
    try:
        entry = quiz_sessions.get(user["id"])
    except SignLearnError as e:
        raise http_error(e)
    entry.cancel_timers()
    entry.session.advance()
    return entry.session.to_dict()


@router.post("/finish")
async def finish_quiz(user: Dict = Depends(require_user), db: Session = Depends(get_db)):
    """End the test now. Nothing is saved if no question was answered."""
    try:
        entry = quiz_sessions.get(user["id"])
        entry.session.finish_early()
    except SignLearnError as e:
        raise http_error(e)
    return {"summary": _finish(entry, db), "state": entry.session.to_dict()}


@router.get("/state")
async def get_quiz_state(user: Dict = Depends(require_user)):
    try:
        entry = quiz_sessions.get(user["id"])
    except SignLearnError as e:
        raise http_error(e)
    return entry.session.to_dict()


@router.delete("")
async def exit_quiz(user: Dict = Depends(require_user)):
    """Leave the test screen. An unfinished test is discarded."""
    ended = quiz_sessions.end(user["id"])
    return {"ended": ended}
