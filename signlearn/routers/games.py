"""Mini-game endpoints and the timers that drive them."""
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from signlearn.constants import (
    MATCH_FLIP_BACK_SECONDS,
    SEQUENCE_INPUT_DELAY_SECONDS,
    SEQUENCE_REVEAL_SECONDS,
    SPEED_TICK_SECONDS,
)
from signlearn.db.database import get_db
from signlearn.errors import InputValidationError, SignLearnError
from signlearn.logging_config import get_logger
from signlearn.routers.deps import http_error, require_user
from signlearn.services.catalogue import list_signs
from signlearn.services.games import (
    GAME_MODES,
    PHASE_SHOW,
    MatchingGame,
    SequenceGame,
    SignCard,
    SpeedChallenge,
)
from signlearn.services.sessions import SessionEntry, game_sessions

logger = get_logger(__name__)

router = APIRouter(prefix="/api/games", tags=["games"])


class GameAnswer(BaseModel):
    """
    A move in the active game.

    matching: card index; guess and speed: option name;
    true_false: true or false; sequence: sign id.
    """
    answer: Any


def _arm_timers(entry: SessionEntry) -> None:
    """(Re)start the timers a fresh round needs."""
    game = entry.session
    entry.cancel_timers()
    if isinstance(game, SpeedChallenge) and not game.is_terminal:
        game_sessions.repeat(entry, SPEED_TICK_SECONDS, game.tick)
    elif isinstance(game, SequenceGame) and game.phase == PHASE_SHOW:
        def on_reveal_tick():
            if game.advance_reveal():
                return True
            game_sessions.schedule(entry, SEQUENCE_INPUT_DELAY_SECONDS, game.begin_input)
            return False
        game_sessions.repeat(entry, SEQUENCE_REVEAL_SECONDS, on_reveal_tick)


@router.post("/{mode}/start")
async def start_game(mode: str, user: Dict = Depends(require_user), db: Session = Depends(get_db)):
    """Start a game of the given mode, replacing whatever game was running."""
    game_class = GAME_MODES.get(mode)
    if game_class is None:
        raise HTTPException(status_code=404, detail=f"Unknown game mode: {mode}")

    pool = [SignCard.from_row(sign) for sign in list_signs(db)]
    try:
        game = game_class(pool)
    except SignLearnError as e:
        raise http_error(e)

    entry = game_sessions.start(user["id"], game)
    _arm_timers(entry)
    logger.info("Game started", extra={"user_id": user["id"], "mode": mode})
    return game.to_dict()


@router.post("/submit")
async def submit_move(body: GameAnswer, user: Dict = Depends(require_user)):
    try:
        entry = game_sessions.get(user["id"])
        game = entry.session
        outcome = game.submit(body.answer)
    except SignLearnError as e:
        raise http_error(e)

    if outcome.accepted:
        if isinstance(game, MatchingGame) and game.pending_flip_back:
            game_sessions.schedule(entry, MATCH_FLIP_BACK_SECONDS, game.flip_back)
        elif isinstance(game, SpeedChallenge):
            _arm_timers(entry)
        if game.is_terminal:
            entry.cancel_timers()
            logger.info(f"Game over with score {game.score}", extra={"user_id": user["id"], "mode": game.mode})

    return {"outcome": outcome.to_dict(), "state": game.to_dict()}


@router.post("/continue")
async def continue_game(user: Dict = Depends(require_user)):
    """
    Move the game on.

    sequence: skip the reveal while it is showing, otherwise go to the next
    level (or retry a failed one). Other modes: play again once finished.
    """
    try:
        entry = game_sessions.get(user["id"])
    except SignLearnError as e:
        raise http_error(e)
    game = entry.session

    if isinstance(game, SequenceGame):
        if game.phase == PHASE_SHOW:
            entry.cancel_timers()
            game.skip_reveal()
        elif game.continue_game():
            _arm_timers(entry)
        else:
            raise http_error(InputValidationError("Finish the current sequence first"))
    elif game.is_terminal:
        game.restart()
        _arm_timers(entry)
    else:
        raise http_error(InputValidationError("The game is still in progress"))
    return game.to_dict()


@router.get("/state")
async def get_game_state(user: Dict = Depends(require_user)):
    try:
        entry = game_sessions.get(user["id"])
    except SignLearnError as e:
        raise http_error(e)
    return entry.session.to_dict()


@router.delete("")
async def exit_game(user: Dict = Depends(require_user)):
    """Back to the games menu. Timers stop and nothing is recorded."""
    return {"ended": game_sessions.end(user["id"])}
