"""
Mini-game state machines.

Every game is built from a pool of ``SignCard`` and exposes the same surface:
``start()``, ``current_round()``, ``submit(answer)``, ``is_terminal`` and
``to_dict()``. None of them write to the activity log. Timed behaviour
(speed countdown, sequence reveal, mismatch flip-back) is exposed as plain
methods that the router drives from scheduled tasks.
"""
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from signlearn.constants import (
    GUESS_OPTION_COUNT,
    GUESS_ROUNDS,
    MATCH_PAIRS,
    MATCH_SCORE_INCREMENT,
    SEQUENCE_BASE_LENGTH,
    SEQUENCE_DISTRACTORS,
    SEQUENCE_MAX_LENGTH,
    SEQUENCE_POINTS_PER_LEVEL,
    SPEED_ROUND_SECONDS,
    SPEED_WARNING_SECONDS,
    TRUE_FALSE_ROUNDS,
)
from signlearn.db.models import TrafficSign
from signlearn.errors import InputValidationError, InsufficientDataError

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_TIMED_OUT = "timed_out"


def get_feedback(score: int, total: int) -> str:
    """Encouragement banded by percentage."""
    percentage = (score / total * 100) if total else 0
    if percentage == 100:
        return "Perfect! Outstanding!"
    if percentage >= 80:
        return "Excellent work!"
    if percentage >= 60:
        return "Good job! Keep practicing!"
    if percentage >= 40:
        return "Not bad! You can do better!"
    return "Keep learning! Practice makes perfect!"


@dataclass(frozen=True)
class SignCard:
    """The parts of a traffic sign the games show."""
    id: str
    name: str
    meaning: str
    icon_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: TrafficSign) -> "SignCard":
        icons = row.icon_urls or []
        return cls(id=row.id, name=row.name_english, meaning=row.meaning,
                   icon_url=icons[0] if icons else None)

    def to_dict(self) -> Dict:
        return {"id": self.id, "name": self.name, "meaning": self.meaning, "icon_url": self.icon_url}


@dataclass
class RoundOutcome:
    accepted: bool
    correct: Optional[bool] = None
    score: int = 0
    message: str = ""
    terminal: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "accepted": self.accepted,
            "correct": self.correct,
            "score": self.score,
            "message": self.message,
            "terminal": self.terminal,
            **self.extra,
        }


class GameSession:
    """Shared lifecycle for the mini-games."""

    mode = ""
    min_signs = 1

    def __init__(self, pool: Sequence[SignCard], rng: Optional[random.Random] = None):
        if len(pool) < self.min_signs:
            raise InsufficientDataError("Not enough signs available.")
        self.pool = list(pool)
        self.rng = rng or random.Random()
        self.score = 0
        self.status = STATUS_IN_PROGRESS
        self.start()

    def start(self) -> None:
        raise NotImplementedError

    def restart(self) -> None:
        self.score = 0
        self.status = STATUS_IN_PROGRESS
        self.start()

    @property
    def is_terminal(self) -> bool:
        return self.status != STATUS_IN_PROGRESS

    def current_round(self) -> Optional[Dict]:
        raise NotImplementedError

    def submit(self, answer: Any) -> RoundOutcome:
        raise NotImplementedError

    def summary(self) -> Dict:
        return {}

    def _rejected(self, message: str) -> RoundOutcome:
        return RoundOutcome(accepted=False, score=self.score, message=message, terminal=self.is_terminal)

    def to_dict(self) -> Dict:
        data = {
            "mode": self.mode,
            "status": self.status,
            "score": self.score,
            "round": None if self.is_terminal else self.current_round(),
        }
        if self.is_terminal:
            data.update(self.summary())
        return data


# --- Matching -------------------------------------------------------------------

@dataclass
class MatchCard:
    index: int
    pair_id: str
    kind: str
    content: str
    flipped: bool = False
    matched: bool = False

    def to_dict(self) -> Dict:
        visible = self.flipped or self.matched
        return {
            "index": self.index,
            "kind": self.kind,
            "content": self.content if visible else None,
            "flipped": self.flipped,
            "matched": self.matched,
        }


class MatchingGame(GameSession):
    """
    Memory game over MATCH_PAIRS icon/meaning pairs.

    Two cards are turned per move. A mismatch leaves both face up with
    ``pending_flip_back`` set; no further card can be turned until
    ``flip_back()`` runs.
    """

    mode = "matching"
    min_signs = MATCH_PAIRS

    def start(self) -> None:
        chosen = self.rng.sample(self.pool, MATCH_PAIRS)
        cards = []
        for sign in chosen:
            cards.append((sign.id, "icon", sign.icon_url or sign.name))
            cards.append((sign.id, "meaning", sign.meaning))
        self.rng.shuffle(cards)
        self.cards = [MatchCard(i, pair_id, kind, content) for i, (pair_id, kind, content) in enumerate(cards)]
        self.selected: List[int] = []
        self.moves = 0
        self.matched_pairs = 0
        self.pending_flip_back = False

    def current_round(self) -> Dict:
        return {
            "cards": [card.to_dict() for card in self.cards],
            "moves": self.moves,
            "matched_pairs": self.matched_pairs,
            "pending_flip_back": self.pending_flip_back,
        }

    def submit(self, answer: Any) -> RoundOutcome:
        if self.is_terminal:
            return self._rejected("The game is over")
        if self.pending_flip_back:
            return self._rejected("Wait for the cards to turn back")
        if not isinstance(answer, int) or isinstance(answer, bool) or not 0 <= answer < len(self.cards):
            raise InputValidationError("Pick a card on the board")
        card = self.cards[answer]
        if card.flipped or card.matched:
            return self._rejected("That card is already face up")

        card.flipped = True
        self.selected.append(answer)
        if len(self.selected) < 2:
            return RoundOutcome(accepted=True, score=self.score, extra={"card": card.to_dict()})

        self.moves += 1
        first, second = (self.cards[i] for i in self.selected)
        if first.pair_id == second.pair_id:
            first.matched = second.matched = True
            first.flipped = second.flipped = False
            self.selected = []
            self.matched_pairs += 1
            self.score += MATCH_SCORE_INCREMENT
            if self.matched_pairs == MATCH_PAIRS:
                self.status = STATUS_COMPLETED
                message = f"You completed the game in {self.moves} moves!"
            else:
                message = "It's a match!"
            return RoundOutcome(accepted=True, correct=True, score=self.score, message=message,
                                terminal=self.is_terminal, extra={"card": card.to_dict()})

        self.pending_flip_back = True
        return RoundOutcome(accepted=True, correct=False, score=self.score, message="Not a match",
                            extra={"card": card.to_dict(), "flip_back": True})

    def flip_back(self) -> bool:
        """Turn a mismatched pair face down again."""
        if not self.pending_flip_back:
            return False
        for i in self.selected:
            self.cards[i].flipped = False
        self.selected = []
        self.pending_flip_back = False
        return True

    def summary(self) -> Dict:
        return {"moves": self.moves, "feedback": get_feedback(self.matched_pairs, MATCH_PAIRS)}


# --- Multiple choice --------------------------------------------------------------

class GuessGame(GameSession):
    """GUESS_ROUNDS rounds of picking a sign's name from GUESS_OPTION_COUNT choices."""

    mode = "guess"
    min_signs = GUESS_OPTION_COUNT
    rounds = GUESS_ROUNDS

    def start(self) -> None:
        self.round_index = 0
        self._targets = self._draw_targets()
        self._build_round()

    def _draw_targets(self) -> List[SignCard]:
        # Without repeats while the pool allows it
        targets: List[SignCard] = []
        while len(targets) < self.rounds:
            batch = list(self.pool)
            self.rng.shuffle(batch)
            targets.extend(batch)
        return targets[:self.rounds]

    def _build_round(self) -> None:
        self.target = self._targets[self.round_index]
        others = [sign for sign in self.pool if sign.id != self.target.id]
        distractors = self.rng.sample(others, GUESS_OPTION_COUNT - 1)
        options = [self.target.name] + [sign.name for sign in distractors]
        self.rng.shuffle(options)
        self.options = options

    def current_round(self) -> Dict:
        return {
            "round": self.round_index + 1,
            "rounds": self.rounds,
            "sign": {"id": self.target.id, "icon_url": self.target.icon_url},
            "options": list(self.options),
        }

    def _finish_round(self, correct: bool, message: str, extra: Optional[Dict] = None) -> RoundOutcome:
        if correct:
            self.score += 1
        if self.round_index + 1 >= self.rounds:
            self.status = STATUS_COMPLETED
        else:
            self.round_index += 1
            self._build_round()
        return RoundOutcome(accepted=True, correct=correct, score=self.score, message=message,
                            terminal=self.is_terminal, extra=extra or {})

    def submit(self, answer: Any) -> RoundOutcome:
        if self.is_terminal:
            return self._rejected("The game is over")
        if answer not in self.options:
            raise InputValidationError("Choose one of the options")
        correct_name = self.target.name
        if answer == correct_name:
            return self._finish_round(True, f"That's {correct_name}!", {"answer": correct_name})
        return self._finish_round(False, f"The correct answer is: {correct_name}", {"answer": correct_name})

    def summary(self) -> Dict:
        return {"total": self.rounds, "feedback": get_feedback(self.score, self.rounds)}


class SpeedChallenge(GuessGame):
    """
    Guess with a per-round countdown.

    ``tick()`` is called once a second. Reaching zero is a forced loss and ends
    the game on the spot.
    """

    mode = "speed"

    def _build_round(self) -> None:
        super()._build_round()
        self.time_left = SPEED_ROUND_SECONDS

    @property
    def is_urgent(self) -> bool:
        return self.time_left <= SPEED_WARNING_SECONDS

    def tick(self) -> bool:
        """Count down one second. Returns True while the countdown should keep running."""
        if self.is_terminal:
            return False
        self.time_left = max(0, self.time_left - 1)
        if self.time_left == 0:
            self.status = STATUS_TIMED_OUT
            return False
        return True

    def current_round(self) -> Dict:
        data = super().current_round()
        data["time_left"] = self.time_left
        data["urgent"] = self.is_urgent
        return data

    def summary(self) -> Dict:
        data = super().summary()
        if self.status == STATUS_TIMED_OUT:
            data["message"] = "Time's Up!"
        return data


class TrueFalseGame(GameSession):
    """Judge whether the name shown under a sign is its own."""

    mode = "true_false"
    min_signs = 2
    rounds = TRUE_FALSE_ROUNDS

    def start(self) -> None:
        self.round_index = 0
        self._build_round()

    def _build_round(self) -> None:
        self.sign = self.rng.choice(self.pool)
        self.statement_true = self.rng.random() > 0.5
        if self.statement_true:
            self.shown_name = self.sign.name
        else:
            other = self.rng.choice([s for s in self.pool if s.id != self.sign.id])
            self.shown_name = other.name

    def current_round(self) -> Dict:
        return {
            "round": self.round_index + 1,
            "rounds": self.rounds,
            "sign": {"id": self.sign.id, "icon_url": self.sign.icon_url},
            "shown_name": self.shown_name,
        }

    def submit(self, answer: Any) -> RoundOutcome:
        if self.is_terminal:
            return self._rejected("The game is over")
        if not isinstance(answer, bool):
            raise InputValidationError("Answer true or false")
        correct = answer == self.statement_true
        if correct:
            self.score += 1
            message = "Well done!"
        elif self.statement_true:
            message = "The description was correct!"
        else:
            message = "The description was incorrect!"
        extra = {"statement_true": self.statement_true, "answer": self.sign.name}

        if self.round_index + 1 >= self.rounds:
            self.status = STATUS_COMPLETED
        else:
            self.round_index += 1
            self._build_round()
        return RoundOutcome(accepted=True, correct=correct, score=self.score, message=message,
                            terminal=self.is_terminal, extra=extra)

    def summary(self) -> Dict:
        return {"total": self.rounds, "feedback": get_feedback(self.score, self.rounds)}


# --- Sequence recall --------------------------------------------------------------

PHASE_SHOW = "show"
PHASE_INPUT = "input"
PHASE_LEVEL_COMPLETE = "level_complete"
PHASE_FAILED = "failed"


def sequence_length(level: int) -> int:
    return min(level + SEQUENCE_BASE_LENGTH, SEQUENCE_MAX_LENGTH)


class SequenceGame(GameSession):
    """
    Remember and repeat a growing sequence of signs.

    A level runs show -> input, then ends in level_complete or failed.
    ``continue_game()`` starts the next level after a success or repeats the
    level after a failure. The game itself never becomes terminal.
    """

    mode = "sequence"
    min_signs = SEQUENCE_MAX_LENGTH + SEQUENCE_DISTRACTORS

    def start(self) -> None:
        self.level = 1
        self._load_level()

    def _load_level(self) -> None:
        length = sequence_length(self.level)
        chosen = self.rng.sample(self.pool, length + SEQUENCE_DISTRACTORS)
        self.sequence = chosen[:length]
        options = list(chosen)
        self.rng.shuffle(options)
        self.options = options
        self.inputs: List[str] = []
        self.reveal_index = 0
        self.phase = PHASE_SHOW

    @property
    def revealed(self) -> Optional[SignCard]:
        if self.phase != PHASE_SHOW or self.reveal_index >= len(self.sequence):
            return None
        return self.sequence[self.reveal_index]

    def advance_reveal(self) -> bool:
        """Move to the next sign being shown. Returns False once the reveal is over."""
        if self.phase != PHASE_SHOW:
            return False
        self.reveal_index += 1
        return self.reveal_index < len(self.sequence)

    def begin_input(self) -> bool:
        if self.phase != PHASE_SHOW:
            return False
        self.phase = PHASE_INPUT
        return True

    def skip_reveal(self) -> bool:
        self.reveal_index = len(self.sequence)
        return self.begin_input()

    def submit(self, answer: Any) -> RoundOutcome:
        if self.phase != PHASE_INPUT:
            return self._rejected("Watch the sequence first")
        if answer not in {sign.id for sign in self.options}:
            raise InputValidationError("Choose one of the signs shown")

        position = len(self.inputs)
        self.inputs.append(answer)
        if answer != self.sequence[position].id:
            self.phase = PHASE_FAILED
            names = " → ".join(sign.name for sign in self.sequence)
            return RoundOutcome(accepted=True, correct=False, score=self.score,
                                message=f"The correct sequence was: {names}",
                                extra={"phase": self.phase, "sequence": [s.id for s in self.sequence]})

        if len(self.inputs) == len(self.sequence):
            points = self.level * SEQUENCE_POINTS_PER_LEVEL
            self.score += points
            self.phase = PHASE_LEVEL_COMPLETE
            return RoundOutcome(accepted=True, correct=True, score=self.score,
                                message=f"Level {self.level} complete! +{points} points",
                                extra={"phase": self.phase})

        return RoundOutcome(accepted=True, correct=True, score=self.score, extra={"phase": self.phase})

    def continue_game(self) -> bool:
        """Next level after a success, same level again after a failure."""
        if self.phase == PHASE_LEVEL_COMPLETE:
            self.level += 1
        elif self.phase != PHASE_FAILED:
            return False
        self._load_level()
        return True

    def current_round(self) -> Dict:
        revealed = self.revealed
        data = {
            "level": self.level,
            "length": len(self.sequence),
            "phase": self.phase,
            "revealed": revealed.to_dict() if revealed else None,
            "reveal_index": self.reveal_index,
            "inputs": list(self.inputs),
            "options": [sign.to_dict() for sign in self.options] if self.phase != PHASE_SHOW else [],
        }
        if self.phase == PHASE_FAILED:
            data["sequence"] = [sign.id for sign in self.sequence]
        return data


GAME_MODES = {
    game.mode: game
    for game in (MatchingGame, GuessGame, SpeedChallenge, TrueFalseGame, SequenceGame)
}
