"""
Neon Pong Simulation Engine
Ball / paddle integration, axis-aligned collision, scoring and the AI paddle.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional

# ──────────────────────────────────────────────
# Constants (court pixels, per-tick velocities)
# ──────────────────────────────────────────────
COURT_WIDTH: int = 800
COURT_HEIGHT: int = 500

PADDLE_WIDTH: int = 12
PADDLE_HEIGHT: int = 84
BALL_SIZE: int = 14
PADDLE_MARGIN: int = 16  # gap between a paddle and its goal line
PLAYER_X: int = PADDLE_MARGIN

PADDLE_SPEED: float = 6.0  # AI paddle step per tick
BALL_SPEED: float = 6.2    # horizontal serve speed per tick
WINNING_SCORE: int = 5

# ── Runtime-editable gameplay constants ───────────────────────────────────────
# These are read by name every call, so a host can retune them live via:
#   import physics as _phys;  _phys.AI_DEAD_ZONE = 12
SPIN_FACTOR: float = 0.13   # ball_vy gained per pixel of off-centre paddle hit
SPIN_LIMIT: float = 1.1     # |ball_vy| cap, as a multiple of BALL_SPEED
AI_DEAD_ZONE: float = 8.0   # AI ignores the ball when centres are this close
SERVE_SPREAD: float = 0.35  # |serve ball_vy| cap, as a multiple of BALL_SPEED


def ai_x(court_width: float = COURT_WIDTH) -> float:
    """Left edge of the AI paddle for a court of the given width."""
    return court_width - PADDLE_WIDTH - PADDLE_MARGIN


@dataclass
class MatchState:
    """Everything one match needs between ticks. Positions are top-left corners."""
    player_y: float = 0.0
    ai_y: float = 0.0
    ball_x: float = 0.0
    ball_y: float = 0.0
    ball_vx: float = 0.0
    ball_vy: float = 0.0
    player_score: int = 0
    ai_score: int = 0
    running: bool = False
    over: bool = False

    @property
    def started(self) -> bool:
        return self.running or self.over


class PhysicsEngine:
    """Pong simulation: advances a MatchState one tick per update() call."""

    def __init__(self, court_width: float = COURT_WIDTH,
                 court_height: float = COURT_HEIGHT, rng=None):
        self.court_width = court_width
        self.court_height = court_height
        self.player_x = PLAYER_X
        self.ai_x = ai_x(court_width)
        # Serve direction / angle source; pass a seed or Generator for replays
        if rng is None or isinstance(rng, (int, np.integer)):
            rng = np.random.default_rng(rng)
        self.rng: np.random.Generator = rng
        self.events: list = []

    # ──────────────────────────────────────────
    # Match setup
    # ──────────────────────────────────────────
    def new_match(self) -> MatchState:
        """Fresh match: paddles centred, scores zeroed, ball served."""
        self.events.clear()
        centre = (self.court_height - PADDLE_HEIGHT) / 2
        state = MatchState(player_y=centre, ai_y=centre, running=True, over=False)
        self.reset_ball(state)
        self.events.append({"type": "score", "player": 0, "ai": 0})
        return state

    def reset_ball(self, state: MatchState) -> None:
        """Serve from the court centre toward a random side."""
        state.ball_x = (self.court_width - BALL_SIZE) / 2
        state.ball_y = (self.court_height - BALL_SIZE) / 2
        direction = 1.0 if self.rng.random() > 0.5 else -1.0
        state.ball_vx = BALL_SPEED * direction
        state.ball_vy = BALL_SPEED * (self.rng.random() * 2 * SERVE_SPREAD - SERVE_SPREAD)

    def clamp_paddle(self, y: float) -> float:
        return max(0.0, min(self.court_height - PADDLE_HEIGHT, float(y)))

    def end_match(self, state: MatchState, player_won: bool) -> None:
        state.running = False
        state.over = True
        self.events.append({
            "type": "match_over",
            "player_won": player_won,
            "player": state.player_score,
            "ai": state.ai_score,
        })

    # ──────────────────────────────────────────
    # Collision helpers
    # ──────────────────────────────────────────
    @staticmethod
    def _overlaps_paddle(state: MatchState, paddle_y: float) -> bool:
        return state.ball_y + BALL_SIZE > paddle_y and state.ball_y < paddle_y + PADDLE_HEIGHT

    @staticmethod
    def _apply_spin(state: MatchState, paddle_y: float) -> float:
        """Add english from an off-centre hit. Returns the hit offset in pixels."""
        hit_offset = (state.ball_y + BALL_SIZE / 2) - (paddle_y + PADDLE_HEIGHT / 2)
        limit = BALL_SPEED * SPIN_LIMIT
        state.ball_vy = max(-limit, min(limit, state.ball_vy + hit_offset * SPIN_FACTOR))
        return hit_offset

    def _check_walls(self, state: MatchState) -> None:
        if state.ball_y <= 0 or state.ball_y + BALL_SIZE >= self.court_height:
            state.ball_vy = -state.ball_vy
            self.events.append({"type": "wall", "speed": abs(state.ball_vy)})

    def _check_paddles(self, state: MatchState) -> None:
        # A ball wholly past a goal line is a point, not a return
        # Player (left) paddle: send the ball right
        if (state.ball_x + BALL_SIZE > 0
                and state.ball_x <= self.player_x + PADDLE_WIDTH
                and self._overlaps_paddle(state, state.player_y)):
            state.ball_vx = abs(state.ball_vx)
            state.ball_x = self.player_x + PADDLE_WIDTH
            offset = self._apply_spin(state, state.player_y)
            self.events.append({"type": "paddle", "side": "player", "offset": offset})

        # AI (right) paddle: send the ball left
        if (state.ball_x <= self.court_width
                and state.ball_x + BALL_SIZE >= self.ai_x
                and self._overlaps_paddle(state, state.ai_y)):
            state.ball_vx = -abs(state.ball_vx)
            state.ball_x = self.ai_x - BALL_SIZE
            offset = self._apply_spin(state, state.ai_y)
            self.events.append({"type": "paddle", "side": "ai", "offset": offset})

    def _check_score(self, state: MatchState) -> None:
        if state.ball_x < 0:
            state.ai_score += 1
            scorer_won = state.ai_score >= WINNING_SCORE
            player_won = False
        elif state.ball_x > self.court_width:
            state.player_score += 1
            scorer_won = state.player_score >= WINNING_SCORE
            player_won = True
        else:
            return

        self.events.append({"type": "score", "player": state.player_score, "ai": state.ai_score})
        if scorer_won:
            self.end_match(state, player_won)
        else:
            self.reset_ball(state)

    def _move_ai(self, state: MatchState) -> None:
        ai_centre = state.ai_y + PADDLE_HEIGHT / 2
        ball_centre = state.ball_y + BALL_SIZE / 2
        if ai_centre < ball_centre - AI_DEAD_ZONE:
            state.ai_y += PADDLE_SPEED
        elif ai_centre > ball_centre + AI_DEAD_ZONE:
            state.ai_y -= PADDLE_SPEED
        state.ai_y = self.clamp_paddle(state.ai_y)

    # ──────────────────────────────────────────
    # Main tick
    # ──────────────────────────────────────────
    def update(self, state: MatchState, player_target: Optional[float] = None) -> MatchState:
        """
        Advance the match by one tick.

        Args:
            state: The match to advance. Mutated in place and returned.
            player_target: Desired top edge of the player paddle this tick,
                clamped into the court. None leaves the paddle where it is.

        A match that is not running is returned untouched.
        """
        self.events.clear()
        if not state.running:
            return state

        if player_target is not None:
            state.player_y = self.clamp_paddle(player_target)

        state.ball_x += state.ball_vx
        state.ball_y += state.ball_vy

        self._check_walls(state)
        self._check_paddles(state)
        self._check_score(state)
        self._move_ai(state)
        return state

    def simulate(self, state: MatchState, ticks: int,
                 player_targets: Optional[List[float]] = None) -> List[dict]:
        """
        Run up to `ticks` updates or until the match stops running.

        Returns:
            Every event emitted along the way, in order.
        """
        collected: list = []
        for i in range(ticks):
            if not state.running:
                break
            target = None
            if player_targets is not None and i < len(player_targets):
                target = player_targets[i]
            self.update(state, target)
            collected.extend(self.events)
        return collected
