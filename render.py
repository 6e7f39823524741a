"""
Render / Frame Driver

draw() turns a MatchState into a flat list of 2D primitives the browser
canvas paints verbatim; FrameDriver is the per-frame entry point a host
scheduler calls (one engine update, then one draw).
"""

from physics import (
    MatchState, COURT_WIDTH, COURT_HEIGHT,
    PADDLE_WIDTH, PADDLE_HEIGHT, BALL_SIZE, PLAYER_X, ai_x,
)

# ── Palette ─────────────────────────────────────────────────────────────────
CENTER_LINE_COLOR = "#00cfff"
PLAYER_COLOR      = "#00ffaf"
AI_COLOR          = "#ff008c"
BALL_COLOR        = "#fffd3e"
CENTER_LINE_DASH  = [12, 12]


def _rect(x: float, y: float, w: float, h: float, color: str) -> dict:
    return {"kind": "rect", "x": round(float(x), 3), "y": round(float(y), 3),
            "w": w, "h": h, "color": color}


def draw(state: MatchState, court_width: float = COURT_WIDTH,
         court_height: float = COURT_HEIGHT) -> list[dict]:
    """Primitives in paint order: centre line, player paddle, AI paddle, ball."""
    mid = court_width / 2
    return [
        {"kind": "line", "x1": mid, "y1": 0, "x2": mid, "y2": court_height,
         "color": CENTER_LINE_COLOR, "dash": list(CENTER_LINE_DASH)},
        _rect(PLAYER_X, state.player_y, PADDLE_WIDTH, PADDLE_HEIGHT, PLAYER_COLOR),
        _rect(ai_x(court_width), state.ai_y, PADDLE_WIDTH, PADDLE_HEIGHT, AI_COLOR),
        _rect(state.ball_x, state.ball_y, BALL_SIZE, BALL_SIZE, BALL_COLOR),
    ]


class FrameDriver:
    """Injectable scheduler hook: the host calls tick() once per display frame."""

    def __init__(self, controller):
        self.controller = controller
        self.frames = 0

    @property
    def running(self) -> bool:
        return self.controller.mode == "running"

    def tick(self) -> list[dict] | None:
        """Run one update + draw pair. Returns None once the match stops running."""
        if not self.running:
            return None
        ctrl = self.controller
        ctrl.step()
        self.frames += 1
        return draw(ctrl.state, ctrl.engine.court_width, ctrl.engine.court_height)
