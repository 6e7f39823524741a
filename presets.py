"""
Match Preset System
Canned match states (serve, player return, match point) that can be loaded
into the controller or advanced one tick for inspection.
"""

from physics import MatchState, PhysicsEngine, PADDLE_HEIGHT, BALL_SPEED, WINNING_SCORE


def _centred(engine: PhysicsEngine) -> float:
    return (engine.court_height - PADDLE_HEIGHT) / 2


def _finish(state: MatchState, engine: PhysicsEngine, run: bool) -> dict:
    result = {"state": state, "engine": engine, "events": []}
    if run:
        engine.update(state)
        result["events"] = list(engine.events)
    return result


class MatchPreset:
    """Each preset builds a running MatchState → optionally ticks once → result dict."""

    @staticmethod
    def serve(run=False, seed=None) -> dict:
        """Straight serve to the right from the centre, no vertical speed."""
        engine = PhysicsEngine(rng=seed)
        state = engine.new_match()
        state.ball_vx = BALL_SPEED
        state.ball_vy = 0.0
        return _finish(state, engine, run)

    @staticmethod
    def player_return(run=False, seed=None) -> dict:
        """Ball on the goal line heading left into the player paddle (y 50..134)."""
        engine = PhysicsEngine(rng=seed)
        state = engine.new_match()
        state.player_y = 50.0
        state.ball_x = 0.0
        state.ball_y = 100.0
        state.ball_vx = -BALL_SPEED
        state.ball_vy = 0.0
        return _finish(state, engine, run)

    @staticmethod
    def match_point(run=False, seed=None) -> dict:
        """Player one point from winning; ball already past the AI paddle."""
        engine = PhysicsEngine(rng=seed)
        state = engine.new_match()
        state.player_score = WINNING_SCORE - 1
        state.ai_score = WINNING_SCORE - 1
        state.ai_y = 0.0
        state.ball_x = engine.court_width - 2.0
        state.ball_y = engine.court_height - 40.0
        state.ball_vx = BALL_SPEED
        state.ball_vy = 0.0
        state.player_y = _centred(engine)
        return _finish(state, engine, run)


# Debug keys → (preset, label)
SCENARIOS = {
    "1": (MatchPreset.serve,         "1: Serve"),
    "2": (MatchPreset.player_return, "2: Player return"),
    "3": (MatchPreset.match_point,   "3: Match point"),
}
