"""
Controller Tests — match lifecycle, input snapshot, audio settings, debug
panel and headless determinism.
"""

import sys
import os
import json
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from controller import PongController
from physics import COURT_HEIGHT, PADDLE_HEIGHT, WINNING_SCORE, BALL_SPEED
from presets import MatchPreset


def event_types(ctrl: PongController) -> list:
    return [ev["type"] for ev in ctrl.pending_events]


def play_out(ctrl: PongController, max_ticks: int = 50_000) -> int:
    """Step until the match stops running. Returns ticks taken."""
    for i in range(max_ticks):
        if ctrl.mode != "running":
            return i
        ctrl.step()
    return max_ticks


class TestLifecycle:

    def test_initially_idle_on_menu(self):
        ctrl = PongController(seed=1)
        assert ctrl.mode == "idle"
        assert ctrl.screen == "menu"
        assert not ctrl.state.started

    def test_start_game_runs_match(self):
        ctrl = PongController(seed=1)
        ctrl.start_game()
        assert ctrl.mode == "running"
        assert ctrl.screen == "game"
        assert ctrl.state.running and not ctrl.state.over
        assert {"type": "score", "player": 0, "ai": 0} in ctrl.pending_events
        assert {"type": "show_screen", "screen": "game"} in ctrl.pending_events

    def test_start_ignored_while_running(self):
        ctrl = PongController(seed=1)
        ctrl.start_game()
        ctrl.state.player_score = 3
        ctrl.start_game()
        assert ctrl.state.player_score == 3

    def test_match_runs_to_over(self):
        ctrl = PongController(seed=5)
        ctrl.start_game()
        ticks = play_out(ctrl)
        assert ticks < 50_000
        assert ctrl.mode == "over"
        assert ctrl.screen == "game_over"
        assert ctrl.state.over and not ctrl.state.running
        over = [ev for ev in ctrl.pending_events if ev["type"] == "match_over"]
        assert len(over) == 1
        assert max(over[0]["player"], over[0]["ai"]) == WINNING_SCORE

    def test_step_is_noop_after_over(self):
        ctrl = PongController(seed=5)
        ctrl.start_game()
        play_out(ctrl)
        ctrl.pending_events.clear()
        before = ctrl.get_state_json()
        for _ in range(5):
            ctrl.step()
        assert ctrl.get_state_json() == before
        assert ctrl.pending_events == []

    def test_restart_after_over(self):
        ctrl = PongController(seed=5)
        ctrl.start_game()
        play_out(ctrl)
        ctrl.restart()
        assert ctrl.mode == "running"
        assert (ctrl.state.player_score, ctrl.state.ai_score) == (0, 0)

    def test_restart_ignored_from_menu(self):
        ctrl = PongController(seed=5)
        ctrl.restart()
        assert ctrl.mode == "idle"

    def test_go_menu_after_over(self):
        ctrl = PongController(seed=5)
        ctrl.start_game()
        play_out(ctrl)
        ctrl.go_menu()
        assert ctrl.mode == "idle"
        assert ctrl.screen == "menu"
        assert not ctrl.state.started

    def test_go_menu_ignored_while_running(self):
        ctrl = PongController(seed=5)
        ctrl.start_game()
        ctrl.go_menu()
        assert ctrl.mode == "running"

    def test_result_message(self):
        ctrl = PongController(seed=1)
        ctrl.load_scenario(MatchPreset.match_point, "3: Match point")
        ctrl.step()
        assert ctrl.result_msg == f"You win! Final score: {WINNING_SCORE} : {WINNING_SCORE - 1}"


class TestSettingsScreen:

    def test_open_and_close(self):
        ctrl = PongController()
        ctrl.open_settings()
        assert ctrl.screen == "settings"
        ctrl.close_settings()
        assert ctrl.screen == "menu"

    def test_settings_only_from_menu(self):
        ctrl = PongController(seed=1)
        ctrl.start_game()
        ctrl.open_settings()
        assert ctrl.screen == "game"


class TestPointerInput:

    def test_pointer_centres_paddle(self):
        ctrl = PongController(seed=1)
        ctrl.start_game()
        ctrl.set_pointer(200.0)
        assert ctrl.current_player_target() == 200.0 - PADDLE_HEIGHT / 2
        ctrl.step()
        assert ctrl.state.player_y == 200.0 - PADDLE_HEIGHT / 2

    def test_pointer_clamped(self):
        ctrl = PongController(seed=1)
        ctrl.start_game()
        ctrl.set_pointer(-100.0)
        assert ctrl.current_player_target() == 0.0
        ctrl.set_pointer(COURT_HEIGHT + 100.0)
        assert ctrl.current_player_target() == COURT_HEIGHT - PADDLE_HEIGHT

    def test_pointer_ignored_when_not_running(self):
        ctrl = PongController(seed=1)
        ctrl.set_pointer(200.0)
        assert ctrl.current_player_target() is None


class TestAudio:

    def test_music_starts_with_match(self):
        ctrl = PongController(seed=1)
        ctrl.start_game()
        assert ctrl.music_playing
        assert {"type": "music_play", "volume": ctrl.DEFAULT_VOLUME} in ctrl.pending_events

    def test_music_disabled_stays_silent(self):
        ctrl = PongController(seed=1)
        ctrl.set_music(False)
        ctrl.start_game()
        assert not ctrl.music_playing
        assert "music_play" not in event_types(ctrl)

    def test_toggle_during_match(self):
        ctrl = PongController(seed=1)
        ctrl.start_game()
        ctrl.set_music(False)
        assert event_types(ctrl)[-1] == "music_stop"
        ctrl.set_music(True)
        assert event_types(ctrl)[-1] == "music_play"

    def test_music_stops_at_match_end(self):
        ctrl = PongController(seed=5)
        ctrl.start_game()
        play_out(ctrl)
        assert not ctrl.music_playing
        assert "music_stop" in event_types(ctrl)

    def test_scenario_starts_music(self):
        ctrl = PongController()
        ctrl.load_scenario(MatchPreset.serve, "1: Serve")
        assert ctrl.music_playing
        assert "music_play" in event_types(ctrl)

    def test_scenario_respects_music_off(self):
        ctrl = PongController()
        ctrl.set_music(False)
        ctrl.load_scenario(MatchPreset.serve, "1: Serve")
        assert not ctrl.music_playing

    def test_volume_clamped(self):
        ctrl = PongController()
        ctrl.set_volume(1.7)
        assert ctrl.volume == 1.0
        ctrl.set_volume(-0.2)
        assert ctrl.volume == 0.0
        assert ctrl.pending_events[-1] == {"type": "music_volume", "volume": 0.0}


class TestSoundEvents:

    def test_paddle_hit_queued_as_sound(self):
        ctrl = PongController()
        ctrl.load_scenario(MatchPreset.player_return, "2: Player return")
        ctrl.step()
        assert any(ev["type"] == "paddle" for ev in ctrl.sound_events)
        assert "paddle" not in event_types(ctrl)


class TestCommandPanel:

    def test_state_json_roundtrip(self):
        ctrl = PongController(seed=2)
        ctrl.start_game()
        data = json.loads(ctrl.get_state_json())
        assert data["cmd"] == "set"
        assert data["state"]["running"] is True

    def test_set_patches_fields(self):
        ctrl = PongController(seed=2)
        ctrl.start_game()
        ctrl.execute_command(json.dumps({"cmd": "set", "state": {"ball_x": 100, "ai_score": 3}}))
        assert ctrl.state.ball_x == 100.0
        assert ctrl.state.ai_score == 3

    def test_set_clamps_paddles(self):
        ctrl = PongController(seed=2)
        ctrl.start_game()
        ctrl.execute_command('{"cmd":"set","state":{"player_y":9999}}')
        assert ctrl.state.player_y == COURT_HEIGHT - PADDLE_HEIGHT
        assert ctrl.current_player_target() == COURT_HEIGHT - PADDLE_HEIGHT

    def test_bad_json_reported(self):
        ctrl = PongController()
        ctrl.execute_command("{not json")
        assert ctrl.status_msg.startswith("JSON error")

    def test_unknown_command_reported(self):
        ctrl = PongController()
        ctrl.execute_command('{"cmd":"warp"}')
        assert "Unknown cmd" in ctrl.status_msg

    def test_bad_value_skipped(self):
        ctrl = PongController(seed=2)
        ctrl.start_game()
        x = ctrl.state.ball_x
        ctrl.execute_command('{"cmd":"set","state":{"ball_x":"fast","nope":1}}')
        assert ctrl.state.ball_x == x

    def test_lifecycle_flags_refused(self):
        ctrl = PongController(seed=2)
        ctrl.start_game()
        ctrl.execute_command('{"cmd":"set","state":{"over":true,"ball_x":50}}')
        assert ctrl.state.running and not ctrl.state.over
        assert ctrl.state.ball_x == 50.0
        ctrl.execute_command('{"cmd":"set","state":{"running":false}}')
        assert ctrl.state.running and ctrl.mode == "running"

    def test_match_still_reaches_over_after_set(self):
        ctrl = PongController(seed=2)
        ctrl.start_game()
        ctrl.execute_command('{"cmd":"set","state":{"running":false,"over":true}}')
        x0 = ctrl.state.ball_x
        ctrl.step()
        assert ctrl.state.ball_x != x0
        ticks = play_out(ctrl)
        assert ticks < 50_000
        assert ctrl.mode == "over"
        assert ctrl.state.over and not ctrl.state.running


class TestDeterminism:
    """Same seed + same pointer sequence → identical observations."""

    def _run(self, seed: int, ticks: int = 600) -> np.ndarray:
        ctrl = PongController()
        ctrl.reset(seed=seed)
        for i in range(ticks):
            ctrl.set_pointer((i * 13) % COURT_HEIGHT)
            ctrl.step()
        return ctrl.get_obs()

    def test_headless_determinism(self):
        np.testing.assert_array_equal(self._run(9), self._run(9))

    def test_obs_shape_and_serve(self):
        ctrl = PongController()
        obs = ctrl.reset(seed=4)
        assert obs.shape == (6,)
        assert abs(obs[2]) == 1.0
        assert abs(obs[3]) <= 0.35

    def test_reset_is_silent(self):
        ctrl = PongController()
        ctrl.reset(seed=4)
        assert ctrl.pending_events == []
        assert ctrl.mode == "running"
        assert ctrl.state.ball_vx in (BALL_SPEED, -BALL_SPEED)
