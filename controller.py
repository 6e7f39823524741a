"""
PongController — Layer 2 (Game Logic)

Owns the match state, the lifecycle / screen state machine and the audio
settings. Communicates with Layer 3 (server.py / browser client) via two queues:
  - pending_events : UI commands (score, match_over, show_screen, music_*)
  - sound_events   : wall / paddle hits for sound-effect playback

Layer 3 calls:
  ctrl.step()                   — advance one tick while a match is running
  ctrl.set_pointer(y)           — pointer position in court coordinates
  ctrl.start_game() / restart() / go_menu() / open_settings() / close_settings()
  ctrl.pending_events           — list of dicts to consume and act on
  ctrl.sound_events             — list of hit dicts for sounds
"""

import json
from dataclasses import asdict, fields

import numpy as np

from physics import MatchState, PhysicsEngine, PADDLE_HEIGHT, BALL_SPEED


# ── Default status-bar message ────────────────────────────────────────────────
DEFAULT_STATUS_MSG = "Move the mouse over the court to steer your paddle."


class PongController:
    """Layer 2: match lifecycle state machine + engine orchestration."""

    # ── Class-level constants ─────────────────────────────────────────────────
    DEFAULT_VOLUME        = 0.5
    MUSIC_ENABLED_DEFAULT = True
    LIFECYCLE_FIELDS      = ("running", "over")   # owned by the engine, never set directly

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, seed=None):
        # Simulation
        self.engine = PhysicsEngine(rng=seed)
        self.state  = MatchState()

        # Lifecycle
        self.mode   = "idle"        # "idle"|"running"|"over"
        self.screen = "menu"        # "menu"|"settings"|"game"|"game_over"

        # Input snapshot (top edge of the player paddle)
        self.player_target: float | None = None

        # Audio
        self.music_enabled = self.MUSIC_ENABLED_DEFAULT
        self.volume        = self.DEFAULT_VOLUME
        self.music_playing = False

        self.status_msg = ""
        self.result_msg = ""

        # Event queues
        self.pending_events: list[dict] = []   # L3 UI commands
        self.sound_events: list[dict] = []     # hit sounds

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def step(self) -> None:
        """Advance the match one tick. Called every frame by the scheduler."""
        if self.mode != "running":
            return

        self.engine.update(self.state, self.current_player_target())
        self._drain_engine_events()

    def _drain_engine_events(self) -> None:
        for ev in self.engine.events:
            kind = ev["type"]
            if kind in ("wall", "paddle"):
                self.sound_events.append(ev)
            elif kind == "score":
                self.pending_events.append(ev)
            elif kind == "match_over":
                self.pending_events.append(ev)
                self._on_match_over(ev)
        self.engine.events.clear()

    def _on_match_over(self, ev: dict) -> None:
        self.mode = "over"
        self.player_target = None
        verdict = "You win!" if ev["player_won"] else "You lose!"
        self.result_msg = f"{verdict} Final score: {ev['player']} : {ev['ai']}"
        self.status_msg = self.result_msg
        print(f"[GAME] Match over: {self.result_msg}")
        self._show("game_over")
        self._stop_music()

    # ──────────────────────────────────────────────────────────────────────────
    # Lifecycle (menu collaborator)
    # ──────────────────────────────────────────────────────────────────────────

    def start_game(self) -> None:
        """(Re)initialise the match and begin ticking."""
        if self.mode == "running":
            return
        self.state = self.engine.new_match()
        self._drain_engine_events()
        self.player_target = self.state.player_y
        self.mode = "running"
        self.result_msg = ""
        self.status_msg = DEFAULT_STATUS_MSG
        print("[GAME] Match started")
        self._show("game")
        self._play_music()

    def restart(self) -> None:
        """Game-over screen → new match."""
        if self.mode != "over":
            return
        self.start_game()

    def go_menu(self) -> None:
        """Game-over screen → main menu. Discards the finished match."""
        if self.mode == "running":
            return
        self.mode = "idle"
        self.state = MatchState()
        self.player_target = None
        self.status_msg = ""
        print("[GAME] Back to menu")
        self._show("menu")
        self._stop_music()

    def open_settings(self) -> None:
        if self.screen != "menu":
            return
        self._show("settings")

    def close_settings(self) -> None:
        if self.screen != "settings":
            return
        self._show("menu")

    def _show(self, screen: str) -> None:
        self.screen = screen
        self.pending_events.append({"type": "show_screen", "screen": screen})

    # ──────────────────────────────────────────────────────────────────────────
    # Input collaborator
    # ──────────────────────────────────────────────────────────────────────────

    def set_pointer(self, y: float) -> None:
        """Pointer moved to court y; the paddle centre follows it."""
        if self.mode != "running":
            return
        self.player_target = self.engine.clamp_paddle(float(y) - PADDLE_HEIGHT / 2)

    def current_player_target(self) -> float | None:
        return self.player_target

    # ──────────────────────────────────────────────────────────────────────────
    # Audio collaborator
    # ──────────────────────────────────────────────────────────────────────────

    def set_music(self, enabled: bool) -> None:
        self.music_enabled = bool(enabled)
        if self.music_enabled:
            self._play_music()
        else:
            self._stop_music()

    def set_volume(self, value: float) -> None:
        self.volume = max(0.0, min(1.0, float(value)))
        self.pending_events.append({"type": "music_volume", "volume": self.volume})

    def _play_music(self) -> None:
        # Background music only plays during a match
        if not self.music_enabled or self.mode != "running" or self.music_playing:
            return
        self.music_playing = True
        self.pending_events.append({"type": "music_play", "volume": self.volume})

    def _stop_music(self) -> None:
        if not self.music_playing:
            return
        self.music_playing = False
        self.pending_events.append({"type": "music_stop"})

    # ──────────────────────────────────────────────────────────────────────────
    # Presets
    # ──────────────────────────────────────────────────────────────────────────

    def load_scenario(self, scenario_fn, label: str) -> None:
        """Load a preset match state (debug keys 1-3)."""
        result = scenario_fn(run=False)
        self.engine = result["engine"]
        self.state  = result["state"]
        self.engine.events.clear()
        self.player_target = self.state.player_y
        self.mode = "running"
        self.status_msg = f"Scenario {label}"
        print(f"[GAME] Scenario loaded: {label}")
        self.pending_events.append({
            "type": "score", "player": self.state.player_score, "ai": self.state.ai_score,
        })
        self._show("game")
        self._play_music()

    # ──────────────────────────────────────────────────────────────────────────
    # Advanced Command Panel
    # ──────────────────────────────────────────────────────────────────────────

    def get_state_json(self) -> str:
        """Return the current match as a compact single-line set-command JSON."""
        data = asdict(self.state)
        for k, v in data.items():
            if isinstance(v, float):
                data[k] = round(v, 4)
        return json.dumps({"cmd": "set", "state": data}, separators=(',', ':'))

    def execute_command(self, text: str) -> None:
        """Parse a JSON command string and dispatch to handlers."""
        if not text:
            print("[ADV] execute_command: empty text")
            return
        try:
            data = json.loads(text.replace('\r', ''))
        except json.JSONDecodeError as exc:
            print(f"[ADV] JSON parse error: {exc}")
            self.status_msg = f"JSON error: {exc}"
            return
        if not isinstance(data, dict):
            self.status_msg = "Command must be a JSON object."
            return
        cmd = str(data.get("cmd", "")).lower().strip()
        print(f"[ADV] cmd={cmd}")
        if cmd == "set":
            self._adv_cmd_set(data)
        else:
            self.status_msg = f"Unknown cmd '{cmd}'. Use set."

    def _adv_cmd_set(self, data: dict) -> None:
        """set: patch MatchState fields; paddles are re-clamped, lifecycle flags refused."""
        patch = data.get("state")
        if not isinstance(patch, dict) or not patch:
            self.status_msg = "set: 'state' field required."
            return
        types = {f.name: f.type for f in fields(MatchState)}
        updated = []
        for name, value in patch.items():
            if name not in types:
                print(f"[ADV]   skip unknown field {name}")
                continue
            if name in self.LIFECYCLE_FIELDS:
                print(f"[ADV]   skip lifecycle field {name}")
                continue
            try:
                if types[name] in (int, "int"):
                    value = max(0, int(value))
                else:
                    value = float(value)
            except (TypeError, ValueError) as exc:
                print(f"[ADV]   bad value for {name}: {exc}")
                continue
            setattr(self.state, name, value)
            updated.append(name)

        self.state.player_y = self.engine.clamp_paddle(self.state.player_y)
        self.state.ai_y     = self.engine.clamp_paddle(self.state.ai_y)
        if "player_y" in updated:
            self.player_target = self.state.player_y
        print(f"[ADV] done. updated={updated}  mode={self.mode}")
        self.status_msg = f"set: {len(updated)} field(s) updated"

    # ──────────────────────────────────────────────────────────────────────────
    # Headless API
    # ──────────────────────────────────────────────────────────────────────────

    def get_obs(self) -> np.ndarray:
        """Normalised observation: ball pos/vel, then both paddles."""
        s = self.state
        w = float(self.engine.court_width)
        h = float(self.engine.court_height)
        return np.array([
            s.ball_x / w, s.ball_y / h,
            s.ball_vx / BALL_SPEED, s.ball_vy / BALL_SPEED,
            s.player_y / h, s.ai_y / h,
        ], dtype=float)

    def reset(self, seed=None, state: MatchState | None = None) -> np.ndarray:
        """Start a fresh match without UI side effects and return get_obs()."""
        self.engine = PhysicsEngine(rng=seed)
        self.state = state if state is not None else self.engine.new_match()
        self.engine.events.clear()
        self.state.running, self.state.over = True, False
        self.player_target = self.state.player_y
        self.mode = "running"
        self.pending_events.clear()
        self.sound_events.clear()
        return self.get_obs()
