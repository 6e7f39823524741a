"""
Neon Pong Web Server — Layer 3 (FastAPI + WebSocket)

Serves the canvas frontend and runs the frame loop,
streaming draw lists and UI events to browser clients over WebSocket.
"""

import asyncio
import json
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from controller import PongController
from render import FrameDriver, draw
import physics as _phys
from presets import SCENARIOS

# ── Controller ──────────────────────────────────────────────────────────────

ctrl = PongController()
driver = FrameDriver(ctrl)


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

STATIC_DIR = Path(__file__).parent / "static"

# ── Client state ────────────────────────────────────────────────────────────

clients: list[WebSocket] = []

# ── Async game loop ─────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


async def game_loop():
    """Frame scheduler: one driver tick per frame while a match runs."""
    while True:
        now = time.perf_counter()

        primitives = driver.tick()
        if primitives is None:
            primitives = draw(ctrl.state, ctrl.engine.court_width, ctrl.engine.court_height)

        if clients:
            await _broadcast(_build_frame_message(primitives))
        else:
            ctrl.pending_events.clear()
            ctrl.sound_events.clear()

        # Sleep to maintain target FPS
        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


async def _broadcast(msg: str) -> None:
    dead: list[WebSocket] = []
    for ws in clients:
        try:
            await ws.send_text(msg)
        except Exception:
            dead.append(ws)
    for ws in dead:
        if ws in clients:
            clients.remove(ws)
            print(f"[WS] Dropped dead client ({len(clients)} left)")


def _build_frame_message(primitives: list) -> str:
    """Serialize current state into a JSON frame message. Drains the event queues."""
    events = list(ctrl.pending_events)
    ctrl.pending_events.clear()

    sounds = []
    for ev in ctrl.sound_events:
        sounds.append({"type": ev["type"], "side": ev.get("side", "")})
    ctrl.sound_events.clear()

    frame = {
        "type": "frame",
        "mode": ctrl.mode,
        "screen": ctrl.screen,
        "draw": primitives,
        "score": {"player": ctrl.state.player_score, "ai": ctrl.state.ai_score},
        "events": events,
        "sounds": sounds,
        "status": ctrl.status_msg,
    }
    return json.dumps(frame, separators=(',', ':'))


def _build_init_message() -> str:
    return json.dumps({
        "type": "init",
        "court_width": ctrl.engine.court_width,
        "court_height": ctrl.engine.court_height,
        "paddle_width": _phys.PADDLE_WIDTH,
        "paddle_height": _phys.PADDLE_HEIGHT,
        "ball_size": _phys.BALL_SIZE,
        "winning_score": _phys.WINNING_SCORE,
        "target_fps": TARGET_FPS,
        "music_enabled": ctrl.music_enabled,
        "volume": ctrl.volume,
        "screen": ctrl.screen,
    })


# ── Command handlers ────────────────────────────────────────────────────────

def _handle_command(msg: dict) -> str | None:
    """Apply one client command. Returns a direct reply message, if any."""
    cmd = msg.get("cmd", "")
    if cmd == "start":
        ctrl.start_game()
    elif cmd == "restart":
        ctrl.restart()
    elif cmd == "menu":
        ctrl.go_menu()
    elif cmd == "settings":
        ctrl.open_settings()
    elif cmd == "back":
        ctrl.close_settings()
    elif cmd == "pointer":
        ctrl.set_pointer(float(msg.get("y", 0.0)))
    elif cmd == "music":
        ctrl.set_music(bool(msg.get("enabled", False)))
    elif cmd == "volume":
        ctrl.set_volume(float(msg.get("value", ctrl.volume)))
    elif cmd == "scenario":
        entry = SCENARIOS.get(str(msg.get("key", "")))
        if entry is not None:
            fn, label = entry
            ctrl.load_scenario(fn, label)
    elif cmd == "execute":
        ctrl.execute_command(msg.get("text", ""))
    elif cmd == "get_state":
        return json.dumps({
            "type": "state_json",
            "mode": ctrl.mode,
            "screen": ctrl.screen,
            "data": ctrl.get_state_json(),
        })
    return None


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)
    print(f"[WS] Client connected ({len(clients)} total)")

    await ws.send_text(_build_init_message())
    # Current picture without draining queued events
    await ws.send_text(json.dumps({
        "type": "frame",
        "mode": ctrl.mode,
        "screen": ctrl.screen,
        "draw": draw(ctrl.state, ctrl.engine.court_width, ctrl.engine.court_height),
        "score": {"player": ctrl.state.player_score, "ai": ctrl.state.ai_score},
        "events": [],
        "sounds": [],
        "status": ctrl.status_msg,
    }, separators=(',', ':')))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue
            try:
                reply = _handle_command(msg)
            except (TypeError, ValueError):
                continue
            if reply is not None:
                await ws.send_text(reply)
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)
        print(f"[WS] Client disconnected ({len(clients)} left)")


# ── Static files + root route ───────────────────────────────────────────────

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/")
async def root():
    return FileResponse(STATIC_DIR / "index.html")


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
