"""Pygame shell for Sequence Tap.

Numbered circles appear at random positions; click them in ascending order
before they fade out. Deterministic timing, placement and validation live in
sequence_tap/* (core modules); this module only renders snapshots and turns
player input into session commands.
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Callable, Mapping
from typing import Protocol

import pygame

from .clock import RealClock
from .game_core import HeaderStyle, Phase, SessionSnapshot
from .layout import target_at
from .results import SessionResult, session_result_from_controller
from .session import SequenceTapConfig, SessionController, build_sequence_tap_session

logger = logging.getLogger(__name__)

TARGET_COUNT_ENV = "SEQUENCE_TAP_TARGET_COUNT"
AUTOPLAY_DELAY_ENV = "SEQUENCE_TAP_AUTOPLAY_DELAY_MS"
SEED_ENV = "SEQUENCE_TAP_SEED"
LOG_LEVEL_ENV = "SEQUENCE_TAP_LOG_LEVEL"

WINDOW_SIZE = (960, 640)
TARGET_FPS = 60
TARGET_RADIUS_PX = 24

HEADER_COLORS: dict[HeaderStyle, tuple[int, int, int]] = {
    HeaderStyle.DEFAULT: (20, 20, 24),
    HeaderStyle.END: (22, 163, 74),
    HeaderStyle.MISSED: (234, 88, 12),
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...
    def close(self) -> None: ...


class App:
    """Hosts one screen on the window surface and owns its lifetime."""

    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screen: Screen | None = None
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def show(self, screen: Screen) -> None:
        if self._screen is not None:
            self._screen.close()
        self._screen = screen

    def quit(self) -> None:
        self._running = False

    def close(self) -> None:
        """Release the hosted screen; safe to call more than once."""

        screen = self._screen
        self._screen = None
        if screen is not None:
            screen.close()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if self._screen is not None:
            self._screen.handle_event(event)

    def render(self) -> None:
        if self._screen is not None:
            self._screen.render(self._surface)


class SequenceTapScreen:
    def __init__(self, app: App, *, session: SessionController) -> None:
        self._app = app
        self._session = session
        self._snap: SessionSnapshot = session.snapshot()
        self._result: SessionResult | None = None
        self._unsubscribe = session.subscribe(self._on_snapshot)

        self._header_font = pygame.font.Font(None, 44)
        self._small_font = pygame.font.Font(None, 26)
        self._target_font = pygame.font.Font(None, 22)
        self._tiny_font = pygame.font.Font(None, 16)

        # Refreshed during render; used to map clicks back to play-area percentages.
        self._play_rect = pygame.Rect(0, 0, 1, 1)

    @property
    def session(self) -> SessionController:
        return self._session

    def close(self) -> None:
        self._unsubscribe()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._click(event.pos)
            return
        if event.type != pygame.KEYDOWN:
            return

        key = event.key
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._session.start()
        elif key == pygame.K_a:
            self._session.toggle_autoplay()
        elif key == pygame.K_UP:
            self._session.configure(self._snap.target_count + 1)
        elif key == pygame.K_DOWN:
            self._session.configure(self._snap.target_count - 1)
        elif key == pygame.K_PAGEUP:
            self._session.configure(self._snap.target_count + 10)
        elif key == pygame.K_PAGEDOWN:
            self._session.configure(self._snap.target_count - 10)
        elif key == pygame.K_ESCAPE:
            self._app.quit()

    def _click(self, pos: tuple[int, int]) -> None:
        snap = self._snap
        if not snap.is_playing or not self._play_rect.collidepoint(pos):
            return
        rect = self._play_rect
        x_pct = (pos[0] - rect.x) * 100.0 / max(1, rect.w)
        y_pct = (pos[1] - rect.y) * 100.0 / max(1, rect.h)
        radius_pct = TARGET_RADIUS_PX * 100.0 / max(1, rect.w)
        target_id = target_at(snap.targets, x_pct, y_pct, radius_pct=radius_pct, hittable=snap.is_visible)
        if target_id is not None:
            self._session.activate(target_id)

    def _on_snapshot(self, snap: SessionSnapshot) -> None:
        previous = self._snap
        self._snap = snap
        if snap.phase is Phase.ENDED and previous.phase is not Phase.ENDED:
            self._result = session_result_from_controller(self._session)
            if self._result is not None:
                logger.info("result: %s", self._result.describe())
        elif snap.phase is Phase.PLAYING and previous.session_number != snap.session_number:
            self._result = None

    def render(self, surface: pygame.Surface) -> None:
        self._session.update()
        snap = self._snap

        w, h = surface.get_size()
        surface.fill((241, 245, 249))

        x0 = 24
        header = self._header_font.render(snap.header, True, HEADER_COLORS[snap.header_style])
        surface.blit(header, (x0, 18))

        text_main = (30, 30, 36)
        text_muted = (100, 106, 118)
        points = self._small_font.render(f"Points: {snap.target_count}", True, text_main)
        surface.blit(points, (x0, 70))
        elapsed = self._small_font.render(f"Time: {snap.elapsed_label}", True, text_main)
        surface.blit(elapsed, (x0, 98))

        start = self._small_font.render(f"[Enter] {snap.start_label}", True, text_main)
        surface.blit(start, (x0, 140))
        if snap.is_playing:
            auto = self._small_font.render(f"[A] {snap.autoplay_label}", True, text_main)
            surface.blit(auto, (x0, 168))
            next_label = snap.next_label
            if next_label is not None:
                nxt = self._small_font.render(next_label, True, text_main)
                surface.blit(nxt, (x0, 210))
        elif self._result is not None:
            line = self._tiny_font.render(self._result.describe(), True, text_muted)
            surface.blit(line, (x0, 210))

        hint = self._tiny_font.render("Up/Down: points  PgUp/PgDn: +/-10  Esc: quit", True, text_muted)
        surface.blit(hint, (x0, h - 28))

        side = max(120, min(h - 40, w - 320))
        self._play_rect = pygame.Rect(w - side - 20, 20, side, side)
        self._render_play_area(surface, snap)

    def _render_play_area(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        rect = self._play_rect
        pygame.draw.rect(surface, (255, 255, 255), rect)
        pygame.draw.rect(surface, (209, 213, 219), rect, 2)

        clip = surface.get_clip()
        surface.set_clip(rect)
        r = TARGET_RADIUS_PX
        for target in snap.targets:
            tid = target.target_id
            if not snap.is_visible(tid):
                continue
            cx = rect.x + int(round(target.x * rect.w / 100.0))
            cy = rect.y + int(round(target.y * rect.h / 100.0))

            glyph = pygame.Surface((r * 2 + 2, r * 2 + 2), pygame.SRCALPHA)
            if snap.is_activated(tid):
                fill, edge, fg = (239, 68, 68), (239, 68, 68), (255, 255, 255)
            else:
                fill, edge, fg = (255, 255, 255), (31, 41, 55), (31, 41, 55)
            pygame.draw.circle(glyph, fill, (r + 1, r + 1), r)
            pygame.draw.circle(glyph, edge, (r + 1, r + 1), r, 2)

            label = self._target_font.render(str(tid), True, fg)
            glyph.blit(label, label.get_rect(center=(r + 1, r - 4)))
            remaining = snap.remaining_label(tid)
            if remaining is not None:
                small = self._tiny_font.render(remaining, True, (0, 0, 0))
                glyph.blit(small, small.get_rect(center=(r + 1, r + 10)))

            alpha = snap.fade(tid)
            if not snap.is_playing:
                alpha *= 0.5
            glyph.set_alpha(int(round(255 * alpha)))
            surface.blit(glyph, (cx - r - 1, cy - r - 1))
        surface.set_clip(clip)


def _env_int(environ: Mapping[str, str], name: str) -> int | None:
    raw = environ.get(name, "").strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer", name, raw)
        return None


def config_from_env(environ: Mapping[str, str] | None = None) -> SequenceTapConfig:
    """Build the session config from SEQUENCE_TAP_* variables; bad values keep defaults."""

    env = os.environ if environ is None else environ
    defaults = SequenceTapConfig()

    target_count = _env_int(env, TARGET_COUNT_ENV)
    if target_count is None or not (1 <= target_count <= defaults.max_target_count):
        target_count = defaults.target_count

    autoplay_delay_ms = _env_int(env, AUTOPLAY_DELAY_ENV)
    if autoplay_delay_ms is None or autoplay_delay_ms <= 0:
        autoplay_delay_ms = int(defaults.autoplay_delay_ms)

    return SequenceTapConfig(target_count=target_count, autoplay_delay_ms=float(autoplay_delay_ms))


def seed_from_env(environ: Mapping[str, str] | None = None) -> int:
    env = os.environ if environ is None else environ
    seed = _env_int(env, SEED_ENV)
    return _new_seed() if seed is None else seed


def _configure_logging() -> None:
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    session_factory: Callable[[], SessionController] | None = None,
) -> int:
    _configure_logging()
    pygame.init()

    pygame.display.set_caption("Sequence Tap")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()

    app = App(surface=surface)

    if session_factory is None:
        session = build_sequence_tap_session(clock=RealClock(), seed=seed_from_env(), config=config_from_env())
    else:
        session = session_factory()

    app.show(SequenceTapScreen(app, session=session))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        app.close()
        pygame.quit()

    return 0
