import logging
import os

import pygame
from dotenv import load_dotenv

from frame_host import ScoreSharer, acknowledge_ready, create_frame_host
from snake_engine import CANVAS_SIZE, DOWN, LEFT, RIGHT, TICK_MS, UP, GameEngine

logger = logging.getLogger(__name__)

# Window configuration
TITLE = "Farcaster Snake Run"
PANEL_HEIGHT = 120
WINDOW_WIDTH = CANVAS_SIZE
WINDOW_HEIGHT = CANVAS_SIZE + PANEL_HEIGHT
FPS = 60
TOAST_MS = 2000

BUTTON_WIDTH = 150
BUTTON_HEIGHT = 36
BUTTON_GAP = 16

# Colors (R, G, B)
PANEL_BG = (17, 24, 39)
WHITE = (240, 240, 240)
BLACK = (0, 0, 0)
GAME_OVER_RED = (239, 68, 68)
RESTART_COLOR = (0, 255, 0)
RESTART_HOVER = (0, 204, 0)
SHARE_COLOR = (255, 0, 255)
SHARE_HOVER = (204, 0, 204)

TICK_EVENT = pygame.USEREVENT + 1

KEY_TO_HEADING = {
    pygame.K_UP: UP,
    pygame.K_DOWN: DOWN,
    pygame.K_LEFT: LEFT,
    pygame.K_RIGHT: RIGHT,
}


class TickTimer:
    """
    The one repeating pygame timer that drives game ticks.

    ``start`` always drops the previous schedule (and any tick it already
    queued) before arming a new one; ``cancel`` is safe to call twice.
    Used as a context manager the timer is cancelled on every way out.

    Every schedule stamps its events with a new ``session`` number, so a
    tick from an earlier schedule that was already pulled off the queue
    fails ``owns``.
    """

    def __init__(self, event_type=TICK_EVENT, interval_ms=TICK_MS):
        self.event_type = event_type
        self.interval_ms = interval_ms
        self.active = False
        self.session = 0

    def start(self):
        self.cancel()
        self.session += 1
        tick = pygame.event.Event(self.event_type, session=self.session)
        pygame.time.set_timer(tick, self.interval_ms)
        self.active = True

    def owns(self, event):
        """True for a tick from the schedule that is running now."""
        return (
            self.active
            and event.type == self.event_type
            and getattr(event, "session", None) == self.session
        )

    def cancel(self):
        if not self.active:
            return
        pygame.time.set_timer(self.event_type, 0)
        pygame.event.clear(self.event_type)
        self.active = False

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cancel()
        return False


class Button:
    """A filled, labelled rectangle that can be clicked unless disabled."""

    def __init__(self, rect, label, color, hover_color, text_color=BLACK, disabled=False):
        self.rect = pygame.Rect(rect)
        self.label = label
        self.color = color
        self.hover_color = hover_color
        self.text_color = text_color
        self.disabled = disabled

    def contains(self, pos):
        return not self.disabled and self.rect.collidepoint(pos)

    def draw(self, surface, font, mouse_pos=None):
        hovered = mouse_pos is not None and self.contains(mouse_pos)
        color = self.hover_color if hovered else self.color
        if self.disabled:
            color = tuple(c // 2 for c in color)
        pygame.draw.rect(surface, color, self.rect, border_radius=6)
        label = font.render(self.label, True, self.text_color)
        surface.blit(label, label.get_rect(center=self.rect.center))


def get_ui_font(size):
    """Load a preferred UI font, then fall back safely to pygame default."""
    preferred = ["Bahnschrift", "Segoe UI", "Arial"]
    for name in preferred:
        path = pygame.font.match_font(name)
        if path:
            return pygame.font.Font(path, size)
    return pygame.font.Font(None, size)


def build_buttons(engine):
    """Lay out the restart and share buttons for the current game state."""
    top = CANVAS_SIZE + PANEL_HEIGHT - BUTTON_HEIGHT - 14
    left = (WINDOW_WIDTH - (BUTTON_WIDTH * 2 + BUTTON_GAP)) // 2
    sharing = engine.sharer is not None and engine.sharer.in_flight

    restart = Button(
        (left, top, BUTTON_WIDTH, BUTTON_HEIGHT),
        "Restart" if engine.game_over else "New Game",
        RESTART_COLOR,
        RESTART_HOVER,
    )
    share = Button(
        (left + BUTTON_WIDTH + BUTTON_GAP, top, BUTTON_WIDTH, BUTTON_HEIGHT),
        "Sharing..." if sharing else "Share Score",
        SHARE_COLOR,
        SHARE_HOVER,
        disabled=not engine.can_share,
    )
    return restart, share


def handle_keydown(engine, key):
    """Apply a key press. Returns 'quit', 'restart' or None."""
    if key == pygame.K_ESCAPE:
        return "quit"
    if key == pygame.K_r:
        return "restart"
    heading = KEY_TO_HEADING.get(key)
    if heading is not None:
        engine.set_heading(heading)
    return None


def restart_game(engine, board, timer):
    """Reset the engine, re-arm the tick timer and repaint the board."""
    engine.restart()
    timer.start()
    engine.render(board)
    logger.info("New game started")


def handle_event(event, engine, board, timer, restart_button, share_button):
    """Dispatch one pygame event. Returns False when the app should quit."""
    if event.type == pygame.QUIT:
        return False
    if event.type == timer.event_type:
        if not timer.owns(event):
            return True
        engine.advance()
        engine.render(board)
        if engine.game_over:
            timer.cancel()
    elif event.type == pygame.KEYDOWN:
        action = handle_keydown(engine, event.key)
        if action == "quit":
            return False
        if action == "restart":
            restart_game(engine, board, timer)
    elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
        if restart_button.contains(event.pos):
            restart_game(engine, board, timer)
        elif share_button.contains(event.pos):
            engine.share()
    return True


def draw_panel(surface, font, engine):
    """Draw the score line and, once the game is over, the final score."""
    panel_rect = pygame.Rect(0, CANVAS_SIZE, WINDOW_WIDTH, PANEL_HEIGHT)
    surface.fill(PANEL_BG, panel_rect)

    score = font.render(f"Score: {engine.score}", True, WHITE)
    surface.blit(score, score.get_rect(centerx=panel_rect.centerx, y=panel_rect.top + 10))

    if engine.game_over:
        msg = font.render(f"Game Over! Final Score: {engine.score}", True, GAME_OVER_RED)
        surface.blit(msg, msg.get_rect(centerx=panel_rect.centerx, y=panel_rect.top + 38))


def draw_toast(surface, font, message):
    """Draw a short centered toast over the board."""
    text_surface = font.render(message, True, WHITE)
    box = text_surface.get_rect(center=(WINDOW_WIDTH // 2, CANVAS_SIZE // 2))
    box.inflate_ip(28, 14)
    panel = pygame.Surface((box.width, box.height), pygame.SRCALPHA)
    panel.fill((0, 0, 0, 180))
    surface.blit(panel, box.topleft)
    surface.blit(text_surface, text_surface.get_rect(center=box.center))


def main():
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("SNAKE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = create_frame_host(os.getenv("SNAKE_FRAME_HOST_URL"))

    pygame.init()
    pygame.display.set_caption(TITLE)
    screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
    clock = pygame.time.Clock()
    font = get_ui_font(20)
    button_font = get_ui_font(18)

    sharer = ScoreSharer(host)
    engine = GameEngine(sharer=sharer)
    board = pygame.Surface((CANVAS_SIZE, CANVAS_SIZE))
    acknowledge_ready(host)
    engine.render(board)
    logger.info("Session started")

    toast = None
    toast_remaining_ms = 0

    try:
        with TickTimer() as timer:
            running = True
            while running:
                dt_ms = clock.tick(FPS)
                restart_button, share_button = build_buttons(engine)

                for event in pygame.event.get():
                    if not handle_event(event, engine, board, timer, restart_button, share_button):
                        running = False

                result = sharer.poll()
                if result is not None:
                    toast = result.message
                    toast_remaining_ms = TOAST_MS
                if toast_remaining_ms > 0:
                    toast_remaining_ms = max(0, toast_remaining_ms - dt_ms)

                # Labels may have changed while handling events.
                restart_button, share_button = build_buttons(engine)
                mouse_pos = pygame.mouse.get_pos()

                screen.blit(board, (0, 0))
                draw_panel(screen, font, engine)
                restart_button.draw(screen, button_font, mouse_pos)
                share_button.draw(screen, button_font, mouse_pos)
                if toast_remaining_ms > 0:
                    draw_toast(screen, font, toast)
                pygame.display.flip()
    finally:
        sharer.close()
        pygame.quit()


if __name__ == "__main__":
    main()
