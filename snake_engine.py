import logging
import random

logger = logging.getLogger(__name__)

# Board configuration
GRID_SIZE = 20
TILE_SIZE = 20
CANVAS_SIZE = GRID_SIZE * TILE_SIZE
TICK_MS = 100
FOOD_REWARD = 10

START_SNAKE = ((10, 10),)
START_FOOD = (15, 15)

# Colors (R, G, B)
BACKGROUND_COLOR = (26, 26, 26)
SNAKE_COLOR = (0, 255, 0)
FOOD_COLOR = (255, 0, 255)

# Headings as (dx, dy) grid vectors
UP = (0, -1)
DOWN = (0, 1)
LEFT = (-1, 0)
RIGHT = (1, 0)
HEADINGS = (UP, DOWN, LEFT, RIGHT)

RUNNING = "running"
GAME_OVER = "game_over"


def opposite(heading):
    """Return the reverse of a heading vector."""
    return (-heading[0], -heading[1])


def direction_to_text(direction):
    """Convert a direction vector into a compact label for UI."""
    mapping = {
        None: "none",
        UP: "up",
        DOWN: "down",
        LEFT: "left",
        RIGHT: "right",
    }
    return mapping.get(direction, "unknown")


def in_bounds(cell):
    x, y = cell
    return 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE


def random_food_position(rng):
    """Return a random grid cell.

    Each axis is drawn independently over the whole grid. Cells under the
    snake are not excluded, so food can land on the body.
    """
    return (rng.randrange(GRID_SIZE), rng.randrange(GRID_SIZE))


class GameEngine:
    """
    Snake simulation state and the operations that change it.

    ``heading`` is the single authoritative direction read by ``advance``.
    Key handlers write it through ``set_heading`` and the tick reads it
    directly, so nothing can lag behind the value the next move uses.

    The optional *sharer* is the score-publishing capability (see
    ``frame_host.ScoreSharer``); the engine runs without one.
    """

    def __init__(self, rng=None, sharer=None):
        self.rng = rng if rng is not None else random.Random()
        self.sharer = sharer
        self.restart()

    def restart(self):
        """Reset every piece of game state to its initial value."""
        self.snake = list(START_SNAKE)
        self.food = START_FOOD
        self.heading = RIGHT
        self.last_heading = RIGHT
        self.score = 0
        self.state = RUNNING
        self.game_over_reason = None

    @property
    def head(self):
        return self.snake[0]

    @property
    def game_over(self):
        return self.state == GAME_OVER

    @property
    def heading_label(self):
        return direction_to_text(self.heading)

    def set_heading(self, requested):
        """
        Request a new heading for the next tick.

        Rejected when it reverses the current heading, or the heading the
        snake last moved in (two quick presses within one tick window).
        Returns True when the request was accepted.
        """
        if requested not in HEADINGS:
            raise ValueError(f"Unknown heading: {requested!r}")
        reverse = opposite(requested)
        if reverse == self.heading or reverse == self.last_heading:
            logger.debug(
                "Rejected heading %s (current %s)",
                direction_to_text(requested),
                self.heading_label,
            )
            return False
        self.heading = requested
        return True

    def advance(self):
        """
        Move the snake one cell along the current heading.

        Returns
        -------
        'moved' – slid forward, length unchanged.
        'ate'   – landed on food, grew by one, score increased.
        'wall'  – head would leave the grid → game over.
        'self'  – head would hit the body → game over.
        None    – the game is already over; nothing happens.
        """
        if self.game_over:
            return None

        head_x, head_y = self.head
        dx, dy = self.heading
        new_head = (head_x + dx, head_y + dy)

        if not in_bounds(new_head):
            return self._end("wall")
        if new_head in self.snake:
            return self._end("self")

        self.snake.insert(0, new_head)
        self.last_heading = self.heading

        if new_head == self.food:
            self.score += FOOD_REWARD
            self.food = random_food_position(self.rng)
            logger.debug("Food eaten at %s, relocated to %s", new_head, self.food)
            return "ate"

        self.snake.pop()
        return "moved"

    def _end(self, reason):
        self.state = GAME_OVER
        self.game_over_reason = reason
        logger.info(
            "Game over (%s): score=%d length=%d", reason, self.score, len(self.snake)
        )
        return reason

    @property
    def can_share(self):
        return (
            self.sharer is not None
            and self.score > 0
            and not self.sharer.in_flight
        )

    def share(self):
        """Publish the current score; returns False when nothing was sent."""
        if not self.can_share:
            return False
        return self.sharer.share(self.score)

    def render(self, surface):
        """Paint the board onto *surface*; only ``fill`` is used."""
        inset = TILE_SIZE - 2
        surface.fill(BACKGROUND_COLOR)
        for x, y in self.snake:
            surface.fill(SNAKE_COLOR, (x * TILE_SIZE, y * TILE_SIZE, inset, inset))
        fx, fy = self.food
        surface.fill(FOOD_COLOR, (fx * TILE_SIZE, fy * TILE_SIZE, inset, inset))
