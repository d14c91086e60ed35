import concurrent.futures
import logging
from dataclasses import dataclass
from typing import Protocol

import requests

logger = logging.getLogger(__name__)

# Share message
SHARE_ACTION = "post"
SHARE_TARGET = "https://farcaster-snake-run.vercel.app"
SHARE_TEMPLATE = "I scored {score} in Farcaster Snake Run! \U0001F40D Play now!"

SHARE_OK_MESSAGE = "Score shared on Farcaster!"
SHARE_FAILED_MESSAGE = "Failed to share score. Please try again."


class FrameHostError(Exception):
    """Raised when the frame host rejects or cannot receive a call."""


class FrameHost(Protocol):
    """Ready signal and interaction calls offered by the host platform."""

    is_frame_ready: bool

    def set_frame_ready(self): ...

    def send_frame_interaction(self, action, content, target): ...


class HttpFrameHost:
    """Frame host reached over HTTP with JSON POST requests."""

    def __init__(self, base_url, timeout=10, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.is_frame_ready = False

    def set_frame_ready(self):
        self._post("/ready", {})
        self.is_frame_ready = True

    def send_frame_interaction(self, action, content, target):
        self._post("/interactions", {"action": action, "content": content, "target": target})

    def _post(self, path, data):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(
                url,
                json=data,
                timeout=self.timeout,
                headers={'Content-Type': 'application/json'}
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FrameHostError(f"Frame host call to {url} failed: {e}") from e


class LocalFrameHost:
    """Stand-in used when the game is not embedded in a frame host."""

    def __init__(self):
        self.is_frame_ready = False

    def set_frame_ready(self):
        self.is_frame_ready = True

    def send_frame_interaction(self, action, content, target):
        raise FrameHostError("No frame host configured")


def create_frame_host(base_url):
    """Pick the HTTP host when a URL is configured, else the local stand-in."""
    if not base_url:
        logger.info("No frame host URL configured, sharing is unavailable")
        return LocalFrameHost()
    return HttpFrameHost(base_url)


def acknowledge_ready(host):
    """
    Send the ready signal once per session.

    Does nothing when the host already reports ready. A failing host is
    logged and the game carries on without it. Returns whether the host
    is marked ready afterwards.
    """
    if host.is_frame_ready:
        return True
    try:
        host.set_frame_ready()
    except FrameHostError as e:
        logger.warning("Frame host did not acknowledge ready: %s", e)
        return False
    logger.info("Frame ready acknowledged")
    return True


def share_payload(score):
    """Build the interaction posted when a player shares a score."""
    return {
        "action": SHARE_ACTION,
        "content": SHARE_TEMPLATE.format(score=score),
        "target": SHARE_TARGET,
    }


@dataclass
class ShareResult:
    ok: bool
    message: str


class ScoreSharer:
    """
    Runs share calls on a single worker thread behind a busy flag.

    ``share`` is called from the UI thread and returns immediately;
    ``poll`` is called every frame and hands back the outcome once the
    host call has finished. Game state is never touched from the worker.
    """

    def __init__(self, host, executor=None):
        self.host = host
        self.executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="share"
        )
        self._future = None

    @property
    def in_flight(self):
        return self._future is not None

    def share(self, score):
        """Start publishing *score*; False for a zero score or while busy."""
        if score <= 0 or self.in_flight:
            return False
        payload = share_payload(score)
        logger.info("Sharing score %d", score)
        self._future = self.executor.submit(self.host.send_frame_interaction, **payload)
        return True

    def poll(self):
        """Return the finished share's ShareResult, or None if still pending."""
        if self._future is None or not self._future.done():
            return None
        future, self._future = self._future, None
        error = future.exception()
        if error is not None:
            logger.error("Error sharing score: %s", error)
            return ShareResult(False, SHARE_FAILED_MESSAGE)
        logger.info("Score shared")
        return ShareResult(True, SHARE_OK_MESSAGE)

    def close(self):
        self.executor.shutdown(wait=False)
