"""Cloud API clients that generate poster background art."""

import base64
import itertools
import os
import sys
import threading
import time
import urllib.request
from abc import ABC, abstractmethod

from qr_poster.image_utils import bytes_to_data_uri


class GenerationError(Exception):
    """Raised when the art service fails or answers with something unusable."""


# ---------------------------------------------------------------------------
# Spinner for visual feedback during long API calls
# ---------------------------------------------------------------------------

class Spinner:
    """Terminal spinner shown on stderr while an art service is working."""

    FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

    def __init__(self, message: str = "Generating...", interval: float = 0.1):
        self._message = message
        self._interval = interval
        self._done = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> "Spinner":
        self._done.clear()
        self._thread = threading.Thread(target=self._spin, daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self._done.set()
        if self._thread:
            self._thread.join()
        sys.stderr.write("\r\033[K")
        sys.stderr.flush()

    def _spin(self) -> None:
        for frame in itertools.cycle(self.FRAMES):
            if self._done.wait(self._interval):
                return
            sys.stderr.write(f"\r  {frame} {self._message}")
            sys.stderr.flush()


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

ASPECT_RATIO = "3:4"


def build_prompt(prompt: str, theme: str) -> str:
    """Wrap the user's prompt in the poster-background style template."""
    return (
        f"High quality artistic poster background, {theme} style, {prompt}, "
        "vibrant colors, sharp detail, 4k resolution, without any text or watermarks."
    )


# ---------------------------------------------------------------------------
# Retry helper
# ---------------------------------------------------------------------------

DEFAULT_MAX_RETRIES = 1
DEFAULT_TIMEOUT_SECONDS = 300  # 5 minutes


def _retry_with_backoff(
    fn,
    max_retries: int = DEFAULT_MAX_RETRIES,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    spinner_message: str | None = None,
):
    """Execute a function with a per-attempt timeout and exponential backoff.

    Args:
        fn: Callable to execute.
        max_retries: Maximum number of attempts.
        timeout: Per-attempt timeout in seconds.
        spinner_message: Show a terminal spinner with this message. No
            spinner is shown when None (server use).

    Returns:
        The return value of fn().

    Raises:
        The last exception encountered after all attempts are exhausted,
        or TimeoutError if the final attempt exceeds the timeout.
    """
    last_exception: BaseException | None = None

    for attempt in range(1, max(max_retries, 1) + 1):
        spinner = None
        if spinner_message:
            spinner = Spinner(
                f"{spinner_message} (attempt {attempt}/{max_retries})"
                if attempt > 1 else spinner_message
            ).start()

        result_container = [None]
        error_container: list[BaseException | None] = [None]

        def _run():
            try:
                result_container[0] = fn()
            except Exception as e:
                error_container[0] = e

        thread = threading.Thread(target=_run, daemon=True)
        thread.start()
        thread.join(timeout=timeout)
        if spinner:
            spinner.stop()

        if thread.is_alive():
            last_exception = TimeoutError(f"API call timed out after {timeout}s.")
        elif error_container[0] is not None:
            last_exception = error_container[0]
        else:
            return result_container[0]

        if attempt < max_retries:
            wait = 2 ** attempt
            if spinner_message:
                print(
                    f"  ⚠️  Attempt {attempt} failed: {last_exception}. Retrying in {wait}s...",
                    file=sys.stderr,
                )
            time.sleep(wait)

    raise last_exception  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BaseArtClient(ABC):
    """Abstract base class for background art generators.

    Subclasses implement ``_generate``; callers use ``generate``, which
    applies the timeout/retry policy and turns every failure into
    ``GenerationError``.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        spinner: bool = False,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.spinner = spinner

    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def _generate(self, prompt: str) -> str | None:
        """Call the service with the full prompt.

        Returns:
            A ``data:`` URI, or None when the response carried no image.
        """
        ...

    def generate(self, prompt: str, theme: str) -> str | None:
        """Generate a 3:4 poster background.

        Args:
            prompt: The user's description of the art.
            theme: Theme name folded into the style template.

        Returns:
            An inline ``data:image/...;base64,...`` URI, or None if the
            service produced no image.

        Raises:
            GenerationError: On any service, network or timeout failure.
        """
        full_prompt = build_prompt(prompt, getattr(theme, "value", theme))
        try:
            return _retry_with_backoff(
                lambda: self._generate(full_prompt),
                max_retries=self.max_retries,
                timeout=self.timeout,
                spinner_message=f"Generating via {self.name()}..." if self.spinner else None,
            )
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"{self.name()} failed: {e}") from e


# ---------------------------------------------------------------------------
# Google GenAI client
# ---------------------------------------------------------------------------

class GeminiClient(BaseArtClient):
    """Client for Gemini native image generation.

    Requires GEMINI_API_KEY (or API_KEY) unless a preconfigured
    ``genai.Client`` is passed in.
    """

    MODEL = "gemini-2.5-flash-image"

    def __init__(self, api_key: str | None = None, client=None, **kwargs):
        super().__init__(**kwargs)
        if client is None:
            api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
            if not api_key:
                raise ValueError(
                    "GEMINI_API_KEY environment variable not set.\n"
                    "Get your key at https://aistudio.google.com/apikey"
                )
            from google import genai
            client = genai.Client(api_key=api_key)
        self._client = client

    def name(self) -> str:
        return "Gemini"

    def _generate(self, prompt: str) -> str | None:
        from google.genai import types

        response = self._client.models.generate_content(
            model=self.MODEL,
            contents=prompt,
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio=ASPECT_RATIO),
            ),
        )
        return extract_inline_image(response)


def extract_inline_image(response) -> str | None:
    """Return the first inline image part of a GenAI response as a data URI.

    Raises:
        GenerationError: If the response has no candidates to inspect.
    """
    candidates = getattr(response, "candidates", None)
    if not candidates:
        raise GenerationError("Response contained no candidates.")

    content = candidates[0].content
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline and inline.data:
            data = inline.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            return bytes_to_data_uri(data, inline.mime_type or "image/png")
    return None


# ---------------------------------------------------------------------------
# HuggingFace client
# ---------------------------------------------------------------------------

class HuggingFaceClient(BaseArtClient):
    """Client for the FLUX.1-schnell HuggingFace space.

    Uses the Gradio client to call the public space. No API key required.
    """

    SPACE_ID = "black-forest-labs/FLUX.1-schnell"
    WIDTH, HEIGHT = 768, 1024  # 3:4

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        try:
            from gradio_client import Client
            self._client = Client(self.SPACE_ID)
        except Exception as e:
            raise ConnectionError(
                f"Failed to connect to HuggingFace space '{self.SPACE_ID}': {e}\n"
                "Make sure you have internet access and gradio_client installed."
            )

    def name(self) -> str:
        return "HuggingFace (FLUX.1-schnell)"

    def _generate(self, prompt: str) -> str | None:
        result = self._client.predict(
            prompt=prompt,
            seed=0,
            randomize_seed=True,
            width=self.WIDTH,
            height=self.HEIGHT,
            num_inference_steps=4,
            api_name="/infer",
        )
        # The space returns (image_path, seed)
        path = result[0] if isinstance(result, (list, tuple)) else result
        if not path:
            return None
        with open(path, "rb") as f:
            return bytes_to_data_uri(f.read(), _mime_for(path))


# ---------------------------------------------------------------------------
# Replicate client
# ---------------------------------------------------------------------------

class ReplicateClient(BaseArtClient):
    """Client for Replicate API. Requires REPLICATE_API_TOKEN env var."""

    MODEL = "black-forest-labs/flux-schnell"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not os.environ.get("REPLICATE_API_TOKEN"):
            raise ValueError(
                "REPLICATE_API_TOKEN environment variable not set.\n"
                "Get your token at https://replicate.com/account/api-tokens"
            )
        try:
            import replicate
            self._replicate = replicate
        except ImportError:
            raise ImportError("replicate package not installed. Run: pip install replicate")

    def name(self) -> str:
        return "Replicate API"

    def _generate(self, prompt: str) -> str | None:
        output = self._replicate.run(
            self.MODEL,
            input={"prompt": prompt, "aspect_ratio": ASPECT_RATIO, "output_format": "png"},
        )

        # Replicate returns a URL or list of URLs
        if isinstance(output, list):
            output = output[0] if output else None
        if not output:
            return None

        with urllib.request.urlopen(str(output), timeout=60) as response:
            return bytes_to_data_uri(response.read(), "image/png")


def _mime_for(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".webp": "image/webp"}.get(ext, "image/png")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

CLIENTS = {
    "gemini": GeminiClient,
    "huggingface": HuggingFaceClient,
    "replicate": ReplicateClient,
}


def get_client(api: str = "gemini", **kwargs) -> BaseArtClient:
    """Factory function to get the appropriate art client.

    Args:
        api: One of "gemini", "huggingface" or "replicate".
        **kwargs: Passed to the client (timeout, max_retries, spinner).

    Returns:
        An initialized client.
    """
    if api not in CLIENTS:
        raise ValueError(f"Unknown API '{api}'. Choose from: {', '.join(CLIENTS)}")

    return CLIENTS[api](**kwargs)
