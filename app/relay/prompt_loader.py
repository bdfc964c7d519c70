from pathlib import Path

from app.relay.exceptions import ErrorKind, RelayError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

_DOMAIN_HINTS = {
    "handwritten": "The image shows handwriting; expect irregular strokes.",
    "printed": "The image shows printed text.",
    "math": "The image is mostly mathematics; keep every formula.",
    "table": "The image is mostly tabular data.",
}


def load_prompt_template(path: Path | None = None) -> str:
    """Load the transcription prompt template from a file.

    Args:
        path: Path to the prompt template file.
              Defaults to the bundled transcription_prompt.txt.

    Returns:
        The raw template string with a ``{domain_hint}`` placeholder.

    Raises:
        RelayError: of kind CONFIGURATION if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "transcription_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RelayError(
            f"Failed to load prompt template: {exc}", kind=ErrorKind.CONFIGURATION
        ) from exc


def build_prompt(template: str, domain: str | None = None) -> str:
    """Fill the template; unknown domains are passed through as a plain hint."""
    key = (domain or "").strip().lower()
    if not key:
        hint = ""
    else:
        hint = _DOMAIN_HINTS.get(key, f"The image content is: {domain.strip()}.")
    return template.replace("{domain_hint}", hint).strip() + "\n"
