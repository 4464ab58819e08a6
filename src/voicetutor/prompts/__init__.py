"""Prompt templates for voicetutor."""

from __future__ import annotations

from pathlib import Path

from voicetutor.core.logging import get_logger

logger = get_logger("prompts")

# Package data directory
_DATA_DIR = Path(__file__).parent.parent / "data" / "prompts"

SCORE_PROMPT_NAME = "ielts_score"


def load_prompt(
    name: str,
    prompts_dir: Path | None = None,
    use_bundled: bool = True,
) -> str:
    """
    Load a prompt template by name.

    Checks in order:
    1. User's prompts_dir (if provided and file exists)
    2. Bundled defaults in package data (if use_bundled=True)

    Args:
        name: Prompt name (e.g., "ielts_score" loads "ielts_score.md")
        prompts_dir: Optional user prompts directory
        use_bundled: If False, skip bundled fallback (raise if not in prompts_dir)

    Returns:
        Prompt content

    Raises:
        FileNotFoundError: If prompt not found in any location
    """
    filename = f"{name}.md"

    if prompts_dir:
        user_path = prompts_dir / filename
        if user_path.exists():
            logger.debug(f"Loading prompt {name} from {user_path}")
            return user_path.read_text().strip()

    if use_bundled:
        bundled_path = _DATA_DIR / filename
        if bundled_path.exists():
            return bundled_path.read_text().strip()

    raise FileNotFoundError(f"Prompt not found: {name}")


def load_score_prompt(prompts_dir: Path | None = None) -> str:
    """Fixed message text sent with an IELTS score request."""
    return load_prompt(SCORE_PROMPT_NAME, prompts_dir=prompts_dir)
