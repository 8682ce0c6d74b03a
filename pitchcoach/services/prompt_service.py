"""Prompt template loading and rendering."""

import re
from pathlib import Path
from typing import Mapping, Optional

import structlog

from pitchcoach.config import get_settings
from pitchcoach.errors import PromptNotFoundError
from pitchcoach.prompts.defaults import PROMPT_DEFAULTS

logger = structlog.get_logger(__name__)

EMPTY_SECTION = "None provided."


def _normalize_section(value: Optional[str]) -> str:
    trimmed = (value or "").strip()
    return trimmed if trimmed else EMPTY_SECTION


def load_template(name: str, prompt_dir: Optional[Path] = None) -> str:
    """Load a template by name.

    A ``<name>.txt`` file in ``prompt_dir`` wins over the bundled default.

    Raises:
        PromptNotFoundError: Neither an override file nor a default exists
    """
    if prompt_dir is not None:
        override = Path(prompt_dir) / f"{name}.txt"
        if override.is_file():
            return override.read_text(encoding="utf-8")

    try:
        return PROMPT_DEFAULTS[name]
    except KeyError:
        location = f" in {prompt_dir}" if prompt_dir is not None else ""
        raise PromptNotFoundError(f"Prompt '{name}' not found{location}") from None


def apply_template(template: str, variables: Mapping[str, str]) -> str:
    """Substitute ``{{ key }}`` tokens. Unknown tokens are left untouched."""
    result = template
    for key, value in variables.items():
        token = re.compile(r"{{\s*" + re.escape(key) + r"\s*}}")
        # Callable replacement so backslashes in values are kept literally
        result = token.sub(lambda _match, v=value: v, result)
    return result


def render_prompt(
    name: str,
    variables: Mapping[str, Optional[str]],
    prompt_dir: Optional[Path] = None,
) -> str:
    """Render a named template with the given variables.

    Blank or missing values render as "None provided." so the model can tell
    an empty section from a template bug. Same inputs always give the same
    output.

    Args:
        name: Template name (e.g., "deck-agent")
        variables: Placeholder values
        prompt_dir: Override directory; defaults to the configured one

    Returns:
        The rendered prompt text
    """
    if prompt_dir is None:
        prompt_dir = get_settings().prompt_dir
    template = load_template(name, prompt_dir)
    normalized = {key: _normalize_section(value) for key, value in variables.items()}
    rendered = apply_template(template, normalized)
    logger.debug("prompt_rendered", prompt_name=name, prompt_chars=len(rendered))
    return rendered
