from __future__ import annotations

from importlib import resources

_PROMPT_CACHE: dict[str, str] = {}


def load_prompt(rel_path: str) -> str:
    cached = _PROMPT_CACHE.get(rel_path)
    if cached is None:
        cached = resources.files(__package__).joinpath(rel_path).read_text(encoding="utf-8")
        _PROMPT_CACHE[rel_path] = cached
    return cached


def render_prompt(rel_path: str, **values: str) -> str:
    """Fill ``{name}`` placeholders; unmatched braces are left as written."""
    content = load_prompt(rel_path)
    for key, value in values.items():
        content = content.replace("{" + key + "}", value)
    return content
