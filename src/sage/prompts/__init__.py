from .loader import load_prompt, render_prompt

__all__ = ["load_prompt", "render_prompt"]
