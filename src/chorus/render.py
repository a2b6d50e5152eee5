"""Markdown rendering for assistant messages.

Model output is untrusted: raw HTML in it is escaped, never passed
through. LaTeX written with ``\\( \\)`` or ``\\[ \\]`` delimiters is
rewritten to ``$``/``$$`` so a math renderer in the host sees one
notation. Fenced code is left untouched.
"""

import re

from markdown_it import MarkdownIt

_FENCE = re.compile(r"(^```.*?^```[ \t]*$)", re.MULTILINE | re.DOTALL)
_DISPLAY_MATH = re.compile(r"\\\[(.+?)\\\]", re.DOTALL)
_INLINE_MATH = re.compile(r"\\\((.+?)\\\)", re.DOTALL)


def normalize_latex(text: str) -> str:
    """Rewrite ``\\[..\\]`` to ``$$..$$`` and ``\\(..\\)`` to ``$..$`` outside code fences."""
    parts = _FENCE.split(text)
    for index in range(0, len(parts), 2):
        segment = _DISPLAY_MATH.sub(lambda m: f"$${m.group(1).strip()}$$", parts[index])
        parts[index] = _INLINE_MATH.sub(lambda m: f"${m.group(1).strip()}$", segment)
    return "".join(parts)


def _create_parser() -> MarkdownIt:
    md = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])

    def link_open(self, tokens, idx, options, env):
        tokens[idx].attrSet("target", "_blank")
        tokens[idx].attrSet("rel", "noopener noreferrer")
        return self.renderToken(tokens, idx, options, env)

    md.add_render_rule("link_open", link_open)
    return md


_md = _create_parser()


def render(text: str) -> str:
    """Render message Markdown to HTML with raw HTML escaped."""
    if not text:
        return ""
    return _md.render(normalize_latex(text))
