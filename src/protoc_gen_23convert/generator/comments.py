from __future__ import annotations

from typing import List

from protoc_gen_23convert.models import Comments


def indent(text: str, width: int) -> str:
    """Prefix every non-empty line of text with width spaces."""
    pad = " " * width
    return "\n".join(pad + line if line else line for line in text.split("\n"))


def _block_comment(text: str) -> str:
    return f"/*\n{indent(text, 2)}\n  */\n"


def attach_comments(text: str, comments: Comments) -> str:
    """Wrap a rendered definition with its detached, leading and trailing comments.

    Detached blocks come first, each followed by a blank line. The
    leading comment sits right above the definition, separated from
    whatever precedes it by two blank lines. The trailing comment is
    appended to the definition's last line.
    """
    parts: List[str] = []
    for block in comments.detached:
        parts.append(_block_comment(block) + "\n")
    if comments.leading:
        parts.append("\n\n" + _block_comment(comments.leading))

    if text.endswith("\n"):
        text = text[:-1]
    parts.append(text)

    if comments.trailing:
        parts.append(f"/* {comments.trailing} */\n")
    else:
        parts.append("\n")
    return "".join(parts)
