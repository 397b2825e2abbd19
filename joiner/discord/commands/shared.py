from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional

if TYPE_CHECKING:
    from ...runtime import JoinerRuntime

# NOTE:
# Keep this module dependency-light (no discord import) so commands can be
# exercised without a gateway connection.

# Discord rejects messages above 2000 characters.
DISCORD_MESSAGE_LIMIT = 2000

NO_USERS = "No users bound."


@dataclass
class CommandContext:
    """One parsed chat command plus the state it may read or mutate."""

    runtime: "JoinerRuntime"
    name: str
    author_id: str
    guild_id: str
    args: List[str] = field(default_factory=list)

    def arg(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.args):
            return self.args[index]
        return None


def split_command(content: str) -> List[str]:
    """Whitespace tokens of a message; first token lower-cased."""
    parts = (content or "").split()
    if parts:
        parts[0] = parts[0].lower()
    return parts


def parse_count(raw: Optional[str], default: int = 1) -> int:
    """
    Leading-integer parse for `!join <n>`.

    "5" -> 5, "3x" -> 3; missing, non-numeric or < 1 -> default.
    """
    s = (raw or "").strip()
    digits = ""
    for i, ch in enumerate(s):
        if ch.isdigit() or (i == 0 and ch in "+-"):
            digits += ch
            continue
        break
    try:
        n = int(digits)
    except ValueError:
        return default
    return n if n >= 1 else default


def chunk_lines(lines: Iterable[str], limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """
    Pack lines into messages no longer than `limit`.
    A single line longer than `limit` is hard-split.
    """
    chunks: List[str] = []
    current = ""
    for line in lines:
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]

        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate

    if current:
        chunks.append(current)
    return chunks


def chunk_reply(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    if not text:
        return []
    return chunk_lines(text.split("\n"), limit=limit)


__all__ = [
    "CommandContext",
    "DISCORD_MESSAGE_LIMIT",
    "NO_USERS",
    "chunk_lines",
    "chunk_reply",
    "parse_count",
    "split_command",
]
