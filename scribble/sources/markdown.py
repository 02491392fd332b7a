import asyncio
import os
import re
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import yaml

from scribble.constants import DEFAULT_SOURCE
from scribble.logging import get_logger
from scribble.search.types import IndexedDocument

_logger = get_logger(__name__)

_FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


def _walk_markdown_files(root_path: Path) -> Iterator[tuple[Path, str]]:
    for root, dirs, files in os.walk(root_path):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for filename in sorted(files):
            if filename.endswith(".md"):
                filepath = Path(root) / filename
                yield filepath, filepath.relative_to(root_path).as_posix()


def parse_frontmatter(content: str) -> tuple[dict, str]:
    m = _FRONTMATTER_RE.match(content)
    if not m:
        return {}, content
    try:
        frontmatter = yaml.safe_load(m.group(1))
    except yaml.YAMLError:
        return {}, content
    if not isinstance(frontmatter, dict):
        return {}, content
    return frontmatter, content[m.end():]


def _parse_tags(raw) -> frozenset[str]:
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list):
        return frozenset()
    return frozenset(str(t).strip().lstrip("#") for t in raw if str(t).strip())


def parse_note(text: str, default_title: str) -> tuple[str, str, frozenset[str]]:
    """Split a markdown note into (title, body, tags).

    Title comes from frontmatter `title:`, else a leading `# ` heading, else the
    default.
    """
    frontmatter, body = parse_frontmatter(text)
    title = str(frontmatter.get("title") or "").strip()
    if not title and body.startswith("# "):
        title = body.split("\n", 1)[0][2:].strip()
    return title or default_title, body, _parse_tags(frontmatter.get("tags"))


class MarkdownSource:
    def __init__(self, root: Path, owner_id: str, source: str = DEFAULT_SOURCE):
        self.root = root
        self.owner_id = owner_id
        self.source = source
        if not self.root.exists():
            raise ValueError(f"Notes path does not exist: {self.root}")

    async def scan(self) -> list[IndexedDocument]:
        return await asyncio.to_thread(self._scan_sync)

    def _scan_sync(self) -> list[IndexedDocument]:
        docs = []
        for filepath, relative_path in _walk_markdown_files(self.root):
            if doc := self._read_file(filepath, relative_path):
                docs.append(doc)
        return docs

    def _read_file(self, filepath: Path, relative_path: str) -> IndexedDocument | None:
        try:
            text = filepath.read_text(encoding="utf-8")
            stat = filepath.stat()
        except (OSError, UnicodeDecodeError) as e:
            _logger.warning("Could not read %s: %s", filepath, e)
            return None

        title, body, tags = parse_note(text, filepath.stem)
        return IndexedDocument(
            id=relative_path,
            owner_id=self.owner_id,
            title=title,
            content=body,
            tags=tags,
            created_at=datetime.fromtimestamp(stat.st_ctime, UTC),
            updated_at=datetime.fromtimestamp(stat.st_mtime, UTC),
            source=self.source,
        )
