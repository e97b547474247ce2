"""
Document loader for blog-post corpora.

Accepts either a JSON file (an array of post records, or an object with a
"documents" array) or a directory of Markdown / plain-text posts. Missing
ids, dates and word counts are synthesized, empty posts are dropped, and
the result is sorted oldest first.
"""
import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..knowledge_graph.identifiers import normalize
from ..knowledge_graph.models import Document

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".md", ".markdown", ".txt")

_ISO_DATE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_LONG_DATE = re.compile(r"([A-Z][a-z]+ \d{1,2}, \d{4})")
_US_DATE = re.compile(r"(\d{1,2}/\d{1,2}/\d{4})")
_FRONTMATTER = re.compile(r"^---\n(.*?)\n---\n(.*)$", re.DOTALL)
_MARKDOWN_H1 = re.compile(r"^#\s+(.+)$", re.MULTILINE)

_DATE_KEYS = ("date", "publish_date", "published_at", "post_date")
_CONTENT_KEYS = ("content", "text", "body", "full_text")


def count_words(text: str) -> int:
    return len(text.split())


def _word_count(value: Any, content: str) -> int:
    """Use a recorded word count when it is a usable number, else count"""
    try:
        recorded = int(value)
    except (TypeError, ValueError):
        return count_words(content)
    return recorded if recorded > 0 else count_words(content)


def _iso_date(value: str) -> Optional[str]:
    """Parse a loosely formatted date into YYYY-MM-DD"""
    value = value.strip()
    match = _ISO_DATE.search(value)
    if match:
        return match.group(1)
    for fmt in ("%B %d, %Y", "%b %d, %Y", "%m/%d/%Y"):
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def find_date(*texts: str) -> Optional[str]:
    """First recognizable date in the given texts, in order"""
    for text in texts:
        if not text:
            continue
        for pattern in (_ISO_DATE, _LONG_DATE, _US_DATE):
            match = pattern.search(text)
            if match:
                parsed = _iso_date(match.group(1))
                if parsed:
                    return parsed
    return None


def title_from_filename(filename: str) -> str:
    stem = Path(filename).stem
    return re.sub(r"[-_]+", " ", stem).strip().title()


def parse_frontmatter(text: str) -> Tuple[Dict[str, str], str]:
    """Split simple `key: value` frontmatter from a Markdown body"""
    match = _FRONTMATTER.match(text)
    if not match:
        return {}, text

    fields = {}
    for line in match.group(1).splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip():
            fields[key.strip().lower()] = value.strip().strip("'\"")
    return fields, match.group(2)


def build_document(record: Dict[str, Any], fallback_title: str = "") -> Optional[Document]:
    """Build a Document from a loose record, or None if it has no content"""
    content = ""
    for key in _CONTENT_KEYS:
        if record.get(key):
            content = str(record[key]).strip()
            break
    if not content:
        return None

    title = str(record.get("title") or "").strip()
    if not title:
        h1 = _MARKDOWN_H1.search(content)
        title = h1.group(1).strip() if h1 else fallback_title or "Untitled"

    raw_date = next((str(record[k]) for k in _DATE_KEYS if record.get(k)), "")
    doc_date = _iso_date(raw_date) if raw_date else None
    if not doc_date:
        doc_date = find_date(content, fallback_title) or date.today().isoformat()

    return Document(
        id=str(record.get("id") or normalize(title) or normalize(fallback_title) or "untitled"),
        title=title,
        date=doc_date,
        content=content,
        word_count=_word_count(record.get("word_count"), content),
    )


def _load_json(path: Path) -> List[Dict[str, Any]]:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("documents", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of documents or a 'documents' array")
    return [item for item in data if isinstance(item, dict)]


def _load_directory(path: Path) -> List[Tuple[Dict[str, Any], str]]:
    records = []
    for file_path in sorted(p for p in path.rglob("*") if p.suffix.lower() in TEXT_EXTENSIONS):
        try:
            text = file_path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable file {file_path}: {e}")
            continue

        fields, body = parse_frontmatter(text)
        record = dict(fields)
        record["content"] = body
        if not record.get("date"):
            record["date"] = find_date(file_path.name) or ""
        records.append((record, title_from_filename(file_path.name)))
    return records


def load_documents(path: Union[str, Path], min_words: int = 0) -> List[Document]:
    """Load, clean and date-sort a corpus

    Args:
        path: JSON file or directory of Markdown / text posts
        min_words: Drop posts shorter than this many words

    Returns:
        Documents sorted oldest first
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Corpus not found: {path}")

    if path.is_dir():
        records = _load_directory(path)
    else:
        records = [(record, "") for record in _load_json(path)]

    documents = []
    skipped = 0
    for record, fallback_title in records:
        document = build_document(record, fallback_title)
        if document is None or document.word_count < min_words:
            skipped += 1
            continue
        documents.append(document)

    documents.sort(key=lambda d: d.date)
    logger.info(f"Loaded {len(documents)} documents from {path} ({skipped} skipped)")
    return documents
