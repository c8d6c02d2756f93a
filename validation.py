"""
Form checks shared by the admin endpoints.

All checks are pure: they work on payloads and on documents that were already
fetched, and raise FormError with the message shown to the admin.
"""
import re
from typing import Iterable, List, Optional, Sequence

MAX_BANNERS = 6

PHONE_RE = re.compile(r"[0-9]{10}")
WHOLE_NUMBER_RE = re.compile(r"[0-9]+")
_TAG_RE = re.compile(r"<[^>]*>")


class FormError(ValueError):
    """A submission that must be rejected before touching the store."""

    status_code = 400


class ConflictError(FormError):
    status_code = 409


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def is_valid_phone(phone: Optional[str]) -> bool:
    return phone is not None and PHONE_RE.fullmatch(phone) is not None


def rich_text_is_blank(html: Optional[str]) -> bool:
    # The editor emits markup like "<p><br></p>" for an empty document
    if html is None:
        return True
    text = _TAG_RE.sub("", html).replace("&nbsp;", " ")
    return not text.strip()


def non_blank(values: Iterable[str]) -> List[str]:
    return [v.strip() for v in values if not is_blank(v)]


def find_duplicate_label(values: Iterable[str]) -> Optional[str]:
    seen = set()
    for value in non_blank(values):
        key = value.lower()
        if key in seen:
            return value
        seen.add(key)
    return None


def name_taken(name: str, docs: Iterable[dict], field: str, exclude_id: Optional[str] = None) -> bool:
    """Case-insensitive match of ``name`` against ``field`` of ``docs``.

    The document whose id is ``exclude_id`` is skipped so an edit that keeps its
    own name is not reported as a duplicate.
    """
    wanted = name.strip().lower()
    for doc in docs:
        doc_id = str(doc.get("_id", doc.get("id", "")))
        if exclude_id is not None and doc_id == exclude_id:
            continue
        if str(doc.get(field) or "").strip().lower() == wanted:
            return True
    return False


def find_duplicate_combination(combinations: Sequence) -> Optional[tuple]:
    """First (color, size) pair that appears twice, or None."""
    seen = set()
    for combo in combinations:
        color = _field(combo, "color").strip()
        size = _field(combo, "size").strip()
        key = (color.lower(), size.lower())
        if key in seen:
            return (color, size)
        seen.add(key)
    return None


def _field(obj, name: str) -> str:
    if isinstance(obj, dict):
        return str(obj.get(name) or "")
    return str(getattr(obj, name, "") or "")


def ensure_banner_capacity(current_count: int):
    if current_count >= MAX_BANNERS:
        raise FormError(
            f"Maximum of {MAX_BANNERS} banners allowed. Please delete an existing banner first."
        )


def filter_existing_ids(ids: Iterable[str], existing: Iterable[str]) -> List[str]:
    """Keep ids present in ``existing``, first occurrence wins."""
    existing = set(existing)
    out = []
    for pid in ids:
        if pid in existing and pid not in out:
            out.append(pid)
    return out


def dedupe(ids: Iterable[str]) -> List[str]:
    out = []
    for pid in ids:
        if pid and pid not in out:
            out.append(pid)
    return out
