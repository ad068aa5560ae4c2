"""
Heuristic worksheet discovery.

A spreadsheet maintained by hand rarely keeps its tab names stable, so the
webhook looks for the right tab by name first and by content second.
"""
import logging
from typing import Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class SheetNotFoundError(Exception):
    """No worksheet matched by name or by content."""
    pass


def safe_str(v) -> str:
    """Coerce any value (None, float, etc.) to a safe trimmed string."""
    try:
        return str(v if v is not None else "").strip()
    except Exception:
        return ""


def sheet_rows(ws) -> List[List[str]]:
    """All cell values of a worksheet as trimmed strings."""
    return [[safe_str(c) for c in row] for row in ws.get_all_values()]


def is_blank(rows: Sequence[Sequence[str]]) -> bool:
    return not any(safe_str(c) for row in rows for c in row)


def candidate_names(preferred: str, defaults: Iterable[str]) -> List[str]:
    """Preferred name first, then the defaults, without repeats."""
    names = []
    for name in [preferred, *defaults]:
        if name and name not in names:
            names.append(name)
    return names


def _match_by_name(name: str, tables: Sequence) -> List:
    exact = [t for t in tables if t.title == name]
    if exact:
        return exact
    folded = name.casefold()
    return [t for t in tables if t.title.casefold() == folded]


def resolve_table(names: Sequence[str], predicate: Callable[[object], bool],
                  tables: Sequence) -> Optional[object]:
    """
    Pick the table that holds what we are looking for.

    Each candidate name is tried as an exact, then case-insensitive, title
    match; a name match only counts if `predicate` accepts the table. When
    no named table qualifies, every table is inspected in enumeration order
    and the first that satisfies `predicate` wins. Several content matches
    are logged as a warning since the choice between them is arbitrary.
    Returns None when nothing qualifies.
    """
    tables = list(tables)
    for name in names:
        for table in _match_by_name(name, tables):
            if predicate(table):
                logger.info("Resolved sheet %r by name %r", table.title, name)
                return table
            logger.info("Sheet %r matched name %r but failed content inspection", table.title, name)

    qualifying = [t for t in tables if predicate(t)]
    if not qualifying:
        logger.warning("No sheet qualified; available sheets: %s", [t.title for t in tables])
        return None
    if len(qualifying) > 1:
        logger.warning("Multiple sheets qualify %s; using the first, %r",
                       [t.title for t in qualifying], qualifying[0].title)
    else:
        logger.info("Resolved sheet %r by content", qualifying[0].title)
    return qualifying[0]
