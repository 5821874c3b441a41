from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from routedoc.config import ExtractorConfig
from routedoc.domain.models import ErrorEntry, SuccessEntry
from routedoc.domain.status import status_from_name

logger = logging.getLogger(__name__)

# IDENT: creator('message', 400, ...)   message may span lines
_ERROR_DEF = re.compile(
    r"(?P<name>[A-Za-z_$][\w$]*)\s*:\s*[A-Za-z_$][\w$.]*\s*\(\s*"
    r"(?P<q>['\"`])(?P<message>(?:\\.|(?!(?P=q)).)*?)(?P=q)\s*,\s*"
    r"(?P<code>\d+|(?:[A-Za-z_$][\w$]*\.)?[A-Z][A-Z_]*)",
    re.DOTALL,
)

# IDENT: 'message'
_SUCCESS_DEF = re.compile(
    r"(?P<name>[A-Za-z_$][\w$]*)\s*:\s*(?P<q>['\"`])(?P<message>(?:\\.|(?!(?P=q)).)*?)(?P=q)",
    re.DOTALL,
)

_WS = re.compile(r"\s+")


@dataclass(frozen=True)
class SymbolTables:
    errors: dict[str, ErrorEntry] = field(default_factory=dict)
    successes: dict[str, SuccessEntry] = field(default_factory=dict)
    source_dir: Optional[Path] = None

    def is_empty(self) -> bool:
        return not self.errors and not self.successes

    def error(self, identifier: str) -> Optional[ErrorEntry]:
        return self.errors.get(identifier)

    def success(self, identifier: str) -> Optional[SuccessEntry]:
        return self.successes.get(identifier)


def _clean_message(raw: str) -> str:
    return _WS.sub(" ", raw).strip()


def parse_error_definitions(text: str) -> dict[str, ErrorEntry]:
    out: dict[str, ErrorEntry] = {}
    for m in _ERROR_DEF.finditer(text):
        raw_code = m.group("code")
        code = int(raw_code) if raw_code.isdigit() else status_from_name(raw_code)
        if code is None:
            continue
        out[m.group("name")] = ErrorEntry(code=code, message=_clean_message(m.group("message")))
    return out


def parse_success_definitions(text: str) -> dict[str, SuccessEntry]:
    out: dict[str, SuccessEntry] = {}
    for m in _SUCCESS_DEF.finditer(text):
        out[m.group("name")] = SuccessEntry(message=_clean_message(m.group("message")))
    return out


def _read_text(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Skipping symbol table %s: %s", path, exc)
        return None


def candidate_dirs(start_dir: Path, config: ExtractorConfig) -> list[Path]:
    """
    Ordered, de-duplicated probe locations around start_dir.
    Order follows config.symbol_search_dirs (increasing ancestor depth).
    """
    start_dir = start_dir.resolve()
    seen: set[Path] = set()
    out: list[Path] = []
    for rel in config.symbol_search_dirs:
        p = (start_dir / rel).resolve()
        if p in seen:
            continue
        seen.add(p)
        out.append(p)
    return out


def load_symbol_tables(start_dir: Path, config: Optional[ExtractorConfig] = None) -> SymbolTables:
    """
    Probe candidate directories for the error/success tables.

    Stops at the first directory where either file yields at least one entry.
    Unreadable files count as empty; an empty result is not an error.
    """
    config = config or ExtractorConfig()

    for d in candidate_dirs(start_dir, config):
        errors: dict[str, ErrorEntry] = {}
        successes: dict[str, SuccessEntry] = {}

        text = _read_text(d / config.error_table_filename)
        if text is not None:
            errors = parse_error_definitions(text)

        text = _read_text(d / config.success_table_filename)
        if text is not None:
            successes = parse_success_definitions(text)

        if errors or successes:
            logger.debug(
                "Loaded %d error and %d success symbols from %s",
                len(errors),
                len(successes),
                d,
            )
            return SymbolTables(errors=errors, successes=successes, source_dir=d)

    return SymbolTables()
