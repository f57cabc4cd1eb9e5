"""Import hand-curated corporate backing and AI disruption flags"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from support_oss.domain.analysis import score_record
from support_oss.domain.exceptions import CuratedDataError
from support_oss.infrastructure.database.models import Package
from support_oss.infrastructure.database.repositories import PackageRepository, to_record
from support_oss.infrastructure.database.session import SessionLocal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CuratedImportResult:
    corporate: int
    ai_disruption: int


def load_curated_entries(path: Path) -> List[Dict[str, Any]]:
    """
    Read a curated data file.

    Expected shape: {"packages": [{...}, ...]}

    Raises:
        CuratedDataError: If the file is not JSON or has no "packages" list
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise CuratedDataError(f"{path}: invalid JSON ({e})") from e

    entries = data.get("packages") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise CuratedDataError(f'{path}: expected an object with a "packages" list')
    return entries


def _rescore(repo: PackageRepository, pkg: Package) -> None:
    repo.save_score(pkg, score_record(to_record(pkg)))


def import_corporate_backing(repo: PackageRepository, entries: Iterable[Dict[str, Any]]) -> int:
    """Set corporate backing per {name, company} entry; unknown names become pending packages"""
    updated = 0
    for entry in entries:
        name = entry.get("name") if isinstance(entry, dict) else None
        company = entry.get("company") if isinstance(entry, dict) else None
        if not name or not company:
            logger.warning(f"Skipping corporate backing entry without name and company: {entry!r}")
            continue
        _rescore(repo, repo.set_corporate_backing(name, company))
        updated += 1
    return updated


def import_ai_disruption(repo: PackageRepository, entries: Iterable[Dict[str, Any]]) -> int:
    """Flag packages per {name, disruptionType, note} entry, storing the note as [type] note"""
    flagged = 0
    for entry in entries:
        name = entry.get("name") if isinstance(entry, dict) else None
        if not name:
            logger.warning(f"Skipping AI disruption entry without name: {entry!r}")
            continue
        note = f"[{entry.get('disruptionType') or 'unspecified'}] {entry.get('note') or ''}".rstrip()
        _rescore(repo, repo.flag_ai_disruption(name, note))
        flagged += 1
    return flagged


def import_curated(
    repo: PackageRepository,
    corporate: Iterable[Dict[str, Any]] = (),
    ai_disruption: Iterable[Dict[str, Any]] = (),
) -> CuratedImportResult:
    return CuratedImportResult(
        corporate=import_corporate_backing(repo, corporate),
        ai_disruption=import_ai_disruption(repo, ai_disruption),
    )


def run_curated_import(
    corporate_path: Optional[Path],
    ai_disruption_path: Optional[Path],
    session_factory: Callable[[], Session] = SessionLocal,
) -> CuratedImportResult:
    """Load both files, then import them in one transaction"""
    corporate = load_curated_entries(corporate_path) if corporate_path else []
    ai_disruption = load_curated_entries(ai_disruption_path) if ai_disruption_path else []

    db = session_factory()
    try:
        result = import_curated(PackageRepository(db), corporate, ai_disruption)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    logger.info(
        "Curated data imported",
        extra={"corporate_backing": result.corporate, "ai_disruption": result.ai_disruption},
    )
    return result
