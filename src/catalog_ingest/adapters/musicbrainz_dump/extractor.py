"""Streaming extraction of the declared members of a dump archive."""

from __future__ import annotations

import shutil
import tarfile
from logging import getLogger
from typing import TYPE_CHECKING

from catalog_ingest.domain.errors import ArchiveExtractionError

if TYPE_CHECKING:
    from pathlib import Path
    from typing import IO

    from .archives import ArchiveMember, DumpArchive

log = getLogger(__name__)

_COPY_BUFFER = 1 << 20


def _normalise_member_name(name: str) -> str:
    return name.removeprefix("./")


def extract_members(archive: DumpArchive, dump_dir: Path) -> list[Path]:
    """Extract the members of ``archive`` that are not yet present in ``dump_dir``.

    Members are written flat (basename, or their declared local name) through a
    ``.partial`` file. Returns the target paths of every declared member.
    """

    targets = [dump_dir / member.filename for member in archive.members]
    needed: dict[str, ArchiveMember] = {
        member.path: member
        for member in archive.members
        if not (dump_dir / member.filename).exists()
    }
    if not needed:
        log.info("All tables from %s already extracted, skipping", archive.name)
        return targets

    archive_path = dump_dir / archive.name
    if not archive_path.exists():
        raise ArchiveExtractionError(archive.name, f"archive not found at {archive_path}")

    log.info("Extracting %d table(s) from %s", len(needed), archive.name)
    try:
        # stream mode: the archive is read once, front to back
        with tarfile.open(archive_path, "r|bz2") as tar:
            for info in tar:
                member = needed.get(_normalise_member_name(info.name))
                if member is None or not info.isfile():
                    continue
                source = tar.extractfile(info)
                if source is None:
                    continue
                _write_member(source, dump_dir / member.filename)
                log.info("Extracted %s from %s", member.filename, archive.name)
                del needed[member.path]
                if not needed:
                    break
    except (tarfile.TarError, OSError, EOFError) as exc:
        raise ArchiveExtractionError(archive.name, str(exc)) from exc

    if needed:
        raise ArchiveExtractionError(
            archive.name,
            f"missing member(s): {', '.join(sorted(needed))}",
        )
    log.info("Extraction of %s complete", archive.name)
    return targets


def _write_member(source: IO[bytes], target: Path) -> None:
    partial = target.with_name(f"{target.name}.partial")
    with partial.open("wb") as handle:
        shutil.copyfileobj(source, handle, _COPY_BUFFER)
    partial.replace(target)
