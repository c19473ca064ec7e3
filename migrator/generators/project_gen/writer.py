"""Staged writer: a project lands in its output directory completely or not at all."""
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List
from migrator.core.errors import OutputConflict
from migrator.generators.types import ConversionArtifact

log = logging.getLogger(__name__)


def write_files(files: List[ConversionArtifact], out_dir: Path) -> None:
    """
    Write artifacts below the output directory.

    Args:
        files: Artifacts to write; each target_path is relative to out_dir
        out_dir: Base output directory path
    """
    out_dir.mkdir(parents=True, exist_ok=True)

    for file in files:
        file_path = out_dir / file.target_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        # Bytes, so line endings are identical on every platform
        file_path.write_bytes(file.content.encode("utf-8"))


def tree_matches(out_dir: Path, files: Dict[str, str]) -> bool:
    """True when out_dir holds exactly ``files`` with identical bytes."""
    existing = {p.relative_to(out_dir).as_posix() for p in out_dir.rglob("*") if p.is_file()}
    if existing != set(files):
        return False
    return all((out_dir / rel).read_bytes() == content.encode("utf-8") for rel, content in files.items())


def _promote(staging: Path, out_dir: Path) -> None:
    if not out_dir.exists():
        os.replace(staging, out_dir)
        return
    if not any(out_dir.iterdir()):
        out_dir.rmdir()
        os.replace(staging, out_dir)
        return

    backup = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}-previous-", dir=out_dir.parent))
    backup.rmdir()
    os.replace(out_dir, backup)
    try:
        os.replace(staging, out_dir)
    except OSError:
        os.replace(backup, out_dir)
        raise
    shutil.rmtree(backup)


def write_project(files: List[ConversionArtifact], out_dir: Path, overwrite: bool = False) -> bool:
    """Write ``files`` to ``out_dir`` through a sibling staging directory.

    Returns False when out_dir already holds the identical tree (nothing is
    touched). A non-empty, different out_dir raises ``OutputConflict`` unless
    ``overwrite`` is set.
    """
    out_dir = Path(out_dir)
    contents = {f.target_path: f.content for f in files}

    if out_dir.exists():
        if not out_dir.is_dir():
            raise OutputConflict(str(out_dir))
        if any(out_dir.iterdir()):
            if tree_matches(out_dir, contents):
                log.info(f"Output {out_dir} already up to date")
                return False
            if not overwrite:
                raise OutputConflict(str(out_dir))
            log.warning(f"Replacing existing output {out_dir}")

    out_dir.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}-staging-", dir=out_dir.parent))
    try:
        write_files(files, staging)
        _promote(staging, out_dir)
    except Exception:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    log.info(f"Wrote {len(files)} files to {out_dir}")
    return True
