import logging
import zipfile
from pathlib import Path
from typing import Protocol

from errors import ExtractionFailure

logger = logging.getLogger(__name__)


class Archive(Protocol):
    def names(self, path: Path) -> list[str]: ...

    def extract(self, path: Path, member: str, dest_dir: Path) -> Path: ...


class ZipArchive:
    def names(self, path: Path) -> list[str]:
        try:
            with zipfile.ZipFile(path) as zf:
                return zf.namelist()
        except zipfile.BadZipFile as exc:
            raise ExtractionFailure(path, str(exc)) from exc

    def extract(self, path: Path, member: str, dest_dir: Path) -> Path:
        try:
            with zipfile.ZipFile(path) as zf:
                try:
                    info = zf.getinfo(member)
                except KeyError:
                    raise ExtractionFailure(path, f"no entry {member!r}") from None
                if info.is_dir():
                    raise ExtractionFailure(path, f"{member!r} is a directory")
                logger.debug("extracting %s from %s", member, path)
                return Path(zf.extract(info, dest_dir))
        except (zipfile.BadZipFile, OSError) as exc:
            raise ExtractionFailure(path, str(exc)) from exc
