"""
Extraction and packing of .apkg archives with the system zip tools.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from ..config import Config
from ..errors import ArchiveToolError


logger = logging.getLogger(__name__)


class ShellArchiveTool:
    """
    Runs the configured extract and pack commands.

    Command templates may use ``{archive}`` and ``{dest}`` placeholders.
    Packing runs inside the source directory so members are stored flat.
    """

    def __init__(self, extract_command: Sequence[str] = Config.EXTRACT_COMMAND,
                 pack_command: Sequence[str] = Config.PACK_COMMAND):
        self.extract_command = tuple(extract_command)
        self.pack_command = tuple(pack_command)

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        archive_path = Path(archive_path).resolve()
        dest_dir = Path(dest_dir).resolve()
        if not archive_path.is_file():
            raise ArchiveToolError([str(archive_path)], None, "Archive file does not exist")

        cmd = self._format(self.extract_command, archive=archive_path, dest=dest_dir)
        self._run(cmd, cwd=dest_dir)
        logger.info(f"Extracted {archive_path.name} into {dest_dir}")

    def pack(self, src_dir: Path, output_path: Path) -> None:
        src_dir = Path(src_dir).resolve()
        output_path = Path(output_path).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)

        cmd = self._format(self.pack_command, archive=output_path, dest=src_dir)
        self._run(cmd, cwd=src_dir)
        logger.info(f"Packed {src_dir} into {output_path}")

    @staticmethod
    def _format(template: Sequence[str], archive: Path, dest: Path) -> List[str]:
        return [part.format(archive=archive, dest=dest) for part in template]

    @staticmethod
    def _run(cmd: List[str], cwd: Path) -> None:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True)
        except FileNotFoundError:
            raise ArchiveToolError(cmd, None, f"{cmd[0]} not found")

        if result.returncode != 0:
            logger.error(f"{cmd[0]} failed: {result.stderr}")
            raise ArchiveToolError(cmd, result.returncode, result.stderr)
