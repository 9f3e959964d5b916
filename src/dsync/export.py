"""
Database export via mysqldump.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

from .database.connection import ConnectionConfig
from .exceptions import ExportError


logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class DatabaseExporter:
    """Runs the dump utility for one database and writes its output to a file."""

    def __init__(
        self,
        config: ConnectionConfig,
        command: str = "mysqldump",
        extra_args: Optional[List[str]] = None,
    ):
        self.config = config
        self.command = command
        self.extra_args = list(extra_args or [])

    def build_env(self) -> Dict[str, str]:
        # mysqldump writes a warning to stderr when given --password.
        env = dict(os.environ)
        if self.config.password:
            env["MYSQL_PWD"] = self.config.password
        return env

    def build_args(self) -> List[str]:
        args = [
            f"--host={self.config.host}",
            f"--port={self.config.port}",
            f"--user={self.config.user}",
        ]
        args.extend(self.extra_args)
        args.append(self.config.database)
        return args

    async def export_database(self, out_file: Union[str, Path]) -> Path:
        """
        Dump the database into ``out_file``.

        Raises:
            ExportError: if the target cannot be written, the utility cannot
                be started, it exits non-zero, or it writes anything to stderr.
        """
        out_path = Path(out_file)
        logger.info(f"Exporting database {self.config.database} to {out_path}")

        try:
            f = open(out_path, "wb")
        except OSError as e:
            raise ExportError(f"Cannot open {out_path} for writing: {e}", cause=e) from e

        with f:
            try:
                process = await asyncio.create_subprocess_exec(
                    self.command,
                    *self.build_args(),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=self.build_env(),
                )
            except OSError as e:
                raise ExportError(f"Failed to start {self.command}: {e}", cause=e) from e

            try:
                _, stderr = await asyncio.gather(
                    self._copy_stream(process.stdout, f),
                    process.stderr.read(),
                )
            except OSError as e:
                await self._terminate(process)
                raise ExportError(f"Failed to write {out_path}: {e}", cause=e) from e
            except BaseException:
                await self._terminate(process)
                raise
        returncode = await process.wait()

        stderr_text = stderr.decode(errors="replace")
        if returncode != 0:
            raise ExportError(
                f"{self.command} exited with code {returncode}",
                returncode=returncode,
                stderr=stderr_text,
            )
        if stderr_text.strip():
            raise ExportError(
                f"{self.command} reported errors",
                returncode=returncode,
                stderr=stderr_text,
            )

        logger.info(f"Database {self.config.database} exported to {out_path}")
        return out_path

    @staticmethod
    async def _copy_stream(stream: asyncio.StreamReader, f) -> None:
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            if not chunk:
                break
            f.write(chunk)

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            logger.warning(f"Killing dump process {process.pid}")
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
