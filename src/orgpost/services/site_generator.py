"""Static-site generator invocation (build, preview server, clean)."""

import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional

from orgpost.models.config import SiteConfig
from orgpost.services.exceptions import SiteGeneratorError
from orgpost.utils.logging import get_logger


logger = get_logger(__name__)


class SiteGenerator:
    """Runs the external site generator inside the project directory.

    Example:
        >>> generator = SiteGenerator(SiteConfig(), Path("~/blog").expanduser())
        >>> generator.build()
    """

    def __init__(
        self,
        config: SiteConfig,
        project_dir: Path,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        """
        Args:
            config: Generator command and output directories
            project_dir: Site project root (where the generator runs)
            runner: Process runner (subprocess.run signature)
            which: Executable lookup (shutil.which signature)
        """
        self.config = config
        self.project_dir = project_dir
        self._runner = runner
        self._which = which

    @property
    def destination(self) -> Path:
        return self.project_dir / self.config.destination

    def command(self, *args: str) -> list[str]:
        """Full command line for the configured generator plus ``args``.

        Raises:
            SiteGeneratorError: If the command is empty or its executable is not on PATH
        """
        base = shlex.split(self.config.command)
        if not base:
            raise SiteGeneratorError([], "site generator command is empty")
        executable = self._which(base[0])
        if executable is None:
            raise SiteGeneratorError(base + list(args), f"{base[0]} not found on PATH")
        return [executable, *base[1:], *args]

    def build(self) -> list[Path]:
        """Build the site into the destination and copy extra files there.

        Returns:
            Extra files copied into the destination

        Raises:
            SiteGeneratorError: If the generator fails
        """
        self._run(self.command("--destination", self.config.destination))

        copied = []
        for extra in self.config.extra_files:
            source = self.project_dir / extra
            if not source.is_file():
                logger.warning("extra_file_missing", path=str(source))
                continue
            self.destination.mkdir(parents=True, exist_ok=True)
            target = self.destination / source.name
            shutil.copy2(source, target)
            copied.append(target)
            logger.info("extra_file_copied", source=str(source), target=str(target))
        return copied

    def serve(self) -> None:
        """Run the preview server until it exits or the user interrupts it."""
        try:
            self._run(self.command("server"))
        except KeyboardInterrupt:
            logger.info("site_server_stopped")

    def clean(self) -> list[Path]:
        """Remove generated site directories.

        Returns:
            Directories that existed and were removed
        """
        removed = []
        for name in (self.config.public_dir, self.config.destination):
            path = self.project_dir / name
            if path.is_dir():
                shutil.rmtree(path)
                removed.append(path)
                logger.info("site_dir_removed", path=str(path))
        return removed

    def _run(self, command: list[str]) -> None:
        logger.info("site_generator_started", command=command, cwd=str(self.project_dir))
        try:
            result = self._runner(command, cwd=self.project_dir, check=False)
        except OSError as e:
            raise SiteGeneratorError(command, f"could not start: {e}") from e

        if result.returncode != 0:
            logger.error("site_generator_failed", command=command, returncode=result.returncode)
            raise SiteGeneratorError(
                command, f"exited with status {result.returncode}", result.returncode
            )
        logger.info("site_generator_finished", command=command)
