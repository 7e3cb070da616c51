"""
Payload Acquirer

Bootstraps the fetcher executable and uses it to install the payload package
into the build directory.
"""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import httpx

from config import DEFAULT_BUILD_TIMEOUT_SECONDS, DEFAULT_FETCHER_URI, Config
from buildstrap.errors import AcquisitionError, ProcessTimeoutError
from buildstrap.models import ExitCode
from buildstrap.processes import execute

logger = logging.getLogger(__name__)

Runner = Callable[..., Awaitable[ExitCode]]

DOWNLOAD_TIMEOUT_SECONDS = 120.0


class PayloadAcquirer:
    """
    Acquire the fetcher and the payload package.

    Layout of the build directory:
    - {build_dir}/{fetcher.executable_name}
    - {build_dir}/{payload.package_name}/ holding the payload executable
    """

    def __init__(
        self,
        config: Config,
        client: Optional[httpx.AsyncClient] = None,
        runner: Runner = execute,
    ):
        """
        Initialize the acquirer.

        Args:
            config: Run configuration
            client: HTTP client for the fetcher download (one per download when None)
            runner: Process runner used for the fetcher
        """
        self.config = config
        self._client = client
        self._runner = runner

    def download_uri(self) -> str:
        """The configured fetcher download URI, or the default when unset or invalid."""
        configured = self.config.fetcher.download_uri
        if configured and configured.strip():
            try:
                if httpx.URL(configured.strip()).is_absolute_url:
                    logger.debug("Downloading fetcher from user specified URI '%s'", configured)
                    return configured.strip()
            except httpx.InvalidURL:
                pass
            logger.warning("Fetcher download URI '%s' is not an absolute URI, using the default", configured)

        logger.debug("Downloading fetcher from default URI '%s'", DEFAULT_FETCHER_URI)
        return DEFAULT_FETCHER_URI

    async def ensure_fetcher(self, build_dir: Path) -> Path:
        """
        Make sure a fetcher executable exists.

        Args:
            build_dir: Build directory holding the fetcher

        Returns:
            Path to the fetcher executable

        Raises:
            AcquisitionError: If the fetcher cannot be downloaded and no copy exists
        """
        custom_path = self.config.fetcher.custom_path
        if custom_path and custom_path.strip():
            if Path(custom_path).is_file():
                logger.info("Using custom fetcher '%s'", custom_path)
                return Path(custom_path)
            logger.warning("Custom fetcher '%s' does not exist, using the default fetcher", custom_path)

        target = Path(build_dir) / self.config.fetcher.executable_name
        update = self.config.fetcher.update_enabled

        if not target.exists():
            try:
                await self._download(self.download_uri(), target)
                update = False
            except (httpx.HTTPError, OSError) as e:
                if not target.exists():
                    raise AcquisitionError(f"Could not download the fetcher to '{target}': {e}") from e
                update = True
                logger.warning("Fetcher could not be downloaded, using existing '%s': %s", target, e)

        if update:
            await self._self_update(target)

        if not target.exists():
            raise AcquisitionError(f"Fetcher '{target}' does not exist")

        return target

    async def _download(self, uri: str, target: Path) -> None:
        temp_file = target.with_name(target.name + ".tmp")
        target.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Downloading '%s' to '%s'", uri, temp_file)

        if self._client is not None:
            await self._stream_to_file(self._client, uri, temp_file)
        else:
            async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True) as client:
                await self._stream_to_file(client, uri, temp_file)

        os.replace(temp_file, target)
        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        logger.debug("Moved '%s' to '%s'", temp_file, target)

    @staticmethod
    async def _stream_to_file(client: httpx.AsyncClient, uri: str, temp_file: Path) -> None:
        try:
            async with client.stream("GET", uri) as response:
                response.raise_for_status()
                with open(temp_file, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except BaseException:
            temp_file.unlink(missing_ok=True)
            raise

    async def _self_update(self, fetcher: Path) -> None:
        try:
            exit_code = await self._runner(fetcher, ["update", "-self"])
            if not exit_code.is_success:
                logger.error("Fetcher self-update exited with %s", exit_code)
        except (OSError, ProcessTimeoutError) as e:
            logger.error("Fetcher self-update failed: %s", e)

    def install_arguments(self, build_dir: Path, prerelease: bool) -> List[str]:
        """Fetcher arguments installing the payload package into the build directory."""
        payload = self.config.payload
        arguments = [
            "install",
            payload.package_name,
            "-ExcludeVersion",
            "-OutputDirectory",
            str(build_dir),
        ]

        if logger.isEnabledFor(logging.DEBUG):
            arguments.extend(["-Verbosity", "detailed"])

        if payload.source:
            logger.info("Using custom payload source '%s'", payload.source)
            arguments.extend(["-Source", payload.source])
        else:
            logger.debug("Using default payload sources")

        if payload.no_cache:
            arguments.append("-NoCache")

        if payload.version:
            logger.info("Installing payload version '%s'", payload.version)
            arguments.extend(["-Version", payload.version])
        elif prerelease:
            logger.info("Allowing prerelease payload versions")
            arguments.append("-Prerelease")
        else:
            logger.debug("Installing the latest stable payload version")

        return arguments

    async def install_payload(
        self,
        build_dir: Path,
        fetcher: Path,
        prerelease: Optional[bool] = None,
    ) -> Optional[Path]:
        """
        Install or refresh the payload package.

        Args:
            build_dir: Build directory
            fetcher: Fetcher executable
            prerelease: Explicit prerelease choice, the configuration decides when None

        Returns:
            Payload directory, or None when the install failed
        """
        target = Path(build_dir) / self.config.payload.package_name

        reinstall = not target.exists() or self.config.payload.reinstall_enabled
        if not reinstall:
            logger.info("Using existing payload '%s'", target)
            return target

        if target.exists():
            logger.debug("Deleting existing payload directory '%s'", target)
            shutil.rmtree(target)
        target.mkdir(parents=True)

        if prerelease is None:
            prerelease = bool(self.config.payload.allow_prerelease)

        arguments = self.install_arguments(Path(build_dir), prerelease)

        try:
            exit_code = await self._runner(fetcher, arguments, timeout=DEFAULT_BUILD_TIMEOUT_SECONDS)
        except ProcessTimeoutError as e:
            logger.error("Payload install timed out: %s", e)
            return None

        if not exit_code.is_success:
            logger.error("Payload install of '%s' exited with %s", self.config.payload.package_name, exit_code)
            return None

        logger.info("Installed payload '%s'", target)
        return target


__all__ = ["PayloadAcquirer", "DOWNLOAD_TIMEOUT_SECONDS"]
