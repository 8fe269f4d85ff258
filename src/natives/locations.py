"""Find a directory where an extracted library can be written and executed.

Search order:
    1. System temp directory, namespaced by prefix and user name
    2. A fresh OS-issued temp path, reused as a directory
    3. User home directory
    4. ``.temp`` under the current working directory
    5. Candidate 1 regardless, when running inside an app sandbox container

Probing never raises: a location that cannot be created, written or made
executable is simply skipped.
"""

from __future__ import annotations

import getpass
import logging
import os
import stat
import tempfile
import uuid
from pathlib import Path
from typing import Iterator, Mapping, Optional, Union

from .config import LoaderConfig


__all__ = ['WritableLocationResolver', 'can_execute']

logger = logging.getLogger("natives.locations")


def can_execute(path: Union[str, Path]) -> bool:
    """Return True if ``path`` is, or can be made, executable by its owner."""
    try:
        if os.access(path, os.X_OK):
            return True
        mode = os.stat(path).st_mode
        os.chmod(path, mode | stat.S_IXUSR)
        return os.access(path, os.X_OK)
    except OSError as e:
        logger.debug(f"Cannot make {path} executable: {e}")
        return False


class WritableLocationResolver:
    """Candidate extraction locations and their writability probe.

    Args:
        config: Supplies directory prefixes and the sandbox marker name.
        temp_root: System temp directory. Defaults to ``tempfile.gettempdir()``.
        home: User home directory. Defaults to ``Path.home()``.
        cwd: Base of the relative candidate. Defaults to the working directory.
        environ: Environment checked for the sandbox marker.
    """

    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        temp_root: Optional[Path] = None,
        home: Optional[Path] = None,
        cwd: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config = config if config is not None else LoaderConfig()
        self._temp_root = temp_root
        self._home = home
        self._cwd = cwd
        self._environ = environ

    # =========================================================================
    # Candidates
    # =========================================================================

    def ideal_candidate(self, dir_name: str, file_name: str) -> Optional[Path]:
        """Temp directory with the user name in the path (candidate 1)."""
        try:
            temp_root = self._temp_root or Path(tempfile.gettempdir())
            user = getpass.getuser()
        except (OSError, KeyError) as e:
            logger.debug(f"Cannot build temp candidate: {e}")
            return None
        return temp_root / f"{self.config.temp_prefix}{user}" / dir_name / file_name

    def candidates(self, dir_name: str, file_name: str) -> Iterator[Path]:
        """Yield candidate file paths in priority order.

        Generated lazily: the second candidate creates and deletes a temp file,
        which only happens if the first candidate was rejected.
        """
        ideal = self.ideal_candidate(dir_name, file_name)
        if ideal is not None:
            yield ideal

        system_temp = self._system_temp_candidate(dir_name, file_name)
        if system_temp is not None:
            yield system_temp

        try:
            home = self._home or Path.home()
        except (OSError, RuntimeError, KeyError) as e:
            logger.debug(f"No home directory candidate: {e}")
        else:
            yield home / self.config.home_dir_name / dir_name / file_name

        try:
            cwd = self._cwd or Path.cwd()
        except OSError as e:
            logger.debug(f"No working directory candidate: {e}")
        else:
            yield cwd / self.config.relative_dir / dir_name / file_name

    def _system_temp_candidate(self, dir_name: str, file_name: str) -> Optional[Path]:
        try:
            fd, name = tempfile.mkstemp(prefix=dir_name, dir=self._temp_root)
            os.close(fd)
            os.remove(name)
        except OSError as e:
            logger.debug(f"No system temp candidate: {e}")
            return None
        return Path(name) / file_name

    def in_sandbox(self) -> bool:
        environ = os.environ if self._environ is None else self._environ
        return environ.get(self.config.sandbox_env) is not None

    def sandbox_fallback(self, dir_name: str, file_name: str) -> Optional[Path]:
        """Candidate 1 when the sandbox marker is set, assuming access is granted."""
        if not self.in_sandbox():
            return None
        return self.ideal_candidate(dir_name, file_name)

    def find_writable(self, dir_name: str, file_name: str) -> Optional[Path]:
        """Return a path to a file that can be written, or None.

        Tries every candidate in order and verifies writing succeeds.
        """
        for candidate in self.candidates(dir_name, file_name):
            if self.can_write(candidate):
                return candidate
        return self.sandbox_fallback(dir_name, file_name)

    # =========================================================================
    # Probing
    # =========================================================================

    def can_write(self, file: Path) -> bool:
        """Return True if the parents of ``file`` can be created and it can be written.

        An existing ``file`` is never overwritten; a random sibling is probed
        instead.
        """
        file = Path(file)
        parent = file.parent
        try:
            if file.exists():
                if not os.access(file, os.W_OK) or not self.can_execute(file):
                    return False
                test_file = parent / uuid.uuid4().hex
            else:
                parent.mkdir(parents=True, exist_ok=True)
                if not parent.is_dir():
                    return False
                test_file = file
        except OSError as e:
            logger.debug(f"Cannot prepare {parent}: {e}")
            return False

        try:
            test_file.open('wb').close()
            return self.can_execute(test_file)
        except OSError as e:
            logger.debug(f"Cannot write {test_file}: {e}")
            return False
        finally:
            try:
                test_file.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.debug(f"Cannot remove probe file {test_file}: {e}")

    def can_execute(self, file: Path) -> bool:
        return can_execute(file)
