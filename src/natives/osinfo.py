"""Platform classification consumed by the loader.

The loader only needs a handful of answers about the running platform: the OS
family, the bitness, whether the CPU is ARM, the ABI label and where
OS-specific fallback resources live. :class:`PlatformInfo` is that contract;
:class:`HostPlatform` answers it for the current interpreter.
"""

from __future__ import annotations

import enum
import platform
import sys
import sysconfig
from dataclasses import dataclass
from typing import Protocol


__all__ = ['OsFamily', 'PlatformInfo', 'HostPlatform', 'current_platform']


class OsFamily(enum.Enum):
    """Operating system families the loader distinguishes."""

    WINDOWS = 'windows'
    UNIX = 'linux'
    MAC = 'mac'
    ANDROID = 'android'
    IOS = 'ios'
    UNKNOWN = 'unknown'


# Resource subtree searched when a path is missing at the bundle root
_FALLBACK_ROOTS = {
    OsFamily.WINDOWS: 'natives/windows/',
    OsFamily.UNIX: 'natives/linux/',
    OsFamily.MAC: 'natives/mac/',
    OsFamily.ANDROID: 'natives/android/',
    OsFamily.IOS: 'natives/ios/',
    OsFamily.UNKNOWN: '',
}


class PlatformInfo(Protocol):
    """What the loader asks about the platform. All answers are pure."""

    @property
    def os_family(self) -> OsFamily: ...

    @property
    def is_64bit(self) -> bool: ...

    @property
    def is_arm(self) -> bool: ...

    @property
    def abi(self) -> str: ...

    @property
    def fallback_root(self) -> str: ...

    @property
    def description(self) -> str: ...


@dataclass(frozen=True)
class HostPlatform:
    """Snapshot of the platform the interpreter runs on.

    Use :meth:`detect` for the real host; construct directly to describe
    another target (tests do this to exercise every naming branch).
    """

    os_family: OsFamily
    is_64bit: bool
    is_arm: bool = False
    abi: str = ''
    os_name: str = ''

    @property
    def fallback_root(self) -> str:
        return _FALLBACK_ROOTS[self.os_family]

    @property
    def description(self) -> str:
        name = self.os_name or self.os_family.value
        return f"{name}, {'64-bit' if self.is_64bit else '32-bit'}"

    @classmethod
    def detect(cls) -> HostPlatform:
        """Classify the running interpreter."""
        machine = platform.machine().lower()
        is_arm = machine.startswith('arm') or machine.startswith('aarch')
        return cls(
            os_family=_detect_family(),
            is_64bit=sys.maxsize > 2**32,
            is_arm=is_arm,
            abi=_detect_abi() if is_arm else '',
            os_name=platform.system() or sys.platform,
        )


def _detect_family() -> OsFamily:
    plat = sys.platform
    if plat == 'android' or hasattr(sys, 'getandroidapilevel'):
        return OsFamily.ANDROID
    if plat == 'ios':
        return OsFamily.IOS
    if plat in ('win32', 'cygwin', 'msys'):
        return OsFamily.WINDOWS
    if plat == 'darwin':
        return OsFamily.MAC
    if plat.startswith(('linux', 'freebsd', 'openbsd', 'netbsd', 'sunos', 'aix')):
        return OsFamily.UNIX
    return OsFamily.UNKNOWN


def _detect_abi() -> str:
    """Return the float ABI label of a 32-bit ARM userland, e.g. ``gnueabihf``.

    64-bit ARM has no such label and yields an empty string.
    """
    multiarch = sysconfig.get_config_var('MULTIARCH') or ''
    suffix = multiarch.rsplit('-', 1)[-1]
    if suffix.startswith('gnueabi'):
        return suffix
    return ''


_current = None


def current_platform() -> HostPlatform:
    """Return the cached classification of the host."""
    global _current
    if _current is None:
        _current = HostPlatform.detect()
    return _current
