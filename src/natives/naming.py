"""Platform-specific shared library filenames."""

from typing import Optional

from .osinfo import OsFamily, PlatformInfo, current_platform


__all__ = ['map_name']


def map_name(library_name: str, platform: Optional[PlatformInfo] = None) -> str:
    """Map a platform independent library name to a platform dependent filename.

    For ``library_name='yoga'``:

        - Windows x86: ``yoga.dll``, x86_64: ``yoga64.dll``
        - Unix x86: ``libyoga.so``, x86_64: ``libyoga64.so``
        - Unix ARM 32-bit: ``libyogaarmgnueabihf.so``, ARM 64-bit: ``libyogaarm64.so``
        - Mac x86: ``libyoga.dylib``, x86_64: ``libyoga64.dylib``

    Any other platform gets ``library_name`` back unchanged, so callers on
    such platforms pass a complete filename themselves.

    Args:
        library_name: Logical library name.
        platform: Platform to map for. Defaults to the host.

    Returns:
        The filename to extract and link.
    """
    if platform is None:
        platform = current_platform()

    bits = '64' if platform.is_64bit else ''
    family = platform.os_family

    if family is OsFamily.WINDOWS:
        return f'{library_name}{bits}.dll'
    if family is OsFamily.UNIX:
        arm = f'arm{platform.abi}' if platform.is_arm else ''
        return f'lib{library_name}{arm}{bits}.so'
    if family is OsFamily.MAC:
        return f'lib{library_name}{bits}.dylib'
    return library_name
