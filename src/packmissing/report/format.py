"""Rendering of path lists into human-readable reports."""

import re

# Content root removed wherever it occurs
ASSETS_PREFIX = '/assets/minecraft'

# Removed only at the start of a line so realms/optifine textures keep their full path
_LINE_TEXTURES_PREFIX = re.compile(r'^/textures/', re.MULTILINE)


def format_results(paths: list[str]) -> str:
    """Format relative texture paths as one path per line.

    Backslashes become forward slashes, every "/assets/minecraft" is removed and a leading
    "/textures/" is stripped from each line.

    Example:
        >>> format_results(["/assets/minecraft/textures/block/stone.png", "/assets/realms/textures/x.png"])
        'block/stone.png\\n/assets/realms/textures/x.png'
    """
    text = '\n'.join(paths).replace('\\', '/').replace(ASSETS_PREFIX, '')
    return _LINE_TEXTURES_PREFIX.sub('', text)


def format_report(paths: list[str]) -> bytes:
    """UTF-8 encoded report for a path list."""
    return format_results(paths).encode('utf-8')
