import os
import tomllib
from pathlib import Path


# Settings key constants
SETTING_API_URL = 'catalog.api_url'
SETTING_FALLBACK_API_URL = 'catalog.fallback_api_url'
SETTING_TIMEOUT = 'catalog.timeout'
SETTING_REPOSITORIES_PATH = 'repositories.path'
SETTING_BASELINE_PACK = 'repositories.baseline'
SETTING_LOG_PATH = 'logging.path'
SETTING_LOG_LEVEL = 'logging.level'

DEFAULT_SETTINGS_FILE = 'packmissing.toml'
DEFAULT_FALLBACK_API_URL = 'https://api.faithfulpack.net/v2/'
DEFAULT_REPOSITORIES_PATH = 'repos'
DEFAULT_BASELINE_PACK = 'default'

ENV_SETTINGS = 'PACKMISSING_SETTINGS'
ENV_API_URL = 'PACKMISSING_API_URL'


class Settings:
    """Settings manager for packmissing configuration.

    Provides a read-only key-value interface over a TOML file. The file is located from,
    in order: the explicit path, the PACKMISSING_SETTINGS environment variable, and
    packmissing.toml in the working directory. A missing file yields an empty settings
    dictionary, so every get() call returns its default.

    Example:
        settings = Settings()
        api_url = settings.api_url
        extensions = settings.get('filters.allowed_extensions', ['png', 'tga'])
    """

    def __init__(self, path: str | os.PathLike | None = None, data: dict | None = None):
        """Initialize settings from a TOML file or a pre-parsed dictionary.

        Args:
            path: Path to the settings file. An explicitly given path must exist.
            data: Settings dictionary to use instead of reading a file

        Raises:
            FileNotFoundError: An explicitly given settings file does not exist
        """
        self._settings = {}
        self._path: Path | None = None

        if data is not None:
            self._settings = data
            return

        if path is None:
            path = os.environ.get(ENV_SETTINGS)
            if path is None:
                candidate = Path.cwd() / DEFAULT_SETTINGS_FILE
                if not candidate.exists():
                    return
                path = candidate

        self._path = Path(path)
        with open(self._path, 'rb') as f:
            self._settings = tomllib.load(f)

    @property
    def path(self) -> Path | None:
        return self._path

    def get(self, key: str, default=None):
        """Get a setting value by key with optional default.

        Supports dot notation for nested keys (e.g., 'catalog.api_url' accesses
        settings['catalog']['api_url']). Returns the default value if the key path
        does not exist or if any intermediate value is not a dictionary.

        Examples:
            >>> settings.get('filters.ignored.java', [])
            ['/assets/minecraft/textures/font']
            >>> settings.get('nonexistent.key', 'fallback')
            'fallback'
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    @property
    def api_url(self) -> str | None:
        """Catalog base URL; the environment variable wins over the file."""
        return os.environ.get(ENV_API_URL) or self.get(SETTING_API_URL)

    @property
    def fallback_api_url(self) -> str:
        return self.get(SETTING_FALLBACK_API_URL, DEFAULT_FALLBACK_API_URL)

    @property
    def timeout(self) -> float | None:
        timeout = self.get(SETTING_TIMEOUT)
        return None if timeout is None else float(timeout)

    @property
    def repositories_path(self) -> Path:
        """Root directory for local clones, relative paths resolved against the working directory."""
        return Path.cwd() / self.get(SETTING_REPOSITORIES_PATH, DEFAULT_REPOSITORIES_PATH)

    @property
    def baseline_pack(self) -> str:
        return self.get(SETTING_BASELINE_PACK, DEFAULT_BASELINE_PACK)
