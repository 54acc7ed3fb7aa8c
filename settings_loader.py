"""
Settings loader for the load test.

Loads and validates YAML settings files that describe the application
server endpoint, how virtual users log in, page ids, pacing and load shape.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field, fields
from pathlib import Path
import yaml

import loadtest_config
from order_workflow import PageIds


@dataclass
class AuthSettings:
    """How virtual users authenticate."""
    windows: bool = loadtest_config.USE_WINDOWS_AUTHENTICATION
    user_name: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)


@dataclass
class TimingSettings:
    """Pacing of a virtual user."""
    think_delay: float = loadtest_config.THINK_DELAY
    entry_delay: float = loadtest_config.ENTRY_DELAY
    max_delay: float = loadtest_config.MAX_DELAY
    interaction_timeout_ms: int = loadtest_config.INTERACTION_TIMEOUT_MS


@dataclass
class LoadSettings:
    """Shape of the load."""
    users: int = loadtest_config.USERS
    iterations: Optional[int] = loadtest_config.ITERATIONS
    duration: Optional[float] = loadtest_config.DURATION
    seed: Optional[int] = None


@dataclass
class Settings:
    """
    Complete settings for a load-test run.
    """
    service_url: str = loadtest_config.SERVICE_URL
    auth: AuthSettings = field(default_factory=AuthSettings)
    ignore_certificate_errors: bool = loadtest_config.IGNORE_CERTIFICATE_ERRORS
    headless: bool = loadtest_config.HEADLESS
    pages: PageIds = field(default_factory=PageIds)
    timing: TimingSettings = field(default_factory=TimingSettings)
    load: LoadSettings = field(default_factory=LoadSettings)
    output_dir: str = loadtest_config.OUTPUT_DIR

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        """
        Create Settings from a dictionary (loaded from YAML).

        Args:
            data: Dictionary from YAML file

        Returns:
            Settings instance

        Raises:
            ValueError: If fields are missing or invalid
        """
        settings = cls()

        if 'service_url' in data:
            service_url = data['service_url']
            if not isinstance(service_url, str) or not service_url.strip():
                raise ValueError("'service_url' must be a non-empty string")
            settings.service_url = service_url

        # Parse authentication
        if 'auth' in data:
            auth_data = _section(data, 'auth')
            settings.auth = AuthSettings(
                windows=bool(auth_data.get('windows', settings.auth.windows)),
                user_name=auth_data.get('user_name'),
                password=auth_data.get('password'),
            )
        if not settings.auth.windows and not settings.auth.user_name:
            raise ValueError("'auth.user_name' is required unless 'auth.windows' is true")

        for flag in ('ignore_certificate_errors', 'headless'):
            if flag in data:
                setattr(settings, flag, bool(data[flag]))

        # Parse page ids
        if 'pages' in data:
            pages_data = _section(data, 'pages')
            known = {f.name for f in fields(PageIds)}
            unknown = set(pages_data) - known
            if unknown:
                raise ValueError(f"Unknown page names: {', '.join(sorted(unknown))}")
            for name, page_id in pages_data.items():
                if not isinstance(page_id, int) or page_id <= 0:
                    raise ValueError(f"'pages.{name}' must be a positive integer")
                setattr(settings.pages, name, page_id)

        # Parse timing
        if 'timing' in data:
            timing_data = _section(data, 'timing')
            for name in ('think_delay', 'entry_delay', 'max_delay'):
                if name in timing_data:
                    value = timing_data[name]
                    if not isinstance(value, (int, float)) or value < 0:
                        raise ValueError(f"'timing.{name}' must be a non-negative number")
                    setattr(settings.timing, name, float(value))
            if 'interaction_timeout_ms' in timing_data:
                settings.timing.interaction_timeout_ms = int(timing_data['interaction_timeout_ms'])

        # Parse load shape
        if 'load' in data:
            load_data = _section(data, 'load')
            users = load_data.get('users', settings.load.users)
            if not isinstance(users, int) or users < 1:
                raise ValueError("'load.users' must be a positive integer")
            iterations = load_data.get('iterations', settings.load.iterations)
            if iterations is not None and (not _is_int(iterations) or iterations < 1):
                raise ValueError("'load.iterations' must be a positive integer")
            duration = load_data.get('duration', settings.load.duration)
            if duration is not None and (not _is_number(duration) or duration <= 0):
                raise ValueError("'load.duration' must be a positive number of seconds")
            seed = load_data.get('seed')
            if seed is not None and not _is_int(seed):
                raise ValueError("'load.seed' must be an integer")
            settings.load = LoadSettings(
                users=users,
                iterations=iterations,
                duration=float(duration) if duration is not None else None,
                seed=seed,
            )
        if settings.load.iterations is None and settings.load.duration is None:
            raise ValueError("Either 'load.iterations' or 'load.duration' must be set")

        if 'output_dir' in data:
            settings.output_dir = str(data['output_dir'])

        return settings


# bool is an int subclass; YAML "yes" must not pass as a count
def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data[name]
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return section


def load_settings(file_path: str) -> Settings:
    """
    Load settings from a YAML file.

    Args:
        file_path: Path to YAML settings file

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If settings are invalid
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {file_path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError("Settings file must contain a YAML dictionary")

    return Settings.from_dict(data)


def validate_settings(settings: Settings) -> List[str]:
    """
    Validate settings and return a list of warnings (not errors).

    Args:
        settings: Settings to validate

    Returns:
        List of warning messages (empty if no warnings)
    """
    warnings = []

    if not settings.service_url.startswith(('http://', 'https://')):
        warnings.append(f"Service URL may be invalid (missing http/https): {settings.service_url}")

    if not settings.auth.windows and not settings.auth.password:
        warnings.append(f"No password configured for user {settings.auth.user_name}")

    if settings.load.users > 200:
        warnings.append(f"users is very high for browser sessions: {settings.load.users}")

    if settings.timing.think_delay == 0:
        warnings.append("think_delay is 0 - virtual users will not pause between lines")

    if settings.timing.max_delay < settings.timing.think_delay:
        warnings.append("max_delay is lower than think_delay - pauses will be capped")

    return warnings
