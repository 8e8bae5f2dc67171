import sys
import json
import pathlib
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_PROFILE = 'DEFAULT'
CONFIG_PATH = pathlib.Path().home() / '.rdb2dc/config.json'


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ExportConfig:
    """Settings for a single export run. folder_digits of None sizes item
    folders to the widest publication id."""
    database_url: str
    username: Optional[str] = None
    password: Optional[str] = None
    verbose: bool = False
    test_mode: bool = True
    folder_digits: Optional[int] = 4
    import_dir: str = 'import'
    pdf_dir: str = 'pdfs'

    def override(self, **kwargs):
        """Returns a copy with any non-None keyword values applied."""
        return replace(
            self, **{k: v for k, v in kwargs.items() if v is not None})


def parse_digits(value):
    """Folder width from a config or command line value: an integer, or
    "auto" for None."""
    if value is None or value == 'auto':
        return None
    try:
        digits = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f'Folder digits must be a number or "auto": {value}')
    if digits < 1:
        raise ConfigError(f'Folder digits must be positive: {value}')
    return digits


def find_config(path=None):
    """Find a config.json file: an explicit path, then a .rdb2dc folder in
    your home directory, then the location of the calling script."""
    if path is not None:
        configpath = pathlib.Path(path)
        if not configpath.exists():
            raise ConfigError(f'No config file found at {configpath}')
        return configpath
    configpath = CONFIG_PATH
    if not configpath.exists():
        configpath = pathlib.Path(sys.argv[0]).parent / 'config.json'
        if not configpath.exists():
            raise ConfigError('No config file found')
    return configpath


def load_config(path=None, profile=DEFAULT_PROFILE):
    configpath = find_config(path)
    try:
        with configpath.open(encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f'Invalid config file {configpath}: {e}')
    if profile not in config:
        raise ConfigError(f'No profile {profile} in {configpath}')
    section = config[profile]
    if 'Database' not in section:
        raise ConfigError(f'Profile {profile} has no Database')
    return ExportConfig(
        database_url=section['Database'],
        username=section.get('Username'),
        password=section.get('Password'),
        verbose=bool(section.get('Verbose', False)),
        test_mode=bool(section.get('TestMode', True)),
        folder_digits=parse_digits(section.get('FolderDigits', 4)),
        import_dir=section.get('ImportDir', 'import'),
        pdf_dir=section.get('PdfDir', 'pdfs'))


def write_config(database, username=None, password=None, test_mode=True,
                 folder_digits=4, profile=DEFAULT_PROFILE, path=None):
    """Write or amend a config.json file with the settings provided"""
    configpath = CONFIG_PATH if path is None else pathlib.Path(path)
    if configpath.exists():
        with configpath.open(encoding='utf-8') as f:
            config = json.load(f)
    else:
        configpath.parent.mkdir(parents=True, exist_ok=True)
        config = {}
    section = {'Database': database, 'TestMode': test_mode}
    if username is not None:
        section['Username'] = username
    if password is not None:
        section['Password'] = password
    section['FolderDigits'] = 'auto' if folder_digits is None else folder_digits
    config[profile] = section
    with configpath.open('w', encoding='utf-8') as f:
        json.dump(config, f, indent=1)
    return configpath
