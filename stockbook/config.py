import os
import re
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / '.env', override=False)

LOCAL_ENV = BASE_DIR / '.env.local'
if LOCAL_ENV.exists():
    load_dotenv(LOCAL_ENV, override=True)


def _flag(name: str, default: str = 'off') -> bool:
    return os.getenv(name, default).strip().lower() in {'1', 'true', 'yes', 'on'}


def resolve_base_path(app_type: str, company_name: str) -> Path:
    """Web builds keep their data beside the working directory; desktop builds
    use a per-company folder under the roaming app-data directory."""
    override = os.getenv('BASE_PATH')
    if override:
        return Path(override).expanduser().resolve()
    if app_type != 'desktop':
        return Path.cwd()
    appdata = os.getenv('APPDATA') or str(Path.home() / 'AppData' / 'Roaming')
    return Path(appdata) / re.sub(r'\s+', '', company_name)


class BaseConfig:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    APP_TYPE = os.getenv('APP_TYPE', 'web').lower()
    COMPANY_NAME = os.getenv('COMPANY_NAME', 'Vikram Steels')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')

    BASE_PATH = resolve_base_path(APP_TYPE, COMPANY_NAME)
    DATA_DIR = Path(os.getenv('DATA_DIR') or BASE_PATH / 'data')
    BACKUP_DIR = Path(os.getenv('BACKUP_DIR') or BASE_PATH / 'backups')

    ON_CORRUPT_DATA = os.getenv('ON_CORRUPT_DATA', 'reset_to_empty')
    JSON_PROTECTION = _flag('JSON_PROTECTION')

    SCHEDULER_ENABLED = _flag('SCHEDULER_ENABLED', 'on')
    BACKUP_HOUR = int(os.getenv('BACKUP_HOUR', '23'))
    BACKUP_MINUTE = int(os.getenv('BACKUP_MINUTE', '59'))
    BACKUP_KEEP = int(os.getenv('BACKUP_KEEP', '7'))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()


class DevConfig(BaseConfig):
    DEBUG = True


class ProdConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING').upper()


class TestConfig(BaseConfig):
    TESTING = True
    SCHEDULER_ENABLED = False
    JSON_PROTECTION = False
    ON_CORRUPT_DATA = 'reset_to_empty'


Config = DevConfig if os.getenv('FLASK_ENV') != 'production' else ProdConfig
