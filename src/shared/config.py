"""Application settings loaded from environment variables."""

import os
import logging
from pathlib import Path
from typing import Mapping, Optional
from pydantic import BaseModel, Field

VALID_BACKENDS = ["file", "memory", "s3"]


class Settings(BaseModel):
    """Runtime configuration."""

    storage_backend: str = "file"
    data_dir: Path = Field(default_factory=lambda: Path.home() / '.expense-tracker')
    storage_bucket: Optional[str] = None
    storage_prefix: str = "expense-tracker/"
    export_dir: Optional[Path] = None
    default_currency: str = "USD"
    budget_warning_threshold: float = 80.0
    log_level: str = "INFO"

    @property
    def resolved_export_dir(self) -> Path:
        """Directory for CSV exports, defaulting under the data directory."""
        return self.export_dir or self.data_dir / 'exports'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Settings instance
        """
        env = os.environ if environ is None else environ
        values = {}

        if env.get('STORAGE_BACKEND'):
            values['storage_backend'] = env['STORAGE_BACKEND'].lower()
        if env.get('DATA_DIR'):
            values['data_dir'] = Path(env['DATA_DIR']).expanduser()
        if env.get('STORAGE_BUCKET'):
            values['storage_bucket'] = env['STORAGE_BUCKET']
        if env.get('STORAGE_PREFIX') is not None:
            values['storage_prefix'] = env['STORAGE_PREFIX']
        if env.get('EXPORT_DIR'):
            values['export_dir'] = Path(env['EXPORT_DIR']).expanduser()
        if env.get('DEFAULT_CURRENCY'):
            values['default_currency'] = env['DEFAULT_CURRENCY'].upper()
        if env.get('BUDGET_WARNING_THRESHOLD'):
            values['budget_warning_threshold'] = env['BUDGET_WARNING_THRESHOLD']
        if env.get('LOG_LEVEL'):
            values['log_level'] = env['LOG_LEVEL'].upper()

        return cls(**values)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger."""
    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logger = logging.getLogger()
    logger.setLevel(level)
