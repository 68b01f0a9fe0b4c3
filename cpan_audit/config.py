"""Runtime configuration for the cpan-audit command line."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DATABASE_ENV_VAR = "CPAN_AUDIT_DB"
WORKERS_ENV_VAR = "CPAN_AUDIT_WORKERS"


@dataclass
class AuditConfig:
    """Settings shared by all CLI commands."""

    database_path: Optional[Path] = None
    verbose: bool = False
    no_color: bool = False
    ascii_only: bool = False
    max_workers: int = 1
    json_output: Optional[Path] = None
    performance: bool = False

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "AuditConfig":
        """Build a config from environment variables, with explicit overrides winning.

        ``None`` overrides are ignored so unset CLI options fall back to the
        environment.
        """
        environ = os.environ if environ is None else environ

        values = {}
        if environ.get(DATABASE_ENV_VAR):
            values["database_path"] = Path(environ[DATABASE_ENV_VAR])
        if environ.get(WORKERS_ENV_VAR):
            try:
                values["max_workers"] = int(environ[WORKERS_ENV_VAR])
            except ValueError as e:
                raise ValueError(f"{WORKERS_ENV_VAR} must be an integer") from e

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
