"""
Project configuration for xcanalyzer.

Configuration is layered: built-in defaults, then a config file
(``config.json`` or a YAML file with the same keys), then environment
variables, then command line overrides applied by the CLI.

Example ``config.json``::

    {
      "project": {
        "workspace": "MyApp.xcworkspace",
        "schemes": ["MyApp", "MyAppTests"],
        "configurations": ["Debug"]
      },
      "analysis": {
        "enabled": true,
        "level": "deep",
        "max_issues": 50,
        "fail_on_warnings": false,
        "output_formats": ["html", "json", "sarif"]
      },
      "ci": {
        "platform": "github",
        "cache_enabled": true,
        "parallel_analysis": true
      }
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .exceptions import ConfigError
from .models import Severity

logger = logging.getLogger(__name__)

ANALYSIS_LEVELS = ('quick', 'standard', 'deep', 'security')
OUTPUT_FORMATS = ('console', 'json', 'csv', 'sarif', 'html', 'xlsx')
CI_PLATFORMS = ('github', 'gitlab', 'jenkins', 'none')

DEFAULT_CONFIG_NAMES = ('config.json', '.xcanalyzer.json', '.xcanalyzer.yml', '.xcanalyzer.yaml')

DEFAULT_EXCLUDE_PATHS = [
    '*/Pods/*',
    '*/Carthage/*',
    '*/DerivedData/*',
    '*/.build/*',
]

# Environment variable -> quality gate field
THRESHOLD_ENV_VARS = {
    'MAX_CRITICAL_ISSUES': 'max_critical_issues',
    'MAX_HIGH_ISSUES': 'max_high_issues',
    'MAX_MEDIUM_ISSUES': 'max_medium_issues',
    'MAX_LOW_ISSUES': 'max_low_issues',
}


@dataclass
class ProjectSettings:
    workspace: Optional[str] = None
    project: Optional[str] = None
    schemes: List[str] = field(default_factory=list)
    configurations: List[str] = field(default_factory=lambda: ['Debug'])
    team_id: Optional[str] = None
    destination: Optional[str] = None
    sdk: Optional[str] = None

    @property
    def container(self) -> Optional[str]:
        """The workspace if set, otherwise the project"""
        return self.workspace or self.project


@dataclass
class AnalysisSettings:
    enabled: bool = True
    level: str = 'standard'
    max_issues: Optional[int] = None
    fail_on_warnings: bool = False
    output_formats: List[str] = field(default_factory=lambda: ['console', 'json'])
    output_dir: str = 'build/xcanalyzer'
    exclude_paths: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATHS))
    disabled_checkers: List[str] = field(default_factory=list)
    severity_overrides: Dict[str, str] = field(default_factory=dict)
    checkers_dir: Optional[str] = None
    timeout_seconds: int = 3600


@dataclass
class QualityGateSettings:
    max_critical_issues: Optional[int] = 0
    max_high_issues: Optional[int] = None
    max_medium_issues: Optional[int] = None
    max_low_issues: Optional[int] = None
    new_issues_only: bool = False
    baseline: Optional[str] = None


@dataclass
class CISettings:
    platform: str = 'none'
    cache_enabled: bool = True
    parallel_analysis: bool = False
    max_workers: int = 2


@dataclass
class Config:
    """Effective xcanalyzer configuration"""
    project: ProjectSettings = field(default_factory=ProjectSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    quality_gate: QualityGateSettings = field(default_factory=QualityGateSettings)
    ci: CISettings = field(default_factory=CISettings)
    source_path: Optional[str] = None

    @property
    def project_root(self) -> str:
        """Directory that project paths are relative to"""
        if self.source_path:
            return str(Path(self.source_path).resolve().parent)
        return str(Path.cwd())

    def resolve_path(self, value: Optional[str]) -> Optional[str]:
        """Resolve a config-relative path"""
        if not value:
            return value
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = Path(self.project_root) / path
        return str(path)

    def validate(self) -> None:
        """Check value ranges; raises ConfigError"""
        if self.analysis.level not in ANALYSIS_LEVELS:
            raise ConfigError(
                f"Unknown analysis level '{self.analysis.level}'. "
                f"Expected one of: {', '.join(ANALYSIS_LEVELS)}"
            )

        for fmt in self.analysis.output_formats:
            if fmt not in OUTPUT_FORMATS:
                raise ConfigError(
                    f"Unknown output format '{fmt}'. Expected one of: {', '.join(OUTPUT_FORMATS)}"
                )

        if self.ci.platform not in CI_PLATFORMS:
            raise ConfigError(
                f"Unknown CI platform '{self.ci.platform}'. Expected one of: {', '.join(CI_PLATFORMS)}"
            )

        for name in ('max_critical_issues', 'max_high_issues', 'max_medium_issues', 'max_low_issues'):
            _check_limit(f"quality_gate.{name}", getattr(self.quality_gate, name))
        _check_limit('analysis.max_issues', self.analysis.max_issues)

        if not self.analysis.timeout_seconds:
            raise ConfigError("analysis.timeout_seconds must be positive")
        if not self.ci.max_workers:
            raise ConfigError("ci.max_workers must be at least 1")

        for checker, severity in self.analysis.severity_overrides.items():
            try:
                Severity.parse(severity)
            except ValueError as e:
                raise ConfigError(f"analysis.severity_overrides[{checker}]: {e}") from None

    def validate_for_analysis(self) -> None:
        """Additional checks needed before running xcodebuild"""
        self.validate()
        if not self.project.container:
            raise ConfigError("No workspace or project configured (project.workspace / --workspace)")
        if self.project.workspace and self.project.project:
            raise ConfigError("Configure either project.workspace or project.project, not both")
        if not self.project.schemes:
            raise ConfigError("No schemes configured (project.schemes / --scheme)")
        if not self.project.configurations:
            raise ConfigError("No build configurations configured (project.configurations)")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop('source_path', None)
        return data


def _check_limit(name: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer or null, got {value!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('1', 'true', 'yes', 'on'):
        return True
    if isinstance(value, str) and value.strip().lower() in ('0', 'false', 'no', 'off'):
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _as_list(name: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigError(f"{name} must be a list of strings, got {value!r}")


def _as_optional_int(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in ('', 'none', 'null', 'unlimited'):
            return None
        try:
            value = int(text)
        except ValueError:
            raise ConfigError(f"{name} must be an integer, got {text!r}") from None
    _check_limit(name, value)
    return value


_LIST_FIELDS = {
    'project': ('schemes', 'configurations'),
    'analysis': ('output_formats', 'exclude_paths', 'disabled_checkers'),
}
_BOOL_FIELDS = {
    'analysis': ('enabled', 'fail_on_warnings'),
    'quality_gate': ('new_issues_only',),
    'ci': ('cache_enabled', 'parallel_analysis'),
}
_INT_FIELDS = {
    'analysis': ('max_issues', 'timeout_seconds'),
    'quality_gate': ('max_critical_issues', 'max_high_issues', 'max_medium_issues', 'max_low_issues'),
    'ci': ('max_workers',),
}


def _apply_section(target: Any, section: str, values: Mapping[str, Any]) -> None:
    if not isinstance(values, Mapping):
        raise ConfigError(f"'{section}' must be an object")

    for key, value in values.items():
        if not hasattr(target, key):
            logger.warning(f"Ignoring unknown config key: {section}.{key}")
            continue

        name = f"{section}.{key}"
        if key in _LIST_FIELDS.get(section, ()):
            value = _as_list(name, value)
        elif key in _BOOL_FIELDS.get(section, ()):
            value = _as_bool(name, value)
        elif key in _INT_FIELDS.get(section, ()):
            value = _as_optional_int(name, value)
        elif key == 'severity_overrides':
            if not isinstance(value, Mapping):
                raise ConfigError(f"{name} must be an object")
            value = {str(k): str(v).lower() for k, v in value.items()}
        elif key in ('level', 'platform') and isinstance(value, str):
            value = value.lower()

        setattr(target, key, value)


def config_from_dict(data: Mapping[str, Any], source_path: Optional[str] = None) -> Config:
    """Build a Config from parsed file contents"""
    config = Config(source_path=source_path)
    if not data:
        return config
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration root must be an object")

    sections = {
        'project': config.project,
        'analysis': config.analysis,
        'quality_gate': config.quality_gate,
        'ci': config.ci,
    }
    for section, values in data.items():
        if section not in sections:
            logger.warning(f"Ignoring unknown config section: {section}")
            continue
        _apply_section(sections[section], section, values or {})

    return config


def apply_environment(config: Config, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Apply MAX_*_ISSUES and XCANALYZER_* environment overrides"""
    environ = os.environ if environ is None else environ

    for var, attr in THRESHOLD_ENV_VARS.items():
        if var in environ:
            value = _as_optional_int(var, environ[var])
            logger.debug(f"{var}={value} overrides quality_gate.{attr}")
            setattr(config.quality_gate, attr, value)

    if environ.get('XCANALYZER_LEVEL'):
        config.analysis.level = environ['XCANALYZER_LEVEL'].lower()
    if environ.get('XCANALYZER_OUTPUT_DIR'):
        config.analysis.output_dir = environ['XCANALYZER_OUTPUT_DIR']

    return config


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Look for a config file in the given directory"""
    directory = start or Path.cwd()
    for name in DEFAULT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a JSON or YAML config file"""
    try:
        text = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        if path.suffix.lower() in ('.yml', '.yaml'):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text) if text.strip() else {}
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    return data or {}


def load_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load the effective configuration.

    Args:
        path: Explicit config file. When omitted, the current directory is
            searched for one of DEFAULT_CONFIG_NAMES; defaults are used if
            none exists.
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated Config
    """
    if path:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file()

    if config_path:
        logger.info(f"Loading configuration from {config_path}")
        config = config_from_dict(read_config_file(config_path), str(config_path))
    else:
        logger.info("No config file found, using defaults")
        config = Config()

    apply_environment(config, environ)
    config.validate()
    return config


def default_config(
    workspace: Optional[str] = None,
    project: Optional[str] = None,
    schemes: Optional[List[str]] = None,
    configurations: Optional[List[str]] = None,
    team_id: Optional[str] = None,
    platform: str = 'none',
) -> Config:
    """Starter configuration used by ``xcanalyzer init``"""
    config = Config()
    config.project.workspace = workspace
    config.project.project = None if workspace else project
    config.project.schemes = list(schemes or [])
    if configurations:
        config.project.configurations = list(configurations)
    config.project.team_id = team_id
    config.analysis.output_formats = ['console', 'html', 'json', 'sarif']
    config.ci.platform = platform
    return config


def write_config(config: Config, path: Path, force: bool = False) -> Path:
    """Write a config file as JSON (or YAML for .yml/.yaml paths)"""
    if path.exists() and not force:
        raise ConfigError(f"{path} already exists (use --force to overwrite)")

    data = config.to_dict()
    if path.suffix.lower() in ('.yml', '.yaml'):
        content = yaml.safe_dump(data, sort_keys=False)
    else:
        content = json.dumps(data, indent=2) + "\n"

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    logger.info(f"Wrote configuration to {path}")
    return path
