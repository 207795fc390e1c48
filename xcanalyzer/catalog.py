"""
Checker catalog - parses YAML checker files into Checker objects and maps
analyzer diagnostics to severities.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .exceptions import ConfigError
from .models import Checker, Finding, Severity

logger = logging.getLogger(__name__)

DEFAULT_CATALOG = Path(__file__).parent / "checkers" / "clang_checkers.yaml"


class CheckerCatalog:
    """Loads checker definitions and analysis level build settings"""

    def __init__(self, checkers_dir: Optional[Path] = None,
                 severity_overrides: Optional[Mapping[str, str]] = None):
        self.checkers_dir = checkers_dir
        self.checkers: List[Checker] = []
        self.levels: Dict[str, Dict[str, Any]] = {}
        self.category_severity: Dict[str, Severity] = {}
        self.severity_overrides: Dict[str, Severity] = {
            key: Severity.parse(value) for key, value in (severity_overrides or {}).items()
        }
        self._loaded_files: List[str] = []

    def load(self) -> "CheckerCatalog":
        """Load the bundled catalog, then any user catalogs"""
        self.checkers = []
        self.levels = {}
        self.category_severity = {}
        self._loaded_files = []

        self.load_file(DEFAULT_CATALOG)

        if self.checkers_dir:
            if not self.checkers_dir.is_dir():
                logger.warning(f"Checkers directory not found: {self.checkers_dir}")
            else:
                yaml_files = sorted(self.checkers_dir.rglob("*.yaml")) + sorted(self.checkers_dir.rglob("*.yml"))
                for yaml_file in yaml_files:
                    try:
                        self.load_file(yaml_file)
                    except ConfigError as e:
                        logger.error(str(e))

        logger.info(f"Loaded {len(self.checkers)} checker definitions from {len(self._loaded_files)} files")
        return self

    def load_file(self, filepath: Path) -> List[Checker]:
        """Load checkers from a single YAML file. Later files override earlier ones."""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load checker catalog {filepath}: {e}") from e

        if not data:
            return []

        for level, spec in (data.get('levels') or {}).items():
            self.levels[level] = {
                'description': (spec or {}).get('description', ''),
                'build_settings': {
                    str(k): str(v) for k, v in ((spec or {}).get('build_settings') or {}).items()
                },
            }

        for category, severity in (data.get('category_severity') or {}).items():
            try:
                self.category_severity[category] = Severity.parse(severity)
            except ValueError as e:
                logger.error(f"{filepath.name}: category '{category}': {e}")

        parsed = []
        for raw in data.get('checkers') or []:
            checker = self._parse_checker(raw, filepath)
            if checker:
                parsed.append(checker)

        # Replace existing definitions with the same id
        new_ids = {c.id for c in parsed}
        self.checkers = [c for c in self.checkers if c.id not in new_ids] + parsed
        self._loaded_files.append(str(filepath))
        logger.debug(f"Loaded {len(parsed)} checkers from {filepath.name}")
        return parsed

    def _parse_checker(self, raw: Dict[str, Any], filepath: Path) -> Optional[Checker]:
        if not isinstance(raw, dict) or not raw.get('id'):
            logger.error(f"{filepath.name}: skipping checker entry without id")
            return None

        try:
            severity = Severity.parse(raw.get('severity', 'medium'))
        except ValueError as e:
            logger.error(f"{filepath.name}: checker {raw['id']}: {e}")
            severity = Severity.MEDIUM

        return Checker(
            id=raw['id'],
            name=raw.get('name', raw['id']),
            category=raw.get('category', ''),
            severity=severity,
            description=raw.get('description', ''),
            cwe=raw.get('cwe'),
            remediation=raw.get('remediation'),
            levels=list(raw.get('levels') or []),
        )

    def lookup(self, checker_id: str) -> Optional[Checker]:
        """Exact entry for a checker id, otherwise the longest matching prefix"""
        for checker in self.checkers:
            if not checker.is_prefix and checker.id == checker_id:
                return checker

        best = None
        for checker in self.checkers:
            if checker.is_prefix and checker.matches(checker_id):
                if best is None or len(checker.id) > len(best.id):
                    best = checker
        return best

    def _override_for(self, checker_id: str) -> Optional[Severity]:
        if checker_id in self.severity_overrides:
            return self.severity_overrides[checker_id]

        best_key = None
        for key in self.severity_overrides:
            prefix = key if key.endswith('.') else key + '.'
            if checker_id.startswith(prefix):
                if best_key is None or len(key) > len(best_key):
                    best_key = key
        return self.severity_overrides[best_key] if best_key else None

    def severity_for(self, checker_id: str, category: Optional[str] = None) -> Severity:
        """
        Resolve the severity of a diagnostic.

        Order: configured override, catalog entry (exact id, then longest
        prefix), category fallback, then medium.
        """
        override = self._override_for(checker_id)
        if override:
            return override

        checker = self.lookup(checker_id)
        if checker:
            return checker.severity

        if category and category in self.category_severity:
            return self.category_severity[category]

        return Severity.MEDIUM

    def classify(self, finding: Finding) -> Finding:
        """Apply severity and catalog metadata to a parsed finding"""
        finding.severity = self.severity_for(finding.checker, finding.category)
        checker = self.lookup(finding.checker)
        if checker:
            if not finding.cwe and checker.cwe:
                finding.cwe = checker.cwe
            if checker.remediation:
                finding.metadata.setdefault('remediation', checker.remediation)
            finding.metadata.setdefault('checker_name', checker.name)
        return finding

    def build_settings_for(self, level: str) -> Dict[str, str]:
        """xcodebuild build settings that select an analysis level"""
        if level not in self.levels:
            raise ConfigError(f"Unknown analysis level '{level}'. Known levels: {', '.join(self.levels)}")
        return dict(self.levels[level]['build_settings'])

    def checkers_for_level(self, level: str) -> List[Checker]:
        return [c for c in self.checkers if c.enabled_at(level)]

    def get_checkers_by_severity(self, severity: Severity) -> List[Checker]:
        return [c for c in self.checkers if c.severity == severity]

    @property
    def stats(self) -> Dict[str, Any]:
        """Get statistics about loaded checkers"""
        severity_counts = {}
        for severity in Severity:
            severity_counts[severity.value] = len(self.get_checkers_by_severity(severity))

        return {
            'total_checkers': len(self.checkers),
            'levels': list(self.levels),
            'files_loaded': len(self._loaded_files),
            'by_severity': severity_counts,
        }


def load_catalog(checkers_dir: Optional[str] = None,
                 severity_overrides: Optional[Mapping[str, str]] = None) -> CheckerCatalog:
    """Create and load a catalog"""
    return CheckerCatalog(
        Path(checkers_dir) if checkers_dir else None,
        severity_overrides=severity_overrides,
    ).load()
