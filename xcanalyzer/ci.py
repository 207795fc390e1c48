"""
CI pipeline templates for GitHub Actions, GitLab CI and Jenkins.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import Config
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PATHS = {
    'github': '.github/workflows/xcanalyzer.yml',
    'gitlab': '.gitlab-ci.yml',
    'jenkins': 'Jenkinsfile',
}

INSTALL_COMMAND = 'pip3 install xcanalyzer'


def _analyze_command(config: Config) -> str:
    parts = ['xcanalyzer', 'analyze']
    if config.source_path:
        parts[1:1] = ['--config', Path(config.source_path).name]
    for fmt in ('sarif', 'html', 'json'):
        parts += ['--format', fmt]
    parts += ['--output-dir', config.analysis.output_dir]
    return ' '.join(parts)


def _derived_data_key(config: Config) -> str:
    return f"{config.analysis.output_dir}/*/DerivedData"


def render_github_actions(config: Config) -> str:
    """Workflow that analyzes on macOS and uploads SARIF to code scanning"""
    output_dir = config.analysis.output_dir
    steps: List[Dict[str, Any]] = [
        {'name': 'Checkout', 'uses': 'actions/checkout@v4'},
        {
            'name': 'Set up Python',
            'uses': 'actions/setup-python@v5',
            'with': {'python-version': '3.11'},
        },
    ]
    if config.ci.cache_enabled:
        steps.append({
            'name': 'Cache DerivedData',
            'uses': 'actions/cache@v4',
            'with': {
                'path': _derived_data_key(config),
                'key': "xcanalyzer-${{ runner.os }}-${{ hashFiles('**/*.pbxproj') }}",
                'restore-keys': 'xcanalyzer-${{ runner.os }}-',
            },
        })

    analyze_env = {}
    gate = config.quality_gate
    for name, value in (('MAX_CRITICAL_ISSUES', gate.max_critical_issues),
                        ('MAX_HIGH_ISSUES', gate.max_high_issues),
                        ('MAX_MEDIUM_ISSUES', gate.max_medium_issues),
                        ('MAX_LOW_ISSUES', gate.max_low_issues)):
        if value is not None:
            analyze_env[name] = str(value)

    steps.append({'name': 'Install xcanalyzer', 'run': INSTALL_COMMAND})
    run_step: Dict[str, Any] = {
        'name': 'Run static analysis',
        'run': _analyze_command(config),
    }
    if analyze_env:
        run_step['env'] = analyze_env
    steps.append(run_step)

    steps.append({
        'name': 'Upload SARIF',
        'if': 'always()',
        'uses': 'github/codeql-action/upload-sarif@v3',
        'with': {'sarif_file': f"{output_dir}/xcanalyzer-report.sarif"},
    })
    steps.append({
        'name': 'Upload reports',
        'if': 'always()',
        'uses': 'actions/upload-artifact@v4',
        'with': {
            'name': 'xcanalyzer-reports',
            'path': f"{output_dir}/xcanalyzer-report.*",
        },
    })

    workflow = {
        'name': 'Static Analysis',
        'on': {
            'push': {'branches': ['main']},
            'pull_request': None,
        },
        'permissions': {
            'contents': 'read',
            'security-events': 'write',
        },
        'jobs': {
            'analyze': {
                'runs-on': 'macos-latest',
                'timeout-minutes': max(config.analysis.timeout_seconds // 60, 1) + 15,
                'steps': steps,
            },
        },
    }
    return yaml.safe_dump(workflow, sort_keys=False, default_flow_style=False)


def render_gitlab_ci(config: Config) -> str:
    """A .gitlab-ci.yml job for macOS runners"""
    output_dir = config.analysis.output_dir
    job: Dict[str, Any] = {
        'stage': 'test',
        'tags': ['macos'],
        'script': [INSTALL_COMMAND, _analyze_command(config)],
        'artifacts': {
            'when': 'always',
            'paths': [f"{output_dir}/xcanalyzer-report.*"],
        },
    }
    if config.ci.cache_enabled:
        job['cache'] = {
            'key': 'xcanalyzer-derived-data',
            'paths': [_derived_data_key(config)],
        }

    pipeline = {
        'stages': ['test'],
        'static-analysis': job,
    }
    return yaml.safe_dump(pipeline, sort_keys=False, default_flow_style=False)


JENKINSFILE_TEMPLATE = '''pipeline {{
    agent {{ label 'macos' }}

    options {{
        timeout(time: {timeout_minutes}, unit: 'MINUTES')
    }}

    stages {{
        stage('Setup') {{
            steps {{
                sh '{install}'
            }}
        }}
        stage('Analyze') {{
            steps {{
                sh '{analyze} --no-gate'
            }}
        }}
        stage('Quality Gate') {{
            steps {{
                sh 'xcanalyzer{config_flag} gate {output_dir}/xcanalyzer-result.json'
            }}
        }}
    }}

    post {{
        always {{
            archiveArtifacts artifacts: '{output_dir}/xcanalyzer-report.*', allowEmptyArchive: true
        }}
    }}
}}
'''


def render_jenkinsfile(config: Config) -> str:
    """Declarative pipeline with analyze, quality gate and archive stages"""
    config_flag = f" --config {Path(config.source_path).name}" if config.source_path else ''
    return JENKINSFILE_TEMPLATE.format(
        timeout_minutes=max(config.analysis.timeout_seconds // 60, 1) + 15,
        install=INSTALL_COMMAND,
        analyze=_analyze_command(config),
        config_flag=config_flag,
        output_dir=config.analysis.output_dir,
    )


RENDERERS = {
    'github': render_github_actions,
    'gitlab': render_gitlab_ci,
    'jenkins': render_jenkinsfile,
}


def write_ci_template(platform: str, config: Config, path: Optional[str] = None,
                      force: bool = False) -> Path:
    """
    Render a CI template and write it to disk.

    Args:
        platform: github, gitlab or jenkins
        config: Effective configuration
        path: Output path (default: the platform's conventional location)
        force: Overwrite an existing file

    Raises:
        ConfigError: For an unknown platform or an existing file without force
    """
    renderer = RENDERERS.get(platform)
    if renderer is None:
        raise ConfigError(f"Unknown CI platform '{platform}'. Expected one of: {', '.join(RENDERERS)}")

    target = Path(path or DEFAULT_PATHS[platform])
    if target.exists() and not force:
        raise ConfigError(f"{target} already exists (use --force to overwrite)")

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(renderer(config), encoding='utf-8')
    logger.info(f"Wrote {platform} CI template to {target}")
    return target
