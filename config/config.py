import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from egcrypto.auxiliary import DEFAULT_AUXILIARY_KEY_SIZE
from egcrypto.elgamal import DEFAULT_DISCRETE_LOG_MAX
from egcrypto.group import GroupContext, get_group
from keyceremony.polynomial import MAX_X_COORDINATE

logger = logging.getLogger(__name__)


@dataclass
class GroupConfig:
    name: str = "standard"

    def __post_init__(self):
        get_group(self.name)

    def group(self) -> GroupContext:
        return get_group(self.name)


@dataclass
class CeremonyConfig:
    number_of_guardians: int = 5
    quorum: int = 3
    auxiliary_key_size: int = DEFAULT_AUXILIARY_KEY_SIZE
    manifest_hash: str = ""

    def __post_init__(self):
        if not 0 < self.number_of_guardians < MAX_X_COORDINATE:
            raise ValueError(f"number_of_guardians must be in [1, {MAX_X_COORDINATE})")
        if not 1 <= self.quorum <= self.number_of_guardians:
            raise ValueError(f"quorum must be in [1, {self.number_of_guardians}]")
        if self.auxiliary_key_size < 2048:
            raise ValueError("auxiliary_key_size must be at least 2048 bits")


@dataclass
class DecryptionConfig:
    max_workers: int = 4
    discrete_log_max: int = DEFAULT_DISCRETE_LOG_MAX

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError("max_workers must be positive")


@dataclass
class SystemConfig:
    group_config: GroupConfig = field(default_factory=GroupConfig)
    ceremony_config: CeremonyConfig = field(default_factory=CeremonyConfig)
    decryption_config: DecryptionConfig = field(default_factory=DecryptionConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    enable_benchmarking: bool = True
    enable_debug_mode: bool = False

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.enable_debug_mode else "INFO"


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")

    if not config_path.exists():
        return SystemConfig()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load config file {config_path}: {e}, using default configuration")
        return SystemConfig()

    group_data = config_data.get('group', {})
    ceremony_data = config_data.get('key_ceremony', {})
    decryption_data = config_data.get('decryption', {})

    return SystemConfig(
        group_config=GroupConfig(name=group_data.get('name', 'standard')),
        ceremony_config=CeremonyConfig(
            number_of_guardians=ceremony_data.get('number_of_guardians', 5),
            quorum=ceremony_data.get('quorum', 3),
            auxiliary_key_size=ceremony_data.get('auxiliary_key_size', DEFAULT_AUXILIARY_KEY_SIZE),
            manifest_hash=ceremony_data.get('manifest_hash', ''),
        ),
        decryption_config=DecryptionConfig(
            max_workers=decryption_data.get('max_workers', 4),
            discrete_log_max=decryption_data.get('discrete_log_max', DEFAULT_DISCRETE_LOG_MAX),
        ),
        log_dir=Path(config_data.get('log_dir', 'logs')),
        results_dir=Path(config_data.get('results_dir', 'results')),
        enable_benchmarking=config_data.get('enable_benchmarking', True),
        enable_debug_mode=config_data.get('enable_debug_mode', False),
    )


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")

    config_data = {
        'group': {
            'name': config.group_config.name,
        },
        'key_ceremony': {
            'number_of_guardians': config.ceremony_config.number_of_guardians,
            'quorum': config.ceremony_config.quorum,
            'auxiliary_key_size': config.ceremony_config.auxiliary_key_size,
            'manifest_hash': config.ceremony_config.manifest_hash,
        },
        'decryption': {
            'max_workers': config.decryption_config.max_workers,
            'discrete_log_max': config.decryption_config.discrete_log_max,
        },
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'enable_benchmarking': config.enable_benchmarking,
        'enable_debug_mode': config.enable_debug_mode,
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w') as f:
        yaml.dump(config_data, f, default_flow_style=False)
    logger.info(f"Configuration saved to {config_path}")
