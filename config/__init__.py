"""Configuration management for the guardian system."""

from .config import SystemConfig, GroupConfig, CeremonyConfig, DecryptionConfig, load_config, save_config

__all__ = ['SystemConfig', 'GroupConfig', 'CeremonyConfig', 'DecryptionConfig', 'load_config', 'save_config']
