"""Vault access: filesystem adapters and installed plugin discovery."""

from pluginhub.vault.adapters import DirectFilesystem, VaultAdapter
from pluginhub.vault.registry import InstalledPluginRegistry

__all__ = [
    "DirectFilesystem",
    "VaultAdapter",
    "InstalledPluginRegistry",
]
