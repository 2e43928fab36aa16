"""Language adapters — node package managers."""

from shivvie.adapters.languages.node import NodePackageManager

__all__ = ["NodePackageManager"]
