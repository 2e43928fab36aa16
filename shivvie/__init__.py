"""shivvie — a scaffolding engine driven by declarative actions.

Module authors import from here:

    from shivvie import define_module, sh
"""

__version__ = "0.1.0"

from shivvie.adapters.shell.command import sh
from shivvie.core.models.module import define_module

__all__ = ["__version__", "define_module", "sh"]
