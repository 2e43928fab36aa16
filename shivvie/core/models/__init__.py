"""
Domain models — Pydantic types for the scaffolding engine.

All models are re-exported here for convenient access:

    from shivvie.core.models import Action, RenderAction, ModuleRef, Receipt
"""

from shivvie.core.models.action import (
    Action,
    CascadeAction,
    DelegateAction,
    PackageAction,
    PatchAction,
    Receipt,
    RenderAction,
    ScriptAction,
    is_action,
)
from shivvie.core.models.module import (
    ENTRY_POINT,
    GitLocator,
    ModuleRef,
    ResolvedModule,
    ShivvieModule,
    define_module,
)

__all__ = [
    # action.py
    "Action",
    "CascadeAction",
    "DelegateAction",
    # module.py
    "ENTRY_POINT",
    "GitLocator",
    "ModuleRef",
    "PackageAction",
    "PatchAction",
    "Receipt",
    "RenderAction",
    "ResolvedModule",
    "ScriptAction",
    "ShivvieModule",
    "define_module",
    "is_action",
]
