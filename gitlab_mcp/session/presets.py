"""Built-in presets."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .models import Preset

BUILTIN_PRESETS: Dict[str, Preset] = {
    "full": Preset(
        name="full",
        description="All tools permitted by the token and instance",
    ),
    "readonly": Preset(
        name="readonly",
        description="Browse-only access; tools that change GitLab data are hidden",
        read_only=True,
    ),
    "no-delete": Preset(
        name="no-delete",
        description="Everything except destructive delete actions",
        denied_actions=[
            "manage_project:delete",
            "manage_files:delete",
            "manage_work_item:delete",
        ],
    ),
}


def build_preset_catalog(extra: Optional[Iterable[Preset]] = None) -> Dict[str, Preset]:
    """Built-in presets plus ``extra``; later entries replace earlier ones by name."""
    catalog = dict(BUILTIN_PRESETS)
    for preset in extra or ():
        catalog[preset.name] = preset
    return catalog
