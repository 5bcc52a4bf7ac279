"""Built-in capability providers.

Each module exposes ``build_provider(...) -> CapabilityProvider``. Names are
globally unique across providers; the registry rejects collisions at startup.
The project and context providers are always registered; the others follow the
``USE_*`` settings.
"""

from __future__ import annotations

import logging
from typing import List

from ..capabilities.base import CapabilityProvider
from ..core.config import Settings
from ..introspection.client import GitLabApiClient
from ..introspection.service import CredentialIntrospector
from ..session.context import ContextManager
from . import context, files, iterations, projects, work_items

logger = logging.getLogger(__name__)


def build_default_providers(
    settings: Settings,
    client: GitLabApiClient,
    context_manager: ContextManager,
    introspector: CredentialIntrospector,
) -> List[CapabilityProvider]:
    optional = (
        (settings.use_files, "USE_FILES", files),
        (settings.use_workitems, "USE_WORKITEMS", work_items),
        (settings.use_iterations, "USE_ITERATIONS", iterations),
    )
    providers = [projects.build_provider(client)]
    for enabled, flag, module in optional:
        if enabled:
            providers.append(module.build_provider(client))
        else:
            logger.info(f"Provider '{module.__name__.rsplit('.', 1)[-1]}' disabled by {flag}=false")
    providers.append(context.build_provider(context_manager, introspector))
    return providers


__all__ = ["build_default_providers"]
