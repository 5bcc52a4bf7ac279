"""Application wiring.

``build_application`` constructs every collaborator once and returns them in
an explicit ``Application`` context object. Nothing is stored in module-level
state, so tests and embedders can build as many independent applications as
they need.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .capabilities.base import CapabilityProvider
from .capabilities.events import ChangeNotifier
from .capabilities.registry import CapabilityRegistry
from .core.config import Settings, load_description_overrides
from .core.errors import RemoteApiError
from .core.logging_config import setup_logging
from .introspection.client import GitLabApiClient
from .introspection.detector import detect_token_scopes
from .introspection.service import CredentialIntrospector
from .policy.models import InstanceInfo
from .policy.provider import RuntimePolicySource
from .providers import build_default_providers
from .session.connection import ConnectionState
from .session.context import ContextManager
from .session.state import SessionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Application:
    """Every long-lived collaborator of one server process."""

    settings: Settings
    client: GitLabApiClient
    connection: ConnectionState
    session: SessionState
    policy: RuntimePolicySource
    registry: CapabilityRegistry
    notifier: ChangeNotifier
    context: ContextManager
    introspector: CredentialIntrospector

    async def connect(self, version: Optional[str] = None, tier: Optional[str] = None) -> InstanceInfo:
        """Discover instance info and token scopes, then publish the resulting catalog.

        While discovery runs the handshake window is open, so tools are not
        hidden for lack of version/tier data.
        """
        self.connection.begin_handshake()
        try:
            if version is None:
                version = await self._detect_version()
            instance = self.connection.set_instance(version, tier or self.settings.tier or "free")
            info = await detect_token_scopes(self.client, timeout=self.settings.introspection_timeout)
            if info is not None:
                self.connection.replace_token_info(info)
        finally:
            self.connection.end_handshake()
        stats = self.registry.rebuild()
        logger.info(
            f"Connected to GitLab {instance.version} ({instance.tier.value}): "
            f"{stats.available}/{stats.total} tools available"
        )
        await self.notifier.notify()
        return instance

    async def _detect_version(self) -> str:
        try:
            data = await self.client.get_metadata(timeout=self.settings.introspection_timeout)
        except RemoteApiError as e:
            logger.debug(f"Could not read GitLab metadata: {e}")
            return "unknown"
        if isinstance(data, dict) and data.get("version"):
            return str(data["version"])
        return "unknown"


def build_application(
    settings: Optional[Settings] = None,
    *,
    client: Optional[GitLabApiClient] = None,
    providers: Optional[Iterable[CapabilityProvider]] = None,
    environ: Optional[Mapping[str, str]] = None,
    configure_logging: bool = False,
) -> Application:
    """Build and wire an ``Application``.

    Args:
        settings: Explicit settings; loaded from the environment when omitted.
        client: GitLab client; built from settings when omitted.
        providers: Extra providers registered after the built-in ones.
        environ: Source of ``GITLAB_TOOL_<NAME>`` description overrides
            (``os.environ`` when omitted).
        configure_logging: Call ``setup_logging`` with the configured level.
    """
    settings = settings or Settings.from_env()
    if configure_logging:
        setup_logging(settings.log_level)

    client = client or GitLabApiClient(settings.base_url, token=settings.token)
    connection = ConnectionState()
    session = SessionState(preset=settings.preset, profile=settings.profile)
    policy = RuntimePolicySource(
        settings,
        connection,
        session,
        description_overrides=load_description_overrides(environ),
    )
    registry = CapabilityRegistry(policy)
    notifier = ChangeNotifier()
    context = ContextManager(settings, session, registry, notifier)
    introspector = CredentialIntrospector(settings, client, connection, registry, notifier, session)

    registry.initialize([*build_default_providers(settings, client, context, introspector), *(providers or ())])
    return Application(
        settings=settings,
        client=client,
        connection=connection,
        session=session,
        policy=policy,
        registry=registry,
        notifier=notifier,
        context=context,
        introspector=introspector,
    )
