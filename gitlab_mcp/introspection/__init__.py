"""Credential introspection: REST client, token scope detection and ``whoami``."""

from .client import GitLabApiClient
from .detector import detect_token_scopes, token_info_from_api
from .models import WhoamiResult
from .service import CredentialIntrospector

__all__ = [
    "CredentialIntrospector",
    "GitLabApiClient",
    "WhoamiResult",
    "detect_token_scopes",
    "token_info_from_api",
]
