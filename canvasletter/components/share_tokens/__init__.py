"""
Share token component - resolve, authorize, issue and revoke share links.
"""

from .component import (
    DEFAULT_CONFIG,
    authorize_mutation,
    generate_share_token,
    invalid_reason,
    is_token_valid,
    resolve,
    run,
    run_create,
    run_list_active,
    run_resolve,
    run_revoke,
    token_fingerprint,
)
from .models import (
    CreateShareInput,
    CreateShareOutput,
    ListActiveSharesInput,
    ListActiveSharesOutput,
    ResolvedShare,
    ResolveShareInput,
    ResolveShareOutput,
    RevokeShareInput,
    RevokeShareOutput,
    ShareConfig,
)
from .ports import NewsletterReaderPort, ShareTokenRepoPort, TimePort

__all__ = [
    # Component
    "run",
    "run_create",
    "run_revoke",
    "run_list_active",
    "run_resolve",
    # Pure functions
    "generate_share_token",
    "token_fingerprint",
    "invalid_reason",
    "is_token_valid",
    "resolve",
    "authorize_mutation",
    # Constants
    "DEFAULT_CONFIG",
    # Models
    "ShareConfig",
    "ResolvedShare",
    "CreateShareInput",
    "CreateShareOutput",
    "RevokeShareInput",
    "RevokeShareOutput",
    "ListActiveSharesInput",
    "ListActiveSharesOutput",
    "ResolveShareInput",
    "ResolveShareOutput",
    # Ports
    "ShareTokenRepoPort",
    "NewsletterReaderPort",
    "TimePort",
]
