"""
Authentication package.

Exports API token loading and the require_api_client dependency used by
the /v1 routes.
"""

from pvinstallations.auth.bearer import (
    ApiToken,
    identify_client,
    load_api_tokens,
    require_api_client,
)

__all__ = ["ApiToken", "identify_client", "load_api_tokens", "require_api_client"]
