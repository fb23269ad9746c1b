"""
MS Graph client setup with lazy initialization.

This is the app-only client used to send mail. Calendar writes go through the
delegated, rotating refresh token instead (see services.credentials).
"""

from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.config import Settings

# One client per (tenant, app, secret)
_graph_clients: dict[tuple[str, str, str], GraphServiceClient] = {}


def get_graph_client(settings: Settings) -> GraphServiceClient:
    """Get or create the MS Graph client for these settings' app credentials."""
    key = (settings.graph_tenant_id, settings.graph_app_id, settings.graph_client_secret)
    if key not in _graph_clients:
        credential = ClientSecretCredential(
            tenant_id=settings.graph_tenant_id,
            client_id=settings.graph_app_id,
            client_secret=settings.graph_client_secret,
        )
        _graph_clients[key] = GraphServiceClient(credentials=credential)
    return _graph_clients[key]
