from typing import Optional

from beatbridge.domain.entities import ProviderName
from beatbridge.domain.ports import MusicProvider
from beatbridge.infrastructure.providers.spotify import SpotifyProvider
from beatbridge.infrastructure.providers.youtube import YouTubeProvider


def create_provider(provider: ProviderName, access_token: Optional[str]) -> MusicProvider:
    """Build the provider client for ``provider`` with the user's token."""
    if provider is ProviderName.SPOTIFY:
        return SpotifyProvider(access_token)
    if provider is ProviderName.YOUTUBE:
        return YouTubeProvider(access_token)
    raise ValueError(f"Unsupported provider: {provider}")
