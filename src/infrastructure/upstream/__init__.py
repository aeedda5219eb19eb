"""Upstream photo provider clients."""

from src.infrastructure.upstream.unsplash_client import UnsplashClient, UnsplashConfig

__all__ = ["UnsplashClient", "UnsplashConfig"]
