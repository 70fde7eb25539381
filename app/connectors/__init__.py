"""
app/connectors package marker.
"""

from app.connectors.asset_fetcher import (
    AssetFetcher,
    AssetFetchError,
    FetchedAsset,
    HTTPAssetFetcher,
    get_asset_fetcher,
)

__all__ = [
    "AssetFetchError",
    "AssetFetcher",
    "FetchedAsset",
    "HTTPAssetFetcher",
    "get_asset_fetcher",
]
