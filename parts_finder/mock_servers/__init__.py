"""Mock marketplace servers for testing."""

from .app import create_app, create_mock_marketplace, ebay_item, finding_response

__all__ = ["create_app", "create_mock_marketplace", "ebay_item", "finding_response"]
