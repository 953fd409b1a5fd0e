"""
Unisocial - one dashboard for publishing to 13 social platforms.

This package contains the core application logic for Unisocial, including:
- API endpoints for accounts, posts, AI assistance and subscriptions
- Late aggregator integration for cross-posting
- Claude and DeepL integrations for captions and translation
- PortOne recurring billing and monthly usage limits

Version: 1.0.0
"""

__version__ = "1.0.0"
__description__ = "Cross-post to 13 social platforms from one dashboard"
