"""Broadband product recommender.

Scores a broadband provider's add-on catalog (fiber tiers, Wi-Fi coverage,
security bundles, support plans) for one customer from their gateway
telemetry, then ranks the catalog and explains every pick.
"""

__version__ = "0.3.0"
