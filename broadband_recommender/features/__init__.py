"""Feature layer: schema contract, raw-record extraction, min/max normalization.

Modules
-------
schema      — FeatureSchema + ordered feature names (the model input contract)
extractor   — extract(): raw telemetry row -> CanonicalCustomerFeatures
normalizer  — NormalizationParameters + normalize() + artifact JSON I/O
"""
