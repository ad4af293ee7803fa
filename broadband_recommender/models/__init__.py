"""
Pydantic data models.

customer        : CustomerTelemetry (typed raw record) and
                  CanonicalCustomerFeatures (extractor output).
product         : Product catalog entry.
recommendation  : RankedRecommendation returned to callers.

All models are frozen -- catalog entries and artifacts are shared read-only
across concurrent requests.
"""
