"""
Explanation generator: one customer-facing sentence pair per ranked product.

Rule table
----------
``EXPLANATION_RULES`` is evaluated top-down against the lowercased product
name; the first matching rule's template is used.  ORDER MATTERS -- a longer
name must come before any shorter name it contains:

    "wi-fi security plus"                    before  "wi-fi security"
    "battery back-up for unbreakable wi-fi"  before  "unbreakable wi-fi"

The last rule always matches and lists the product's own feature phrases, so
every product gets an explanation.

Template fields
---------------
    {name}           customer name, or "Valued Customer"
    {product}        product name as listed in the catalog
    {network_speed}  plan speed in Mbps
    {avg_bandwidth}  average usage in Mbps, two decimals
    {devices}        total connected devices
    {coverage_size}  Small / Medium / Large
    {region}         region code, or "Unknown"
    {features}       product feature phrases joined by spaces
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from broadband_recommender.features.schema import REGIONS, region_column
from broadband_recommender.models.customer import CanonicalCustomerFeatures
from broadband_recommender.recommendations.ranker import RankedProduct

GREETING = "Hi {name}, based on your current setup, we recommend {product}."
DEFAULT_CUSTOMER_NAME = "Valued Customer"
UNKNOWN_REGION = "Unknown"


@dataclass(frozen=True)
class ExplanationRule:
    """Template selected when ``predicate(lowercased product name)`` is true."""

    name:      str
    predicate: Callable[[str], bool]
    template:  str


def name_contains(keyword: str) -> Callable[[str], bool]:
    """Predicate matching product names that contain ``keyword``."""
    return lambda product_name: keyword in product_name


def _keyword_rule(keyword: str, template: str) -> ExplanationRule:
    return ExplanationRule(name=keyword, predicate=name_contains(keyword), template=template)


FALLBACK_RULE = ExplanationRule(
    name="fallback",
    predicate=lambda product_name: True,
    template="{features}. Consider adding it to enhance your internet experience.",
)

EXPLANATION_RULES: tuple[ExplanationRule, ...] = (
    _keyword_rule(
        "fiber",
        "With your network speed of {network_speed} Mbps and average bandwidth usage of "
        "{avg_bandwidth} Mbps, upgrading to {product} can provide you with faster and more "
        "reliable internet connectivity.",
    ),
    _keyword_rule(
        "whole-home wi-fi",
        "Considering you have {devices} devices and a {coverage_size} coverage area, {product} "
        "can help eliminate dead zones and ensure seamless connectivity throughout your home.",
    ),
    _keyword_rule(
        "wi-fi security plus",
        "Enhancing your security with {product} ensures comprehensive protection for all your "
        "devices, safeguarding against potential threats and vulnerabilities.",
    ),
    _keyword_rule(
        "wi-fi security",
        "To protect your network from malicious sites and potential cyber threats, {product} "
        "offers advanced security features tailored to your needs.",
    ),
    _keyword_rule(
        "total shield",
        "Given your high bandwidth usage and the need for robust security measures, {product} "
        "provides comprehensive protection for your network and devices.",
    ),
    _keyword_rule(
        "my premium tech pro",
        "Managing {devices} devices can be challenging. {product} offers premium technical "
        "support to ensure all your devices run smoothly and efficiently.",
    ),
    _keyword_rule(
        "identity protection",
        "Living in {region}, {product} helps safeguard your personal information, ensuring your "
        "data remains secure and protected from unauthorized access.",
    ),
    _keyword_rule(
        "youtube tv",
        "With your streaming needs and network capabilities, {product} offers a seamless TV "
        "experience without the need for additional hardware.",
    ),
    _keyword_rule(
        "additional extender",
        "To enhance your Wi-Fi coverage, {product} can help eliminate dead zones and ensure a "
        "strong signal throughout your property.",
    ),
    _keyword_rule(
        "battery back-up for unbreakable wi-fi",
        "Ensure uninterrupted internet access during outages with {product}, providing reliable "
        "backup power for your network.",
    ),
    _keyword_rule(
        "unbreakable wi-fi",
        "Maintain a stable internet connection even during unexpected outages with {product}, "
        "ensuring your connectivity remains uninterrupted.",
    ),
    FALLBACK_RULE,
)


def region_of(features: CanonicalCustomerFeatures) -> str:
    """First region whose one-hot bit is set, scanning ``REGIONS`` in order."""
    for region in REGIONS:
        if getattr(features, region_column(region), 0) == 1:
            return region
    return UNKNOWN_REGION


def select_rule(
    product_name: str,
    rules: tuple[ExplanationRule, ...] = EXPLANATION_RULES,
) -> ExplanationRule:
    """Return the first rule matching ``product_name`` (case-insensitive)."""
    lowered = product_name.lower()
    for rule in rules:
        if rule.predicate(lowered):
            return rule
    return FALLBACK_RULE


def _format_number(value: float) -> str:
    # 450.0 -> "450", 500.5 -> "500.5"
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def explain(
    features: CanonicalCustomerFeatures,
    ranked_item: RankedProduct,
    rules: tuple[ExplanationRule, ...] = EXPLANATION_RULES,
) -> str:
    """Build the explanation for one ranked product.

    Args:
        features:    Extracted customer features.
        ranked_item: The product at its rank.
        rules:       Ordered rule table; defaults to ``EXPLANATION_RULES``.

    Returns:
        Greeting sentence followed by the selected template.
    """
    product = ranked_item.product
    context = {
        "name":          features.customer_name or DEFAULT_CUSTOMER_NAME,
        "product":       product.name,
        "network_speed": _format_number(features.network_speed),
        "avg_bandwidth": f"{features.avg_bandwidth_usage / 1e6:.2f}",
        "devices":       _format_number(features.total_devices),
        "coverage_size": features.coverage_size,
        "region":        region_of(features),
        "features":      " ".join(product.features),
    }
    rule = select_rule(product.name, rules)
    return f"{GREETING.format(**context)} {rule.template.format(**context)}"
