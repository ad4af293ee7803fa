"""
Recommendation engine: turns model scores into a ranked, explained product
list for one customer.

Modules
-------
ranker    : RankedProduct + rank_products() — stable best-first ordering.
explainer : EXPLANATION_RULES + explain() — ordered keyword templates.
pipeline  : RecommendationPipeline.get_recommendations() — the end-to-end
            extract -> normalize -> score -> rank -> explain call.
reporter  : format_recommendation_table() + write_recommendation_json().
"""
