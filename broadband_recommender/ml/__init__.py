"""
ML layer — multi-label LightGBM scoring of catalog products.

Modules
-------
scoring_model : ProductScoringModel (fit, predict, save, load) — one binary
                booster per catalog product, constant prior for single-class
                products.
labels        : Rule-based training labels (offline only).
trainer       : train_scoring_model() + write_artifacts() — builds the model
                and normalization artifacts consumed at serving time.
"""
