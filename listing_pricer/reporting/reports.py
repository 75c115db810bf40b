"""
Plain-text reports written at the end of each stage.

Each builder returns the report as a string; the pipeline writes it once
per run.
"""

from datetime import date
from typing import List, Optional

import pandas as pd

from listing_pricer.config import EDA_PLOTS, MODEL_PLOTS
from listing_pricer.data.validator import ValidationReport
from listing_pricer.features.preprocessing import PreprocessingArtifacts
from listing_pricer.models.trainer import TrainingResult
from listing_pricer.recommender.price_recommender import PREDICTION_COLUMNS, PricingRecommendation
from listing_pricer.reporting.eda import EdaSummary


def _header(title: str) -> List[str]:
    return [title, "=" * len(title), ""]


def _today(run_date: Optional[date]) -> str:
    return (run_date or date.today()).isoformat()


# =============================================================================
# PREPROCESSING
# =============================================================================

def preprocessing_report(
    raw: pd.DataFrame,
    cleaned: pd.DataFrame,
    artifacts: PreprocessingArtifacts,
    validation: ValidationReport,
    run_date: Optional[date] = None
) -> str:
    """Summary of imputation, capping, derived features and validation."""
    price = cleaned['price']
    new_features = [c for c in cleaned.columns if c not in raw.columns]
    bounds = artifacts.price_bounds

    lines = _header("LISTING DATA PREPROCESSING SUMMARY")
    lines += [
        f"Date: {_today(run_date)}",
        f"Original dataset: {len(raw)} listings",
        f"Cleaned dataset: {len(cleaned)} listings",
        f"Features: {len(cleaned.columns)}",
        "",
        "PREPROCESSING STEPS:",
        "1. Missing value imputation using median",
    ]
    for col, median in artifacts.imputation_medians.items():
        lines.append(f"   - {col}: {artifacts.imputed_counts[col]} values filled with {median:.2f}")
    lines += [
        "2. Outlier detection and capping using IQR method",
        f"   - Q1: {bounds.q1:.2f}, Q3: {bounds.q3:.2f}, IQR: {bounds.iqr:.2f}",
        f"   - Bounds: {bounds.lower:.2f} to {bounds.upper:.2f}",
        f"   - Outliers capped: {artifacts.n_outliers}",
        f"3. Created {len(new_features)} new features",
        "4. Encoded categorical variables with recorded levels",
    ]
    for col, levels in artifacts.category_levels.levels.items():
        lines.append(f"   - {col}: {', '.join(levels)} (reference: {levels[0]})")
    lines += [
        "5. Validated data quality",
        "",
        validation.format(),
        "",
        "PRICE STATISTICS (After Preprocessing):",
        f"Mean: {price.mean():.2f}",
        f"Median: {price.median():.2f}",
        f"Std Dev: {price.std():.2f}",
        f"Range: ${price.min():.2f} - ${price.max():.2f}",
        "",
        "READY FOR ANALYSIS AND MODELING",
    ]
    return "\n".join(lines) + "\n"


# =============================================================================
# EDA
# =============================================================================

def eda_report(summary: EdaSummary, run_date: Optional[date] = None) -> str:
    """Key findings from the exploratory analysis."""
    nb = summary.by_neighborhood
    corr = summary.correlations['price']
    top = summary.top_correlations.head(3)

    lines = _header("LISTING PRICE ANALYSIS - KEY INSIGHTS")
    lines += [
        f"Analysis Date: {_today(run_date)}",
        f"Total Listings Analyzed: {summary.n_listings}",
        "",
        "PRICE STATISTICS:",
        f"  Average Price: ${summary.price['mean']:.2f}",
        f"  Median Price: ${summary.price['median']:.2f}",
        f"  Price Range: ${summary.price['min']:.2f} - ${summary.price['max']:.2f}",
        "",
        "TOP INSIGHTS:",
        "",
        "1. LOCATION IMPACT:",
        f"   - Highest prices in: {nb['neighborhood'].iloc[0]} (${nb['median_price'].iloc[0]:.2f} median)",
        f"   - Lowest prices in: {nb['neighborhood'].iloc[-1]} (${nb['median_price'].iloc[-1]:.2f} median)",
        f"   - Price variance across neighborhoods: {summary.neighborhood_spread_pct:.1f}%",
        "",
        "2. PROPERTY CHARACTERISTICS:",
        f"   - Correlation between bedrooms and price (r = {corr.get('bedrooms', float('nan')):.3f})",
        f"   - Amenities impact: r = {corr.get('num_amenities', float('nan')):.3f}",
        f"   - Room type: Entire homes are {summary.entire_home_multiple:.2f}x more expensive than private rooms",
        "",
        "3. HOST FACTORS:",
        f"   - Superhost premium: {summary.superhost_premium_pct:.1f}% higher average price",
        f"   - Superhosts represent {summary.superhost_share_pct:.1f}% of listings",
        "",
        "4. REVIEW IMPACT:",
        f"   - Correlation between ratings and price: r = {corr.get('review_scores_rating', float('nan')):.3f}",
        "",
        "5. KEY PRICE DRIVERS (in order of correlation):",
    ]
    for i, row in enumerate(top.itertuples(index=False), start=1):
        lines.append(f"   {i}. {row.variable} (r = {row.correlation:.3f})")
    lines += ["", "VISUALIZATIONS GENERATED:"]
    lines += [f"  ✓ {name}" for name in EDA_PLOTS]
    return "\n".join(lines) + "\n"


# =============================================================================
# MODELS
# =============================================================================

def model_report(result: TrainingResult, run_date: Optional[date] = None, top_n: int = 5) -> str:
    """Test-set performance, model comparison and top features."""
    lines = _header("LISTING PRICE PREDICTION - MODEL PERFORMANCE REPORT")
    lines += [
        f"Date: {_today(run_date)}",
        f"Training set: {result.n_train} listings",
        f"Test set: {result.n_test} listings",
        "",
        "MODELS EVALUATED:",
        "1. Linear Regression",
        "2. Decision Tree (Pruned)",
        "",
    ]
    for m in result.metrics:
        lines += [
            f"=== {m.model.upper()} ===",
            f"RMSE: ${m.rmse:.2f}",
            f"MAE: ${m.mae:.2f}",
            f"R²: {m.r2:.4f}",
            f"MAPE: {m.mape:.2f}%",
            "",
            "Interpretation:",
            f"- On average, predictions are off by ${m.mae:.2f}",
            f"- Model explains {m.r2 * 100:.2f}% of price variance",
            f"- Percentage error: {m.mape:.2f}%",
            "",
        ]

    if result.linear.aliased_features:
        lines += [
            "Aliased linear terms (not estimable, dropped):",
            *[f"  - {name}" for name in result.linear.aliased_features],
            "",
        ]

    best_r2 = max(result.metrics, key=lambda m: m.r2).model
    tree = result.tree
    lines += [
        "=== MODEL COMPARISON ===",
        f"{result.best_model} has lower RMSE (better prediction accuracy)",
        f"{best_r2} has higher R² (explains more variance)",
        "",
        "=== DECISION TREE PRUNING ===",
        f"Optimal CP: {tree.best_cp:.6f}",
        f"Terminal nodes: {tree.model.get_n_leaves()}",
        "",
        tree.complexity_table.to_string(index=False, float_format=lambda v: f"{v:.6f}"),
        "",
        f"=== TOP {top_n} MOST IMPORTANT FEATURES ===",
    ]
    importance = tree.feature_importance().head(top_n)
    for i, row in enumerate(importance.itertuples(index=False), start=1):
        lines.append(f"{i}. {row.feature} (importance: {row.importance:.4f})")

    mae_best = min(m.mae for m in result.metrics)
    lines += [
        "",
        "=== BUSINESS RECOMMENDATIONS ===",
        "",
        "1. PRICING STRATEGY:",
        "   - Use model predictions as baseline pricing",
        f"   - Expected accuracy: ±${mae_best:.2f}",
        "",
        "2. FEATURE OPTIMIZATION:",
        f"   - Focus on top {top_n} features identified",
        "",
        "VISUALIZATIONS CREATED:",
        *[f"  - {name}" for name in MODEL_PLOTS],
    ]
    return "\n".join(lines) + "\n"


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

def recommendation_report(
    predictions: pd.DataFrame,
    recommendations: List[PricingRecommendation],
    landscape: Optional[pd.DataFrame] = None,
    run_date: Optional[date] = None
) -> str:
    """Predictions, strategy per listing, market position and landscape."""
    display = predictions[[c for c in PREDICTION_COLUMNS if c in predictions.columns]]

    lines = _header("LISTING PRICING RECOMMENDATIONS REPORT")
    lines += [
        f"Date: {_today(run_date)}",
        f"Listings Analyzed: {len(predictions)}",
        "",
        "=== SUMMARY OF PREDICTIONS ===",
        "",
        display.to_string(index=False),
        "",
        "=== DETAILED RECOMMENDATIONS ===",
        "",
    ]
    for rec in recommendations:
        lines += [
            f"LISTING: {rec.listing_id}",
            f"Strategy: {rec.strategy}",
            f"Recommended Price: ${rec.recommended_price:.2f}",
            f"Price Range: {rec.price_range}",
            f"Reason: {rec.reason}",
            f"Tips: {'; '.join(rec.tips) if rec.tips else 'None'}",
        ]
        if rec.market is not None:
            m = rec.market
            lines += [
                f"Market ({m.neighborhood}, {m.bedrooms} BR, {m.n_comparables} comparables): "
                f"avg ${m.mean_price:.2f}, median ${m.median_price:.2f}, "
                f"range ${m.min_price:.2f} - ${m.max_price:.2f}",
                f"Position: {m.percentile:.1f}th percentile -> {m.positioning}",
            ]
        else:
            lines.append("Market: no comparable listings")
        lines.append("")

    if landscape is not None:
        lines += [
            "=== NEIGHBORHOOD COMPETITIVE LANDSCAPE ===",
            "",
            landscape.to_string(index=False, float_format=lambda v: f"{v:.2f}"),
            "",
        ]

    lines += [
        "=== PRICING STRATEGIES EXPLAINED ===",
        "",
        "PREMIUM PRICING:",
        "  - For high-rated listings with Superhost status",
        "  - Price at the top of the recommended range",
        "",
        "MARKET RATE:",
        "  - Price at the blended model prediction",
        "",
        "COMPETITIVE PRICING:",
        "  - For new listings with few reviews",
        "  - Price at the bottom of the recommended range",
    ]
    return "\n".join(lines) + "\n"
