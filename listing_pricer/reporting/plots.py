"""
Visualization functions for the listing price pipeline.

Every function draws one figure, saves it as PNG and closes it.
"""

import logging
from pathlib import Path
from typing import List

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.tree import plot_tree

from listing_pricer.config import EDA_PLOTS, MODEL_PLOTS, PREDICTION_PLOTS
from listing_pricer.models.tree import PrunedTreeModel
from listing_pricer.reporting.eda import EdaSummary

logger = logging.getLogger(__name__)

PALETTE = ["#E74C3C", "#3498DB", "#2ECC71", "#F39C12", "#9B59B6", "#1ABC9C"]
DPI = 150


def _save(fig: plt.Figure, output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=DPI, bbox_inches='tight')
    plt.close(fig)
    return output_path


def _flat(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in df.columns:
        if isinstance(df[col].dtype, pd.CategoricalDtype):
            df[col] = df[col].astype(str)
    return df


# =============================================================================
# EDA PLOTS
# =============================================================================

def plot_price_distribution(df: pd.DataFrame, output_path: Path) -> Path:
    """Histogram of price with mean and median markers."""
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.histplot(df['price'], bins=50, color=PALETTE[1], ax=ax)
    ax.axvline(df['price'].mean(), color=PALETTE[0], linestyle='--', label=f"Mean ${df['price'].mean():.2f}")
    ax.axvline(df['price'].median(), color=PALETTE[2], linestyle='--', label=f"Median ${df['price'].median():.2f}")
    ax.set_title('Distribution of Listing Prices')
    ax.set_xlabel('Price (USD per night)')
    ax.set_ylabel('Number of Listings')
    ax.legend()
    return _save(fig, output_path)


def plot_price_by_property_type(df: pd.DataFrame, output_path: Path) -> Path:
    """Box plots of price per property type, ordered by median."""
    data = _flat(df)
    order = data.groupby('property_type')['price'].median().sort_values().index
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.boxplot(data=data, y='property_type', x='price', order=order, ax=ax)
    ax.set_title('Price Distribution by Property Type')
    ax.set_xlabel('Price (USD per night)')
    ax.set_ylabel('Property Type')
    return _save(fig, output_path)


def plot_price_by_neighborhood(stats: pd.DataFrame, output_path: Path) -> Path:
    """Horizontal bars of median price per neighborhood."""
    stats = stats.sort_values('median_price')
    fig, ax = plt.subplots(figsize=(10, 7))
    ax.barh(stats['neighborhood'], stats['median_price'], color=PALETTE[1], alpha=0.8)
    for y, value in enumerate(stats['median_price']):
        ax.text(value, y, f" ${value:.0f}", va='center')
    ax.set_title('Median Price by Neighborhood')
    ax.set_xlabel('Median Price (USD per night)')
    return _save(fig, output_path)


def plot_correlation_matrix(corr: pd.DataFrame, output_path: Path) -> Path:
    """Upper-triangle heatmap of the numeric correlations."""
    mask = np.tril(np.ones_like(corr, dtype=bool), k=-1)
    fig, ax = plt.subplots(figsize=(12, 10))
    sns.heatmap(corr, mask=mask, annot=True, fmt='.2f', cmap='coolwarm', center=0,
                annot_kws={'size': 7}, ax=ax)
    ax.set_title('Correlation Matrix of Numeric Features')
    return _save(fig, output_path)


def plot_price_by_room_type(df: pd.DataFrame, output_path: Path) -> Path:
    """Violin plot of price per room type."""
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.violinplot(data=_flat(df), x='room_type', y='price', inner='box', ax=ax)
    ax.set_title('Price Distribution by Room Type')
    ax.set_xlabel('Room Type')
    ax.set_ylabel('Price (USD per night)')
    return _save(fig, output_path)


def plot_amenities_vs_price(df: pd.DataFrame, output_path: Path) -> Path:
    """Scatter of amenities against price with a linear fit."""
    r = df['num_amenities'].corr(df['price'])
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.regplot(data=df, x='num_amenities', y='price', scatter_kws={'alpha': 0.3},
                line_kws={'color': PALETTE[0]}, ax=ax)
    ax.set_title(f'Relationship Between Amenities and Price (r = {r:.3f})')
    ax.set_xlabel('Number of Amenities')
    ax.set_ylabel('Price (USD per night)')
    return _save(fig, output_path)


def plot_superhost_comparison(df: pd.DataFrame, output_path: Path) -> Path:
    """Box plots of price for superhosts and other hosts."""
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.boxplot(data=_flat(df), x='host_is_superhost', y='price', order=['No', 'Yes'],
                showmeans=True, ax=ax)
    ax.set_title('Price Comparison: Superhosts vs Regular Hosts')
    ax.set_xlabel('Superhost Status')
    ax.set_ylabel('Price (USD per night)')
    return _save(fig, output_path)


def plot_ratings_vs_price(df: pd.DataFrame, output_path: Path) -> Path:
    """Scatter of review rating against price."""
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.regplot(data=df, x='review_scores_rating', y='price',
                scatter_kws={'alpha': 0.3, 'color': PALETTE[4]}, line_kws={'color': PALETTE[0]}, ax=ax)
    ax.set_title('Relationship Between Review Ratings and Price')
    ax.set_xlabel('Review Score Rating (1-5)')
    ax.set_ylabel('Price (USD per night)')
    return _save(fig, output_path)


def plot_price_by_bedrooms(stats: pd.DataFrame, output_path: Path) -> Path:
    """Bars of average price per bedroom count."""
    fig, ax = plt.subplots(figsize=(10, 6))
    labels = stats['bedrooms'].astype(int).astype(str)
    bars = ax.bar(labels, stats['avg_price'], color=PALETTE[2], alpha=0.8)
    ax.bar_label(bars, labels=[f"${v:.0f}" for v in stats['avg_price']])
    ax.set_title('Average Price by Number of Bedrooms')
    ax.set_xlabel('Number of Bedrooms')
    ax.set_ylabel('Average Price (USD per night)')
    return _save(fig, output_path)


def plot_comprehensive_analysis(df: pd.DataFrame, output_path: Path) -> Path:
    """2x2 panel of bedrooms, room types, amenities and superhost share."""
    data = _flat(df)
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))

    sns.regplot(data=data, x='bedrooms', y='price', x_jitter=0.2,
                scatter_kws={'alpha': 0.3, 'color': PALETTE[1]}, line_kws={'color': PALETTE[0]}, ax=axes[0, 0])
    axes[0, 0].set_title('Bedrooms vs Price')

    room_counts = data['room_type'].value_counts().sort_index()
    axes[0, 1].bar(room_counts.index, room_counts.values, color=PALETTE[:len(room_counts)], alpha=0.8)
    axes[0, 1].set_title('Room Type Distribution')
    axes[0, 1].set_ylabel('Count')
    axes[0, 1].tick_params(axis='x', rotation=45)

    sns.regplot(data=data, x='num_amenities', y='price',
                scatter_kws={'alpha': 0.3, 'color': PALETTE[4]}, line_kws={'color': PALETTE[0]}, ax=axes[1, 0])
    axes[1, 0].set_title('Amenities vs Price')

    host_counts = data['host_is_superhost'].value_counts().sort_index()
    axes[1, 1].bar(host_counts.index, host_counts.values, color=['#95A5A6', PALETTE[3]][:len(host_counts)], alpha=0.8)
    axes[1, 1].set_title('Superhost Distribution')
    axes[1, 1].set_ylabel('Count')

    fig.suptitle('Key Market Insights - Listing Pricing Factors')
    return _save(fig, output_path)


def create_eda_plots(df: pd.DataFrame, summary: EdaSummary, viz_dir: Path) -> List[Path]:
    """Writes every EDA figure into viz_dir."""
    viz_dir = Path(viz_dir)
    paths = [
        plot_price_distribution(df, viz_dir / EDA_PLOTS[0]),
        plot_price_by_property_type(df, viz_dir / EDA_PLOTS[1]),
        plot_price_by_neighborhood(summary.by_neighborhood, viz_dir / EDA_PLOTS[2]),
        plot_correlation_matrix(summary.correlations, viz_dir / EDA_PLOTS[3]),
        plot_price_by_room_type(df, viz_dir / EDA_PLOTS[4]),
        plot_amenities_vs_price(df, viz_dir / EDA_PLOTS[5]),
        plot_superhost_comparison(df, viz_dir / EDA_PLOTS[6]),
        plot_ratings_vs_price(df, viz_dir / EDA_PLOTS[7]),
        plot_price_by_bedrooms(summary.by_bedrooms, viz_dir / EDA_PLOTS[8]),
        plot_comprehensive_analysis(df, viz_dir / EDA_PLOTS[9]),
    ]
    for path in paths:
        logger.info(f"✓ {path.name} saved")
    return paths


# =============================================================================
# MODEL PLOTS
# =============================================================================

def plot_decision_tree(tree: PrunedTreeModel, output_path: Path, max_depth: int = 4) -> Path:
    """The pruned tree, drawn to max_depth levels."""
    fig, ax = plt.subplots(figsize=(14, 10))
    plot_tree(
        tree.model,
        feature_names=tree.columns,
        max_depth=max_depth,
        filled=True,
        rounded=True,
        impurity=False,
        precision=0,
        fontsize=8,
        ax=ax,
    )
    ax.set_title(f'Decision Tree for Listing Price Prediction (cp = {tree.best_cp:.4f})')
    return _save(fig, output_path)


def plot_model_comparison(metrics: pd.DataFrame, output_path: Path) -> Path:
    """Side-by-side bars of RMSE, MAE, R² and MAPE per model."""
    fig, axes = plt.subplots(1, 4, figsize=(16, 5))
    for ax, metric in zip(axes, ['RMSE', 'MAE', 'R_squared', 'MAPE']):
        bars = ax.bar(metrics['Model'], metrics[metric], color=PALETTE[:len(metrics)], alpha=0.8)
        ax.bar_label(bars, fmt='%.3f' if metric == 'R_squared' else '%.2f')
        ax.set_title(metric)
        ax.tick_params(axis='x', rotation=20)
    fig.suptitle('Model Performance Comparison')
    return _save(fig, output_path)


def plot_predicted_vs_actual(predictions: pd.DataFrame, output_path: Path) -> Path:
    """Predicted against actual price for both models with the identity line."""
    fig, axes = plt.subplots(1, 2, figsize=(14, 6), sharey=True)
    low = predictions[['actual_price', 'lr_predicted', 'dt_predicted']].min().min()
    high = predictions[['actual_price', 'lr_predicted', 'dt_predicted']].max().max()
    for ax, col, title in zip(axes, ['lr_predicted', 'dt_predicted'], ['Linear Regression', 'Decision Tree']):
        ax.scatter(predictions['actual_price'], predictions[col], alpha=0.5)
        ax.plot([low, high], [low, high], color=PALETTE[0], linestyle='--')
        ax.set_title(f'{title}: Predicted vs Actual')
        ax.set_xlabel('Actual Price')
        ax.set_ylabel('Predicted Price')
    return _save(fig, output_path)


def plot_residuals(predictions: pd.DataFrame, output_path: Path) -> Path:
    """Residual against predicted price for both models."""
    fig, axes = plt.subplots(1, 2, figsize=(14, 6))
    pairs = [('lr_predicted', 'lr_error', 'Linear Regression'), ('dt_predicted', 'dt_error', 'Decision Tree')]
    for ax, (pred, err, title) in zip(axes, pairs):
        ax.scatter(predictions[pred], predictions[err], alpha=0.5)
        ax.axhline(0, color=PALETTE[0], linestyle='--')
        ax.set_title(f'{title}: Residuals')
        ax.set_xlabel('Predicted Price')
        ax.set_ylabel('Residual')
    return _save(fig, output_path)


def plot_feature_importance(importance: pd.DataFrame, output_path: Path, top_n: int = 10) -> Path:
    """Top features per model."""
    models = list(importance['model'].unique())
    fig, axes = plt.subplots(1, max(len(models), 1), figsize=(7 * max(len(models), 1), 6), squeeze=False)
    for ax, model in zip(axes[0], models):
        top = importance[importance['model'] == model].nlargest(top_n, 'importance').iloc[::-1]
        ax.barh(top['feature'], top['importance'], color=PALETTE[1])
        ax.set_title(f'{model}: Top {top_n} Features')
        ax.set_xlabel('Importance')
    return _save(fig, output_path)


def create_model_plots(
    tree: PrunedTreeModel,
    metrics: pd.DataFrame,
    predictions: pd.DataFrame,
    importance: pd.DataFrame,
    viz_dir: Path
) -> List[Path]:
    """Writes every model evaluation figure into viz_dir."""
    viz_dir = Path(viz_dir)
    paths = [
        plot_decision_tree(tree, viz_dir / MODEL_PLOTS[0]),
        plot_model_comparison(metrics, viz_dir / MODEL_PLOTS[1]),
        plot_predicted_vs_actual(predictions, viz_dir / MODEL_PLOTS[2]),
        plot_residuals(predictions, viz_dir / MODEL_PLOTS[3]),
        plot_feature_importance(importance, viz_dir / MODEL_PLOTS[4]),
    ]
    for path in paths:
        logger.info(f"✓ {path.name} saved")
    return paths


# =============================================================================
# PREDICTION PLOTS
# =============================================================================

def plot_new_listing_predictions(predictions: pd.DataFrame, output_path: Path) -> Path:
    """Per-listing predictions from both models with the price band."""
    data = predictions.reset_index(drop=True)
    x = np.arange(len(data))
    avg = data['predicted_price_avg'].to_numpy(dtype=float)
    band = np.vstack([avg - data['price_low'].to_numpy(dtype=float), data['price_high'].to_numpy(dtype=float) - avg])

    fig, ax = plt.subplots(figsize=(12, 6))
    ax.errorbar(x, avg, yerr=band, fmt='o', color='black', capsize=6, label='Average (±15%)')
    ax.scatter(x - 0.1, data['predicted_price_lr'], color=PALETTE[0], label='Linear Regression')
    ax.scatter(x + 0.1, data['predicted_price_dt'], color=PALETTE[1], label='Decision Tree')
    ax.set_xticks(x)
    ax.set_xticklabels(data['listing_id'].astype(str))
    ax.set_title('Price Predictions for New Listings')
    ax.set_ylabel('Price (USD per night)')
    ax.legend()
    return _save(fig, output_path)


def create_prediction_plots(predictions: pd.DataFrame, viz_dir: Path) -> List[Path]:
    path = plot_new_listing_predictions(predictions, Path(viz_dir) / PREDICTION_PLOTS[0])
    logger.info(f"✓ {path.name} saved")
    return [path]
