"""
Tests for listing_pricer/reporting/plots.py.
"""

import subprocess
import sys

from listing_pricer.config import EDA_PLOTS, MODEL_PLOTS, PREDICTION_PLOTS
from listing_pricer.recommender.price_recommender import predict_prices
from listing_pricer.reporting.eda import explore
from listing_pricer.reporting.plots import (
    create_eda_plots,
    create_model_plots,
    create_prediction_plots,
    plot_decision_tree,
)


class TestFigures:
    """Each entry point writes its listed PNG files."""

    def test_decision_tree_figure(self, training_result, tmp_path):
        path = plot_decision_tree(training_result.tree, tmp_path / 'tree.png')
        assert path.exists()
        assert path.stat().st_size > 0

    def test_model_plots(self, training_result, tmp_path):
        paths = create_model_plots(
            training_result.tree,
            training_result.metrics_table,
            training_result.test_predictions,
            training_result.feature_importance(),
            tmp_path,
        )
        assert [p.name for p in paths] == MODEL_PLOTS
        assert all(p.exists() for p in paths)

    def test_eda_plots(self, cleaned_listings, tmp_path):
        df = cleaned_listings.data
        paths = create_eda_plots(df, explore(df), tmp_path)
        assert [p.name for p in paths] == EDA_PLOTS
        assert all(p.exists() for p in paths)

    def test_prediction_plots(self, model_bundle, new_listings, tmp_path):
        paths = create_prediction_plots(predict_prices(model_bundle, new_listings), tmp_path)
        assert [p.name for p in paths] == PREDICTION_PLOTS
        assert paths[0].exists()


class TestImports:
    """Plotting libraries stay unloaded unless figures are drawn."""

    def test_pipeline_import_skips_matplotlib(self):
        code = (
            "import sys\n"
            "import listing_pricer.main\n"
            "assert 'matplotlib' not in sys.modules, 'matplotlib loaded'\n"
            "assert 'seaborn' not in sys.modules, 'seaborn loaded'\n"
        )
        result = subprocess.run([sys.executable, '-c', code], capture_output=True, text=True)
        assert result.returncode == 0, result.stderr
