"""Price models, metrics and training."""
from .linear import LinearPriceModel, find_aliased_columns
from .metrics import ModelMetrics, comparison_table, evaluate_predictions, mae, mape, r2, rmse
from .trainer import ModelBundle, TrainingResult, split_train_test, train_models
from .tree import PrunedTreeModel
