#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Decision tree training for land-cover labels.

The tree is fitted with scikit-learn's CART implementation (Gini impurity,
fixed random state) and exported to an immutable tree of :class:`SplitNode`
and :class:`LeafNode` records. A cell goes to the left child when its band
value is less than or equal to the split threshold.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, confusion_matrix
from sklearn.tree import DecisionTreeClassifier, export_text

from raster_landcover.core.config import TREE_CONFIG, TRAINING_CONFIG, validate_tree_params
from raster_landcover.core.exceptions import ModelFitError
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.utils.utils import timer

# Initialize logger
logger = get_module_logger(__name__)

# Columns written by the sampler that are not band values
SAMPLE_META_COLUMNS = ("row", "col", "x", "y")


@dataclass(frozen=True)
class LeafNode:
    label: Any
    n_samples: int


@dataclass(frozen=True)
class SplitNode:
    band_index: int
    band_name: str
    threshold: float
    left: "TreeNode"
    right: "TreeNode"
    n_samples: int


TreeNode = Union[SplitNode, LeafNode]


@dataclass(frozen=True, eq=False)
class DecisionTreeModel:
    """
    A fitted land-cover decision tree.

    Attributes
    ----------
    estimator : DecisionTreeClassifier
        The fitted scikit-learn estimator.
    band_names : tuple of str
        Bands in the order the model expects them.
    labels : tuple
        Sorted label set observed in training.
    root : TreeNode
        Exported tree.
    """
    estimator: DecisionTreeClassifier
    band_names: Tuple[str, ...]
    labels: Tuple[Any, ...]
    root: TreeNode

    @property
    def depth(self) -> int:
        return int(self.estimator.get_depth())

    @property
    def n_leaves(self) -> int:
        return int(self.estimator.get_n_leaves())

    def predict(self, values: np.ndarray) -> np.ndarray:
        """
        Predict labels for a (n_samples, n_bands) array of band values.

        Rows must not contain NaN.
        """
        values = np.asarray(values, dtype="float64")
        if values.ndim != 2 or values.shape[1] != len(self.band_names):
            raise ValueError(f"Expected an array of shape (n, {len(self.band_names)}), "
                             f"got {values.shape}")
        if values.shape[0] == 0:
            return np.empty(0, dtype=self.estimator.classes_.dtype)
        return self.estimator.predict(values)

    def predict_one(self, values: Sequence[float]) -> Any:
        """Walk the exported tree for a single cell's band values."""
        node = self.root
        while isinstance(node, SplitNode):
            # Split thresholds are defined on float32 values
            if np.float32(values[node.band_index]) <= node.threshold:
                node = node.left
            else:
                node = node.right
        return node.label

    def feature_importances(self) -> Dict[str, float]:
        return {name: float(v) for name, v in
                zip(self.band_names, self.estimator.feature_importances_)}

    def describe(self) -> str:
        """Text rendering of the split rules."""
        return export_text(self.estimator, feature_names=list(self.band_names))

    def summary(self) -> Dict[str, Any]:
        return {
            "labels": list(self.labels),
            "band_names": list(self.band_names),
            "depth": self.depth,
            "n_leaves": self.n_leaves,
            "params": self.estimator.get_params(),
            "feature_importances": self.feature_importances(),
        }


def export_tree(estimator: DecisionTreeClassifier, band_names: Sequence[str]) -> TreeNode:
    """Convert a fitted scikit-learn tree into SplitNode/LeafNode records."""
    tree = estimator.tree_
    classes = estimator.classes_

    def build(node_id: int) -> TreeNode:
        left, right = tree.children_left[node_id], tree.children_right[node_id]
        n_samples = int(tree.n_node_samples[node_id])
        if left == right:
            return LeafNode(label=classes[int(np.argmax(tree.value[node_id][0]))],
                            n_samples=n_samples)
        band_index = int(tree.feature[node_id])
        return SplitNode(
            band_index=band_index,
            band_name=band_names[band_index],
            threshold=float(tree.threshold[node_id]),
            left=build(left),
            right=build(right),
            n_samples=n_samples,
        )

    return build(0)


def _resolve_band_columns(samples: pd.DataFrame, band_names: Optional[Sequence[str]],
                          label_column: str, id_column: str) -> List[str]:
    if band_names is None:
        skip = {label_column, id_column, *SAMPLE_META_COLUMNS}
        band_names = [c for c in samples.columns if c not in skip]
    missing = [name for name in band_names if name not in samples.columns]
    if missing:
        raise ModelFitError(f"Band columns missing from training samples: {missing}")
    if not band_names:
        raise ModelFitError("Training samples contain no band columns")
    return list(band_names)


def complete_samples(samples: pd.DataFrame, band_names: Sequence[str],
                     label_column: str) -> pd.DataFrame:
    """Return only the samples with every band value and a label present."""
    keep = samples[list(band_names) + [label_column]].notna().all(axis=1)
    return samples.loc[keep]


@timer
def fit_decision_tree(
    samples: pd.DataFrame,
    band_names: Optional[Sequence[str]] = None,
    label_column: Optional[str] = None,
    id_column: Optional[str] = None,
    **params
) -> DecisionTreeModel:
    """
    Fit a categorical decision tree on training samples.

    Parameters
    ----------
    samples : pd.DataFrame
        Labelled samples, one row per cell.
    band_names : sequence of str, optional
        Feature columns in stack band order. By default every column that
        is not the label, the identifier or a cell-position column.
    label_column : str, optional
        Label column, by default ``TRAINING_CONFIG['label_column']``.
    id_column : str, optional
        Site identifier column, by default ``TRAINING_CONFIG['id_column']``.
    **params
        Overrides for ``TREE_CONFIG`` (``max_depth``, ``min_samples_split``,
        ``min_samples_leaf``, ...).

    Returns
    -------
    DecisionTreeModel
        The fitted model.

    Raises
    ------
    ModelFitError
        If the label or band columns are missing, no complete samples
        remain after dropping rows with missing values, or scikit-learn
        rejects a parameter value.
    ConfigurationError
        If ``params`` holds an unknown parameter name.
    """
    label_column = label_column or TRAINING_CONFIG["label_column"]
    id_column = id_column or TRAINING_CONFIG["id_column"]

    if label_column not in samples.columns:
        raise ModelFitError(f"Label column '{label_column}' missing from training samples")
    band_names = _resolve_band_columns(samples, band_names, label_column, id_column)

    complete = complete_samples(samples, band_names, label_column)
    dropped = len(samples) - len(complete)
    if dropped:
        logger.info(f"Excluded {dropped} of {len(samples)} samples with missing values")
    if complete.empty:
        raise ModelFitError("No training samples with complete band values remain")

    # Fixed ordering keeps tie-breaking reproducible
    order = [c for c in (id_column, "row", "col") if c in complete.columns]
    if order:
        complete = complete.sort_values(order, kind="mergesort")

    tree_params = {**TREE_CONFIG, **params}
    validate_tree_params(tree_params)
    estimator = DecisionTreeClassifier(**tree_params)

    X = complete[band_names].to_numpy(dtype="float64")
    y = complete[label_column].to_numpy()
    logger.info(f"Fitting decision tree on {len(X)} samples, {len(band_names)} bands, "
                f"{len(np.unique(y))} labels")
    try:
        estimator.fit(X, y)
    except (TypeError, ValueError) as e:
        raise ModelFitError(f"Decision tree fit failed: {e}") from e

    model = DecisionTreeModel(
        estimator=estimator,
        band_names=tuple(band_names),
        labels=tuple(estimator.classes_.tolist()),
        root=export_tree(estimator, band_names),
    )
    logger.info(f"Fitted tree: depth {model.depth}, {model.n_leaves} leaves")
    logger.debug("Decision tree rules:\n" + model.describe())
    return model


def training_accuracy(
    model: DecisionTreeModel,
    samples: pd.DataFrame,
    label_column: Optional[str] = None
) -> Dict[str, Any]:
    """
    Resubstitution accuracy of the model on its training samples.

    Returns
    -------
    dict
        ``accuracy`` (float) and ``confusion_matrix`` (DataFrame indexed by
        true label, columns by predicted label).
    """
    label_column = label_column or TRAINING_CONFIG["label_column"]
    complete = complete_samples(samples, model.band_names, label_column)
    if complete.empty:
        raise ModelFitError("No complete samples to evaluate")

    y_true = complete[label_column].to_numpy()
    y_pred = model.predict(complete[list(model.band_names)].to_numpy(dtype="float64"))
    labels = list(model.labels)
    matrix = confusion_matrix(y_true, y_pred, labels=labels)

    accuracy = float(accuracy_score(y_true, y_pred))
    logger.info(f"Training accuracy: {accuracy:.3f}")
    return {
        "accuracy": accuracy,
        "confusion_matrix": pd.DataFrame(matrix, index=labels, columns=labels),
    }
