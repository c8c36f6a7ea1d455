import pytest
from sklearn.ensemble import RandomForestClassifier
from sklearn.neighbors import KNeighborsClassifier

from titanic_survival.models import MODEL_REGISTRY, get_model_spec


def test_registry_has_the_compared_families():
    assert {"random_forest", "logistic_regression", "knn", "decision_tree", "lightgbm"} <= set(
        MODEL_REGISTRY
    )


def test_build_injects_seed_only_where_supported():
    forest = get_model_spec("random_forest").build(random_state=5, max_features="sqrt")
    knn = get_model_spec("knn").build(random_state=5, n_neighbors=7)

    assert isinstance(forest, RandomForestClassifier)
    assert forest.random_state == 5 and forest.max_features == "sqrt"
    assert isinstance(knn, KNeighborsClassifier)
    assert knn.n_neighbors == 7


def test_build_returns_fresh_estimators():
    spec = get_model_spec("decision_tree")
    assert spec.build(random_state=0) is not spec.build(random_state=0)


def test_grid_override_keeps_registry_untouched():
    spec = get_model_spec("knn", {"n_neighbors": [3]})
    assert spec.param_grid == {"n_neighbors": [3]}
    assert MODEL_REGISTRY["knn"].param_grid == {"n_neighbors": [5, 7, 9]}


def test_unknown_family_raises():
    with pytest.raises(ValueError, match="svm"):
        get_model_spec("svm")
